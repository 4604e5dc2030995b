"""User-visible notifications and error descriptions."""

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

import structlog

logger = structlog.get_logger()

STORAGE_ERROR_MESSAGES = {
    "permission-denied": "You don't have permission to perform this action. Please check your account settings.",
    "not-found": "The requested resource was not found.",
    "already-exists": "This resource already exists.",
    "resource-exhausted": "You've reached your account's limit. Please upgrade your plan or try again later.",
    "unavailable": "Service temporarily unavailable. Please try again later.",
    "deadline-exceeded": "Request timed out. Please try again.",
    "failed-precondition": "Operation failed due to invalid state. Please try again.",
    "aborted": "Operation was aborted. Please try again.",
    "invalid-argument": "Invalid data provided. Please check your input.",
    # Notion API error codes
    "unauthorized": "You don't have permission to perform this action. Please check your account settings.",
    "restricted_resource": "You don't have permission to perform this action. Please check your account settings.",
    "object_not_found": "The requested resource was not found.",
    "rate_limited": "You've reached your account's limit. Please upgrade your plan or try again later.",
    "service_unavailable": "Service temporarily unavailable. Please try again later.",
    "validation_error": "Invalid data provided. Please check your input.",
}


def error_code(error: object) -> str:
    """Normalize an error value into a short code string.

    Strings are used as-is, objects exposing ``code`` use it, anything else
    falls back to its string form.
    """
    if isinstance(error, str):
        return error
    code = getattr(error, "code", None)
    if isinstance(code, Enum):
        code = code.value
    if code:
        return str(code)
    text = str(error)
    return text or type(error).__name__


def describe_error(error: object) -> str:
    """Return a message suitable for showing to a user."""
    code = error_code(error)
    if code in STORAGE_ERROR_MESSAGES:
        return STORAGE_ERROR_MESSAGES[code]

    lowered = code.lower()
    if "timeout" in lowered or "timed out" in lowered:
        return STORAGE_ERROR_MESSAGES["deadline-exceeded"]
    if "permission" in lowered:
        return STORAGE_ERROR_MESSAGES["permission-denied"]
    return code


@dataclass(frozen=True)
class Notification:
    """A message for the user interface."""

    type: str
    message: str
    title: str = ""
    id: str = field(default_factory=lambda: f"notification-{time.time_ns()}")
    duration: int = 5000


Notifier = Callable[[Notification], None]


def log_notifier(notification: Notification) -> None:
    """Notifier that only records notifications in the log."""
    if notification.type == "error":
        logger.warning("Notification", title=notification.title, message=notification.message)
    else:
        logger.info("Notification", title=notification.title, message=notification.message)
