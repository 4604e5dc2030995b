"""Data models for tracelink."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Bug id -> ordered test case ids linked to it.
RelationshipMap = dict[str, list[str]]


class ResourceKind(str, Enum):
    """Kinds of records taking part in a relationship."""

    BUG = "bug"
    TEST_CASE = "test_case"


@dataclass
class Resource:
    """A bug or test case record.

    Only bug records carry ``linked_ids`` in storage; the test case side is derived.
    """

    id: str
    title: str = ""
    linked_ids: list[str] | None = field(default_factory=list)
    kind: ResourceKind = ResourceKind.BUG
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LinkRequest:
    """Request to link one source record to one or more targets."""

    source_id: str
    target_ids: frozenset[str]


@dataclass(frozen=True)
class UnlinkRequest:
    """Request to remove exactly one link."""

    source_id: str
    target_id: str


@dataclass(frozen=True)
class FilterScope:
    """Identifies which bug collection a subscription covers."""

    suite_id: str | None = None
    user_id: str | None = None
    org_id: str | None = None
    account_type: str = "organization"

    @property
    def is_complete(self) -> bool:
        if not self.suite_id or not self.user_id:
            return False
        if self.account_type == "individual":
            return True
        return bool(self.org_id)

    @property
    def collection_path(self) -> str:
        """Path of the bug collection for this scope."""
        if self.account_type == "individual":
            return f"individualAccounts/{self.user_id}/testSuites/{self.suite_id}/bugs"
        return f"organizations/{self.org_id}/testSuites/{self.suite_id}/bugs"


class StoreStatus(str, Enum):
    """Lifecycle states of a relationship store."""

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class LinkError(str, Enum):
    """Failures returned by link operations."""

    INVALID_SOURCE = "invalid_source"
    PERSISTENCE_FAILURE = "persistence_failure"


class UnlinkError(str, Enum):
    """Failures returned by unlink operations."""

    PERSISTENCE_FAILURE = "persistence_failure"


@dataclass(frozen=True)
class Result:
    """Outcome of a link or unlink call."""

    error: LinkError | UnlinkError | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls) -> "Result":
        return cls()

    @classmethod
    def failure(cls, error: LinkError | UnlinkError, detail: str | None = None) -> "Result":
        return cls(error=error, detail=detail)
