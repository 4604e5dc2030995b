"""Backend implementations."""

from tracelink.backends.local import LocalBackend
from tracelink.backends.notion import NotionBackend

__all__ = ["LocalBackend", "NotionBackend"]
