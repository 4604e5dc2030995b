"""Backend interface consumed by the relationship manager."""

from abc import ABC, abstractmethod
from collections.abc import Callable

from tracelink.models import FilterScope, Resource

SnapshotCallback = Callable[[list[Resource]], None]
ErrorCallback = Callable[[object], None]
Unsubscribe = Callable[[], None]


class Backend(ABC):
    """Abstract base class for bug record sources.

    Every snapshot delivered to ``on_snapshot`` is a complete replacement for the
    previous one; backends never send partial deltas.
    """

    @abstractmethod
    def subscribe(self, scope: FilterScope, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> Unsubscribe:
        """Start delivering snapshots for ``scope``.

        Raises:
            SourceUnavailable: If the feed cannot be established.

        Returns:
            Idempotent callable releasing the subscription.
        """
        pass

    @abstractmethod
    async def fetch_once(self, scope: FilterScope) -> list[Resource]:
        """Fetch the current records for ``scope`` a single time."""
        pass

    @abstractmethod
    async def update_linked_ids(self, resource_id: str, linked_ids: list[str]) -> None:
        """Replace the stored linked ids of a bug record.

        Raises:
            PersistenceError: If the write fails.
        """
        pass
