"""Live store of bug / test case relationships."""

from collections.abc import Callable
from typing import Any

import structlog

from tracelink.backend import Backend, Unsubscribe
from tracelink.exceptions import SourceUnavailable
from tracelink.models import FilterScope, RelationshipMap, Resource, StoreStatus
from tracelink.notifications import Notification, Notifier, describe_error, error_code, log_notifier
from tracelink.resolver import invert, resolve

logger = structlog.get_logger()

Listener = Callable[["RelationshipStore"], None]


class RelationshipStore:
    """Holds the latest relationship map for one scope and publishes changes.

    Every snapshot or error from the backend replaces the map and error as a
    whole. Once disposed, late snapshots, errors and fetch results are ignored.
    """

    def __init__(self, backend: Backend, scope: FilterScope, notifier: Notifier | None = None) -> None:
        """Initialize the store.

        Args:
            backend: Source of bug record snapshots
            scope: Bug collection to follow
            notifier: Receives user-visible error notifications
        """
        self.backend = backend
        self.scope = scope
        self.notifier = notifier or log_notifier

        self._status = StoreStatus.UNINITIALIZED
        self._map: RelationshipMap = {}
        self._inverse: RelationshipMap = {}
        self._records: dict[str, Resource] = {}
        self._error: str | None = None
        self._has_snapshot = False
        self._listeners: list[Listener] = []
        self._unsubscribe: Unsubscribe | None = None
        self._disposed = False

    @property
    def status(self) -> StoreStatus:
        return self._status

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def loading(self) -> bool:
        return self._status == StoreStatus.LOADING

    @property
    def disposed(self) -> bool:
        return self._disposed

    def start(self) -> None:
        """Subscribe to the backend for the store's scope."""
        if self._disposed:
            raise RuntimeError("Relationship store has been disposed")
        if self._unsubscribe is not None:
            logger.debug("Relationship store already started", scope=self.scope.collection_path)
            return

        logger.info("Starting relationship store", scope=self.scope.collection_path)
        self._status = StoreStatus.LOADING
        try:
            self._unsubscribe = self.backend.subscribe(self.scope, self._handle_snapshot, self._handle_error)
        except SourceUnavailable as e:
            logger.warning("Relationship source unavailable", scope=self.scope.collection_path, error=str(e))
            self._handle_error(e)

    async def refresh(self) -> None:
        """Replace the map with a one-shot fetch from the backend."""
        if self._disposed:
            return

        self._status = StoreStatus.LOADING
        try:
            records = await self.backend.fetch_once(self.scope)
        except Exception as e:
            if self._disposed:
                logger.debug("Ignoring fetch error after dispose", error=str(e))
                return
            self._handle_error(e)
            return

        if self._disposed:
            logger.debug("Ignoring fetch result after dispose", count=len(records))
            return
        self._handle_snapshot(records)

    def dispose(self) -> None:
        """Release the subscription and stop accepting updates."""
        if self._disposed:
            return
        self._disposed = True
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._listeners.clear()
        logger.info("Relationship store disposed", scope=self.scope.collection_path)

    def __enter__(self) -> "RelationshipStore":
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.dispose()

    def get_relationship_map(self) -> RelationshipMap:
        """Return a copy of the current bug -> test cases map."""
        return {key: list(value) for key, value in self._map.items()}

    def get_inverse_map(self) -> RelationshipMap:
        """Return a copy of the current test case -> bugs map."""
        return {key: list(value) for key, value in self._inverse.items()}

    def linked_ids(self, bug_id: str) -> list[str]:
        return list(self._map.get(bug_id, []))

    def linked_bug_ids(self, test_case_id: str) -> list[str]:
        return list(self._inverse.get(test_case_id, []))

    def has_record(self, resource_id: str) -> bool:
        return resource_id in self._map

    def records(self) -> list[Resource]:
        """Return the bug records of the latest snapshot."""
        return list(self._records.values())

    def on_change(self, listener: Listener) -> Unsubscribe:
        """Register a listener called after each map or error change.

        Returns:
            Idempotent callable removing the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _handle_snapshot(self, records: list[Resource]) -> None:
        if self._disposed:
            logger.debug("Ignoring snapshot after dispose", count=len(records))
            return

        self._map = resolve(records)
        self._inverse = invert(self._map)
        self._records = {record.id: record for record in records}
        self._error = None
        self._has_snapshot = True
        self._status = StoreStatus.READY
        logger.debug("Relationship map rebuilt", bugs=len(self._map), test_cases=len(self._inverse))
        self._publish()

    def _handle_error(self, error: object) -> None:
        if self._disposed:
            logger.debug("Ignoring error after dispose", error=str(error))
            return

        self._error = error_code(error)
        self._status = StoreStatus.FAILED
        if not self._has_snapshot:
            self._map = {}
            self._inverse = {}
            self._records = {}
        logger.error("Relationship feed error", error=self._error, kept_previous=self._has_snapshot)

        self.notifier(
            Notification(
                type="error",
                title="Relationships unavailable",
                message=describe_error(error),
            )
        )
        self._publish()

    def _publish(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error("Relationship listener failed", listener=repr(listener), error=str(e))
