"""Local backend keeping bug records in memory, optionally backed by a YAML file."""

import asyncio
import itertools
from pathlib import Path
from typing import Any

import structlog
import yaml

from tracelink.backend import Backend, ErrorCallback, SnapshotCallback, Unsubscribe
from tracelink.exceptions import PersistenceError, SourceUnavailable
from tracelink.models import FilterScope, Resource

logger = structlog.get_logger()


class LocalBackend(Backend):
    """In-process backend that pushes a full snapshot to subscribers after every write.

    The data file groups bug records by collection path::

        collections:
          organizations/acme/testSuites/s1/bugs:
            - id: b1
              title: Login fails
              linked_ids: [t1, t2]
    """

    def __init__(self, data_file: str | Path | None = None) -> None:
        """Initialize the local backend.

        Args:
            data_file: YAML file to load records from and save writes to
        """
        self.data_file = Path(data_file) if data_file else None
        self._collections: dict[str, dict[str, Resource]] = {}
        self._subscribers: dict[int, tuple[FilterScope, SnapshotCallback, ErrorCallback]] = {}
        self._tokens = itertools.count(1)

        if self.data_file is not None and self.data_file.exists():
            self._load()
        logger.debug("Local backend initialized", data_file=str(self.data_file), collections=len(self._collections))

    def _load(self) -> None:
        try:
            with open(self.data_file, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to load local data", data_file=str(self.data_file), error=str(e))
            raise ValueError(f"Failed to load records from {self.data_file}: {e}") from e

        for path, records in (data.get("collections") or {}).items():
            self._collections[path] = {}
            for raw in records or []:
                resource = Resource(
                    id=str(raw["id"]),
                    title=raw.get("title", ""),
                    linked_ids=[str(item) for item in raw.get("linked_ids") or []],
                )
                self._collections[path][resource.id] = resource

    def _save(self) -> None:
        if self.data_file is None:
            return

        data: dict[str, Any] = {
            "collections": {
                path: [
                    {"id": record.id, "title": record.title, "linked_ids": list(record.linked_ids or [])}
                    for record in records.values()
                ]
                for path, records in self._collections.items()
            }
        }
        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.data_file, "w") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            logger.error("Failed to save local data", data_file=str(self.data_file), error=str(e))
            raise PersistenceError(f"Failed to save records to {self.data_file}: {e}", code="unavailable") from e

    def _check_scope(self, scope: FilterScope) -> None:
        if not scope.is_complete:
            raise SourceUnavailable(
                "Suite, user and organization are required to load bugs", code="failed-precondition"
            )

    def _snapshot(self, path: str) -> list[Resource]:
        return [
            Resource(id=record.id, title=record.title, linked_ids=list(record.linked_ids or []), kind=record.kind)
            for record in self._collections.get(path, {}).values()
        ]

    def _deliver(self, token: int) -> None:
        entry = self._subscribers.get(token)
        if entry is None:
            return
        scope, on_snapshot, _ = entry
        on_snapshot(self._snapshot(scope.collection_path))

    def _schedule(self, token: int) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._deliver(token)
        else:
            loop.call_soon(self._deliver, token)

    def _publish(self, path: str) -> None:
        for token, (scope, _, _) in list(self._subscribers.items()):
            if scope.collection_path == path:
                self._schedule(token)

    def add_record(self, scope: FilterScope, record: Resource) -> None:
        """Insert or replace a bug record in the scope's collection."""
        collection = self._collections.setdefault(scope.collection_path, {})
        collection[record.id] = Resource(
            id=record.id, title=record.title, linked_ids=list(record.linked_ids or []), kind=record.kind
        )
        self._save()
        self._publish(scope.collection_path)

    def delete_record(self, scope: FilterScope, record_id: str) -> None:
        """Delete a bug record; deleting an unknown id does nothing."""
        collection = self._collections.get(scope.collection_path, {})
        if collection.pop(record_id, None) is None:
            return
        self._save()
        self._publish(scope.collection_path)

    def fail_subscribers(self, scope: FilterScope, error: object) -> None:
        """Report ``error`` to every subscriber of the scope's collection."""
        for scope_, _, on_error in list(self._subscribers.values()):
            if scope_.collection_path == scope.collection_path:
                on_error(error)

    def subscribe(self, scope: FilterScope, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> Unsubscribe:
        """Subscribe to a collection; the first snapshot is delivered right away."""
        self._check_scope(scope)
        token = next(self._tokens)
        self._subscribers[token] = (scope, on_snapshot, on_error)
        logger.debug("Local subscription added", scope=scope.collection_path, token=token)
        self._schedule(token)

        def unsubscribe() -> None:
            if self._subscribers.pop(token, None) is not None:
                logger.debug("Local subscription removed", token=token)

        return unsubscribe

    async def fetch_once(self, scope: FilterScope) -> list[Resource]:
        """Return the current records of a collection."""
        self._check_scope(scope)
        return self._snapshot(scope.collection_path)

    async def update_linked_ids(self, resource_id: str, linked_ids: list[str]) -> None:
        """Replace a bug's linked ids and push the new snapshot."""
        for path, collection in self._collections.items():
            if resource_id in collection:
                collection[resource_id].linked_ids = list(linked_ids)
                logger.info("Updated linked ids", resource_id=resource_id, count=len(linked_ids))
                self._save()
                self._publish(path)
                return
        raise PersistenceError(f"Bug not found: {resource_id}", code="not-found")
