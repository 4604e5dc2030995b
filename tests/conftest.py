"""Shared fixtures for tracelink tests."""

import asyncio

import pytest

from tracelink.backend import Backend, ErrorCallback, SnapshotCallback, Unsubscribe
from tracelink.exceptions import PersistenceError
from tracelink.models import FilterScope, Resource


class FakeBackend(Backend):
    """Backend whose snapshots and errors are driven by the test."""

    def __init__(self) -> None:
        self.records: list[Resource] = []
        self.subscriptions: list[tuple[FilterScope, SnapshotCallback, ErrorCallback]] = []
        self.unsubscribe_calls = 0
        self.updates: list[tuple[str, list[str]]] = []
        self.update_error: Exception | None = None
        self.update_delay = 0.0
        self.fetch_error: Exception | None = None
        self.fetch_gate: asyncio.Event | None = None
        self.subscribe_error: Exception | None = None

    def subscribe(self, scope: FilterScope, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> Unsubscribe:
        if self.subscribe_error is not None:
            raise self.subscribe_error
        entry = (scope, on_snapshot, on_error)
        self.subscriptions.append(entry)

        def unsubscribe() -> None:
            self.unsubscribe_calls += 1
            if entry in self.subscriptions:
                self.subscriptions.remove(entry)

        return unsubscribe

    async def fetch_once(self, scope: FilterScope) -> list[Resource]:
        if self.fetch_gate is not None:
            await self.fetch_gate.wait()
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.records)

    async def update_linked_ids(self, resource_id: str, linked_ids: list[str]) -> None:
        self.updates.append((resource_id, list(linked_ids)))
        if self.update_delay:
            await asyncio.sleep(self.update_delay)
        if self.update_error is not None:
            raise self.update_error

    def emit(self, records: list[Resource]) -> None:
        """Push a snapshot to every live subscription."""
        self.records = list(records)
        for _, on_snapshot, _ in list(self.subscriptions):
            on_snapshot(list(records))

    def fail(self, error: object) -> None:
        for _, _, on_error in list(self.subscriptions):
            on_error(error)

    def push_stored(self) -> None:
        """Emit a snapshot that reflects every write seen so far."""
        records = {record.id: record for record in self.records}
        for resource_id, linked_ids in self.updates:
            if resource_id in records:
                records[resource_id] = Resource(id=resource_id, title=records[resource_id].title, linked_ids=linked_ids)
        self.emit(list(records.values()))


@pytest.fixture
def scope() -> FilterScope:
    """A complete organization scope."""
    return FilterScope(suite_id="s1", user_id="u1", org_id="acme")


@pytest.fixture
def fake_backend() -> FakeBackend:
    """Create a fake backend."""
    return FakeBackend()


@pytest.fixture
def notifications() -> list:
    """Collects notifications sent to the notifier."""
    return []


@pytest.fixture
def failing_update() -> PersistenceError:
    return PersistenceError("write rejected", code="permission-denied")
