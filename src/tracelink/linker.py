"""Link and unlink test cases on bug records."""

import asyncio
from collections.abc import Awaitable, Callable, Iterable

import structlog

from tracelink.models import LinkError, LinkRequest, Result, UnlinkError, UnlinkRequest
from tracelink.notifications import Notification, Notifier, describe_error, error_code, log_notifier
from tracelink.resolver import diff_links, unique_ids
from tracelink.store import RelationshipStore

logger = structlog.get_logger()

UpdateLinkedIds = Callable[[str, list[str]], Awaitable[None]]

DEFAULT_TIMEOUT = 10.0


def _ordered(target_ids: Iterable[str]) -> list[str]:
    if isinstance(target_ids, (set, frozenset)):
        return sorted(target_ids)
    return unique_ids(target_ids)


def _link_summary(added: int, skipped: int) -> str:
    message = f"Linked {added} test case{'s' if added != 1 else ''} to bug"
    if skipped:
        message += f" ({skipped} already linked)"
    return message


class LinkOperator:
    """Writes link changes to the backend and leaves the store alone.

    The new linked ids are computed from the store's current map and written in a
    single ``update_linked_ids`` call. The store only changes once the backend
    pushes the next snapshot. Calls are not serialized against each other and
    failed writes are never retried.
    """

    def __init__(
        self,
        store: RelationshipStore,
        update_linked_ids: UpdateLinkedIds,
        timeout: float = DEFAULT_TIMEOUT,
        notifier: Notifier | None = None,
    ) -> None:
        """Initialize the operator.

        Args:
            store: Store providing the current relationship map
            update_linked_ids: Persistence call replacing a bug's linked ids
            timeout: Seconds to wait for a write before treating it as failed
            notifier: Receives success and error notifications
        """
        self.store = store
        self.update_linked_ids = update_linked_ids
        self.timeout = timeout
        self.notifier = notifier or log_notifier

    async def link(self, source_id: str, target_ids: Iterable[str]) -> Result:
        """Link all ``target_ids`` to ``source_id``; already linked ids are kept once."""
        targets = _ordered(target_ids)
        logger.info("Linking test cases to bug", source_id=source_id, target_ids=targets)

        if not self.store.has_record(source_id):
            logger.warning("Cannot link unknown bug", source_id=source_id)
            return Result.failure(LinkError.INVALID_SOURCE, f"Unknown bug: {source_id}")

        current = self.store.linked_ids(source_id)
        added = [target for target in targets if target not in current]
        linked = current + added

        detail = await self._write(source_id, linked)
        if detail is not None:
            self._notify_failure("Failed to link test cases", detail)
            return Result.failure(LinkError.PERSISTENCE_FAILURE, detail)

        self._notify_success("Test Cases Linked", _link_summary(len(added), len(targets) - len(added)))
        return Result.success()

    async def unlink(self, source_id: str, target_id: str) -> Result:
        """Remove one link. Removing a link that does not exist succeeds without writing."""
        logger.info("Unlinking test case from bug", source_id=source_id, target_id=target_id)

        current = self.store.linked_ids(source_id)
        if target_id not in current:
            logger.debug("Link already absent", source_id=source_id, target_id=target_id)
            return Result.success()

        detail = await self._write(source_id, [item for item in current if item != target_id])
        if detail is not None:
            self._notify_failure("Failed to unlink test case", detail)
            return Result.failure(UnlinkError.PERSISTENCE_FAILURE, detail)

        self._notify_success("Test Case Unlinked", "Test case unlinked from bug")
        return Result.success()

    async def set_links(self, source_id: str, target_ids: Iterable[str]) -> Result:
        """Make ``target_ids`` the complete set of test cases linked to ``source_id``."""
        if not self.store.has_record(source_id):
            logger.warning("Cannot set links on unknown bug", source_id=source_id)
            return Result.failure(LinkError.INVALID_SOURCE, f"Unknown bug: {source_id}")

        current = self.store.linked_ids(source_id)
        desired = _ordered(target_ids)
        to_add, to_remove = diff_links(current, desired)
        logger.info("Setting bug links", source_id=source_id, added=to_add, removed=to_remove)
        if not to_add and not to_remove:
            return Result.success()

        linked = [item for item in current if item not in to_remove] + to_add
        detail = await self._write(source_id, linked)
        if detail is not None:
            self._notify_failure("Failed to link test cases", detail)
            return Result.failure(LinkError.PERSISTENCE_FAILURE, detail)

        count = len(linked)
        self._notify_success("Test Cases Linked", f"Linked {count} test case{'s' if count != 1 else ''} to bug")
        return Result.success()

    async def bulk_link(self, source_ids: Iterable[str], target_ids: Iterable[str]) -> dict[str, Result]:
        """Link the same test cases to several bugs, one write per bug."""
        sources = unique_ids(source_ids)
        targets = _ordered(target_ids)
        results = await asyncio.gather(*(self.link(source_id, targets) for source_id in sources))
        return dict(zip(sources, results))

    async def link_bugs(self, test_case_id: str, bug_ids: Iterable[str]) -> dict[str, Result]:
        """Link one test case to several bugs.

        Links are stored on bug records only, so this writes ``test_case_id`` onto
        each bug's linked ids. Each bug gets its own write and its own result.
        """
        sources = _ordered(bug_ids)
        logger.info("Linking bugs to test case", test_case_id=test_case_id, bug_ids=sources)
        results = await asyncio.gather(*(self.link(bug_id, [test_case_id]) for bug_id in sources))
        return dict(zip(sources, results))

    async def unlink_bug(self, test_case_id: str, bug_id: str) -> Result:
        """Remove ``test_case_id`` from one bug's linked ids."""
        return await self.unlink(bug_id, test_case_id)

    async def unlink_bugs(self, test_case_id: str, bug_ids: Iterable[str]) -> dict[str, Result]:
        """Remove ``test_case_id`` from several bugs, one write per bug that links it."""
        sources = _ordered(bug_ids)
        results = await asyncio.gather(*(self.unlink(bug_id, test_case_id) for bug_id in sources))
        return dict(zip(sources, results))

    async def submit(self, request: LinkRequest | UnlinkRequest) -> Result:
        """Apply a link or unlink request."""
        if isinstance(request, LinkRequest):
            return await self.link(request.source_id, request.target_ids)
        return await self.unlink(request.source_id, request.target_id)

    async def _write(self, source_id: str, linked_ids: list[str]) -> str | None:
        """Persist ``linked_ids`` and return an error detail on failure."""
        try:
            await asyncio.wait_for(self.update_linked_ids(source_id, linked_ids), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error("Link write timed out", source_id=source_id, timeout=self.timeout)
            return "deadline-exceeded"
        except Exception as e:
            logger.error("Link write failed", source_id=source_id, error=str(e))
            return error_code(e)

        if self.store.disposed:
            logger.debug("Link write finished after store was disposed", source_id=source_id)
        else:
            logger.debug("Link write accepted", source_id=source_id, count=len(linked_ids))
        return None

    def _notify_success(self, title: str, message: str) -> None:
        self.notifier(Notification(type="success", title=title, message=message))

    def _notify_failure(self, title: str, detail: str) -> None:
        self.notifier(Notification(type="error", title=title, message=describe_error(detail)))
