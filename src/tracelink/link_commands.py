"""Link management commands for the tracelink CLI."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from cyclopts import App

from tracelink.exceptions import SourceUnavailable
from tracelink.models import Result

link_app = App(name="link", help="Manage links between bugs and test cases")

T = TypeVar("T")


def _report(result: Result, success: str) -> None:
    if result.ok:
        print(success)
    else:
        print(f"Error ({result.error.value}): {result.detail}")


def _run(action: Callable[..., Awaitable[T]]) -> T | None:
    """Run ``action`` against a loaded operator; print load failures instead of raising."""
    from tracelink.cli import open_operator

    async def run() -> T:
        async with open_operator() as operator:
            return await action(operator)

    try:
        return asyncio.run(run())
    except SourceUnavailable as e:
        print(f"Error ({e.code}): {e}")
        return None


@link_app.command
def add(bug_id: str, *test_case_ids: str) -> None:
    """Link test cases to a bug."""
    result = _run(lambda operator: operator.link(bug_id, list(test_case_ids)))
    if result is not None:
        _report(result, f"Linked {len(test_case_ids)} test case(s) to {bug_id}")


@link_app.command
def remove(bug_id: str, test_case_id: str) -> None:
    """Unlink one test case from a bug."""
    result = _run(lambda operator: operator.unlink(bug_id, test_case_id))
    if result is not None:
        _report(result, f"Unlinked {test_case_id} from {bug_id}")


@link_app.command(name="set")
def set_links(bug_id: str, *test_case_ids: str) -> None:
    """Replace all test cases linked to a bug."""
    result = _run(lambda operator: operator.set_links(bug_id, list(test_case_ids)))
    if result is not None:
        _report(result, f"{bug_id} now links {len(test_case_ids)} test case(s)")


@link_app.command
def bulk(*test_case_ids: str, bugs: str) -> None:
    """Link the same test cases to several bugs.

    Args:
        test_case_ids: Test cases to link
        bugs: Comma-separated bug ids
    """
    bug_ids = [bug.strip() for bug in bugs.split(",") if bug.strip()]
    results = _run(lambda operator: operator.bulk_link(bug_ids, list(test_case_ids)))
    for bug_id, result in (results or {}).items():
        _report(result, f"Linked {len(test_case_ids)} test case(s) to {bug_id}")


@link_app.command(name="add-bugs")
def add_bugs(test_case_id: str, *bug_ids: str) -> None:
    """Link one test case to several bugs."""
    results = _run(lambda operator: operator.link_bugs(test_case_id, list(bug_ids)))
    for bug_id, result in (results or {}).items():
        _report(result, f"Linked {test_case_id} to {bug_id}")


@link_app.command(name="remove-bugs")
def remove_bugs(test_case_id: str, *bug_ids: str) -> None:
    """Unlink one test case from several bugs."""
    results = _run(lambda operator: operator.unlink_bugs(test_case_id, list(bug_ids)))
    for bug_id, result in (results or {}).items():
        _report(result, f"Unlinked {test_case_id} from {bug_id}")
