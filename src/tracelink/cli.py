"""CLI for tracelink."""

import asyncio
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated, Literal

import structlog
from cyclopts import App, Parameter

from tracelink.backend import Backend
from tracelink.backends import LocalBackend, NotionBackend
from tracelink.config import Config, get_config
from tracelink.config_commands import config_app
from tracelink.exceptions import SourceUnavailable
from tracelink.link_commands import link_app
from tracelink.linker import LinkOperator
from tracelink.notifications import Notification, describe_error
from tracelink.store import RelationshipStore

logger = structlog.get_logger()

app = App(
    help="tracelink - keep bugs and test cases linked",
)

app.command(link_app)
app.command(config_app)


def configure_logging(log_level: str) -> None:
    """Configure structlog with the specified log level."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(min_level=log_level.lower()))


def print_notifier(notification: Notification) -> None:
    """Show error notifications on stderr; commands print their own success lines."""
    if notification.type == "error":
        print(f"{notification.title}: {notification.message}", file=sys.stderr)


def get_backend(config: Config | None = None) -> Backend:
    """Get the configured backend."""
    config = config or get_config()
    backend_type = config.get("backend")

    if backend_type == "local":
        return LocalBackend(data_file=config.get("local.data_file"))
    elif backend_type == "notion":
        token = config.get("notion.token")
        database_id = config.get("notion.database_id")
        if not token or not database_id:
            raise ValueError(
                "Notion token and database not configured. Set them using:\n"
                "  tracelink config set notion.token <token>\n"
                "  tracelink config set notion.database_id <database_id>"
            )
        return NotionBackend(
            token=token,
            database_id=database_id,
            relation_property=config.get("notion.relation_property"),
            suite_property=config.get("notion.suite_property"),
            poll_interval=config.get_float("notion.poll_interval"),
        )
    else:
        raise ValueError(f"Unknown backend: {backend_type}")


@asynccontextmanager
async def open_store(config: Config | None = None) -> AsyncIterator[RelationshipStore]:
    """Yield a store loaded once from the configured backend."""
    config = config or get_config()
    store = RelationshipStore(get_backend(config), config.scope(), notifier=print_notifier)
    try:
        await store.refresh()
        yield store
    finally:
        store.dispose()


@asynccontextmanager
async def open_operator(config: Config | None = None) -> AsyncIterator[LinkOperator]:
    """Yield a link operator bound to a freshly loaded store.

    Raises:
        SourceUnavailable: If the store could not be loaded
    """
    config = config or get_config()
    async with open_store(config) as store:
        if store.error:
            raise SourceUnavailable(describe_error(store.error), code=store.error)
        yield LinkOperator(
            store,
            store.backend.update_linked_ids,
            timeout=config.get_float("link.timeout"),
            notifier=print_notifier,
        )


def _print_map(store: RelationshipStore) -> None:
    titles = {record.id: record.title for record in store.records()}
    mapping = store.get_relationship_map()
    if not mapping:
        print("No bugs found")
        return

    for bug_id, test_case_ids in mapping.items():
        linked = ", ".join(test_case_ids) if test_case_ids else "-"
        print(f"{bug_id} {titles.get(bug_id, '')}: {linked}")


@app.command
def show() -> None:
    """Show the test cases linked to each bug."""

    async def run() -> None:
        async with open_store() as store:
            _print_map(store)

    asyncio.run(run())


@app.command
def trace(test_case_id: str) -> None:
    """Show the bugs linked to a test case."""

    async def run() -> list[str]:
        async with open_store() as store:
            return store.linked_bug_ids(test_case_id)

    bug_ids = asyncio.run(run())
    if not bug_ids:
        print(f"No bugs linked to {test_case_id}")
        return
    print(f"Bugs linked to {test_case_id}:")
    for bug_id in bug_ids:
        print(f"  - {bug_id}")


@app.command
def watch(duration: float | None = None) -> None:
    """Print the relationship map every time it changes.

    Args:
        duration: Stop after this many seconds; runs until interrupted when omitted.
    """
    config = get_config()

    async def run() -> None:
        store = RelationshipStore(get_backend(config), config.scope(), notifier=print_notifier)
        store.on_change(_print_map)
        with store:
            if duration is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(duration)

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        print("Stopped")


@app.meta.default
def main(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "critical",
) -> None:
    """Main entry point with global options."""
    configure_logging(log_level)
    app(tokens)


if __name__ == "__main__":
    app.meta()
