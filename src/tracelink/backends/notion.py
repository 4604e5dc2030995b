"""Notion backend implementation using notion-client."""

import asyncio
from typing import Any

import httpx
import structlog
from notion_client import Client
from notion_client.errors import HTTPResponseError, RequestTimeoutError

from tracelink.backend import Backend, ErrorCallback, SnapshotCallback, Unsubscribe
from tracelink.exceptions import PersistenceError, SourceUnavailable
from tracelink.models import FilterScope, Resource

logger = structlog.get_logger()


class NotionBackend(Backend):
    """Notion-based backend using database pages as bugs.

    Linked test cases live in a relation property on each bug page. Notion has no
    push API, so subscriptions poll the database and deliver every result as a
    full snapshot.
    """

    def __init__(
        self,
        token: str,
        database_id: str,
        relation_property: str = "Test Cases",
        suite_property: str | None = None,
        poll_interval: float = 5.0,
    ) -> None:
        """Initialize Notion backend.

        Args:
            token: Notion integration token
            database_id: Notion database holding bug pages
            relation_property: Relation property pointing at test case pages
            suite_property: Optional select property used to filter pages by suite
            poll_interval: Seconds between polls while subscribed
        """
        self.token = token
        self.database_id = database_id
        self.relation_property = relation_property
        self.suite_property = suite_property
        self.poll_interval = poll_interval

        if not self.token:
            raise ValueError("Notion token required")
        if not self.database_id:
            raise ValueError("Notion database_id required")

        logger.debug("Initializing Notion backend", database_id=database_id)
        self.client = Client(auth=self.token)
        logger.info("Notion backend initialized", database_id=database_id)

    def _parse_properties(self, properties: dict[str, Any]) -> dict[str, Any]:
        """Parse the Notion properties used for bugs into simple values."""
        parsed = {}
        for key, value in properties.items():
            prop_type = value.get("type")

            if prop_type == "title":
                parsed[key] = "".join([t.get("plain_text", "") for t in value.get("title", [])])
            elif prop_type == "rich_text":
                parsed[key] = "".join([t.get("plain_text", "") for t in value.get("rich_text", [])])
            elif prop_type in ("select", "status"):
                option = value.get(prop_type)
                parsed[key] = option.get("name") if option else None
            elif prop_type == "relation":
                parsed[key] = [rel.get("id") for rel in value.get("relation", [])]

        return parsed

    def _page_to_resource(self, page: dict[str, Any]) -> Resource:
        """Convert a Notion page to a bug Resource."""
        properties = self._parse_properties(page.get("properties", {}))
        title = properties.get("Name") or properties.get("Title") or ""
        linked = properties.get(self.relation_property)

        return Resource(
            id=page["id"],
            title=title,
            linked_ids=linked if isinstance(linked, list) else [],
            metadata={
                "url": page.get("url"),
                "status": properties.get("Status"),
                "updated_at": page.get("last_edited_time"),
            },
        )

    def _query_params(self, scope: FilterScope) -> dict[str, Any]:
        query_params: dict[str, Any] = {"database_id": self.database_id, "page_size": 100}
        if self.suite_property:
            if not scope.suite_id:
                raise SourceUnavailable("A suite is required to load bugs", code="failed-precondition")
            query_params["filter"] = {"property": self.suite_property, "select": {"equals": scope.suite_id}}
        return query_params

    def _query_all(self, query_params: dict[str, Any]) -> list[dict[str, Any]]:
        pages: list[dict[str, Any]] = []
        params = dict(query_params)
        while True:
            response = self.client.databases.query(**params)
            pages.extend(response.get("results", []))
            if not response.get("has_more"):
                return pages
            params["start_cursor"] = response.get("next_cursor")

    async def fetch_once(self, scope: FilterScope) -> list[Resource]:
        """Query every bug page for the scope."""
        query_params = self._query_params(scope)
        logger.info("Querying Notion bugs", database_id=self.database_id, suite_id=scope.suite_id)

        try:
            pages = await asyncio.to_thread(self._query_all, query_params)
        except HTTPResponseError as e:
            logger.error("Notion query failed", error=str(e))
            raise SourceUnavailable(str(e), code=getattr(e, "code", None)) from e
        except RequestTimeoutError as e:
            logger.error("Notion query timed out", error=str(e))
            raise SourceUnavailable(str(e), code="deadline-exceeded") from e
        except httpx.HTTPError as e:
            logger.error("Notion query transport error", error=str(e))
            raise SourceUnavailable(str(e), code="unavailable") from e

        resources = [
            self._page_to_resource(page) for page in pages if not page.get("archived") and not page.get("in_trash")
        ]
        logger.debug("Queried Notion bugs", count=len(resources))
        return resources

    def subscribe(self, scope: FilterScope, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> Unsubscribe:
        """Poll the database in a background task until unsubscribed."""
        self._query_params(scope)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise SourceUnavailable("Notion subscriptions need a running event loop", code="unavailable") from e

        async def poll() -> None:
            while True:
                try:
                    records = await self.fetch_once(scope)
                except SourceUnavailable as e:
                    on_error(e)
                except Exception as e:
                    logger.error("Notion poll failed", database_id=self.database_id, error=str(e))
                    on_error(SourceUnavailable(str(e), code="unavailable"))
                else:
                    on_snapshot(records)
                await asyncio.sleep(self.poll_interval)

        task = loop.create_task(poll())
        logger.debug("Notion subscription started", database_id=self.database_id, poll_interval=self.poll_interval)

        def unsubscribe() -> None:
            if not task.done():
                task.cancel()
                logger.debug("Notion subscription stopped", database_id=self.database_id)

        return unsubscribe

    async def update_linked_ids(self, resource_id: str, linked_ids: list[str]) -> None:
        """Replace the relation property of a bug page."""
        logger.info("Updating Notion relation", page_id=resource_id, count=len(linked_ids))
        properties = {self.relation_property: {"relation": [{"id": rel_id} for rel_id in linked_ids]}}

        try:
            await asyncio.to_thread(self.client.pages.update, page_id=resource_id, properties=properties)
        except HTTPResponseError as e:
            logger.error("Notion update failed", page_id=resource_id, error=str(e))
            raise PersistenceError(str(e), code=getattr(e, "code", None)) from e
        except RequestTimeoutError as e:
            logger.error("Notion update timed out", page_id=resource_id, error=str(e))
            raise PersistenceError(str(e), code="deadline-exceeded") from e
        except httpx.HTTPError as e:
            logger.error("Notion update transport error", page_id=resource_id, error=str(e))
            raise PersistenceError(str(e), code="unavailable") from e

        logger.info("Notion relation updated", page_id=resource_id)
