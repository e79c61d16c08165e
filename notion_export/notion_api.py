"""
Notion API wrapper for the export.

Provides a clean interface to Notion's API with:
- Rate limiting compliance
- Pagination
- Recursive block fetching
- Translation of client errors into RemoteError
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

import httpx
from notion_client import Client
from notion_client.errors import HTTPResponseError, RequestTimeoutError
from ratelimit import limits, sleep_and_retry

from .config import Config
from .exceptions import RemoteError

# Notion API rate limit: 3 requests per second
RATE_LIMIT_CALLS = 3
RATE_LIMIT_PERIOD = 1  # second

DEFAULT_TITLE = "Untitled Page"


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def plain_text(rich_text: list[dict]) -> str:
    return "".join(part.get("plain_text", "") for part in rich_text or [])


@dataclass
class NotionPage:
    """A page selected for export."""

    id: str
    title: str
    created_time: Optional[datetime] = None
    last_edited_time: Optional[datetime] = None
    url: str = ""

    @classmethod
    def from_database_row(cls, page: dict, title_property: str = "Name") -> "NotionPage":
        """
        Create NotionPage from a database query result.

        The title comes from ``title_property``; when the database names its
        title column differently, the first property of type ``title`` is used.
        """
        properties = page.get("properties", {})
        title_prop = properties.get(title_property)
        if not title_prop or title_prop.get("type", "title") != "title":
            title_prop = next(
                (p for p in properties.values() if p.get("type") == "title"), {}
            )

        return cls(
            id=page["id"].replace("-", ""),
            title=plain_text(title_prop.get("title", [])).strip() or DEFAULT_TITLE,
            created_time=_parse_time(page.get("created_time")),
            last_edited_time=_parse_time(page.get("last_edited_time")),
            url=page.get("url", ""),
        )

    @classmethod
    def from_child_page_block(cls, block: dict) -> "NotionPage":
        """Create NotionPage from a ``child_page`` block."""
        title = block.get("child_page", {}).get("title", "")
        return cls(
            id=block["id"].replace("-", ""),
            title=title.strip() or DEFAULT_TITLE,
            created_time=_parse_time(block.get("created_time")),
            last_edited_time=_parse_time(block.get("last_edited_time")),
        )


@dataclass
class NotionBlock:
    """Represents a Notion block."""

    id: str
    type: str
    has_children: bool
    content: dict
    children: list["NotionBlock"] = field(default_factory=list)

    @classmethod
    def from_api_response(cls, block: dict) -> "NotionBlock":
        """Create NotionBlock from API response."""
        block_type = block["type"]
        return cls(
            id=block["id"].replace("-", ""),
            type=block_type,
            has_children=block.get("has_children", False),
            content=block.get(block_type, {}),
        )


class NotionAPI:
    """
    Wrapper around the Notion client with rate limiting.

    Every remote failure (API error, timeout, transport error) surfaces as
    RemoteError so callers only deal with one exception type.
    """

    def __init__(self, config: Config, client: Optional[Client] = None):
        """
        Initialize the Notion API client.

        Args:
            config: Configuration instance with Notion token.
            client: Optional pre-built client (used by tests).
        """
        self.config = config
        self.client = client or Client(auth=config.notion_token)
        self._request_count = 0

    @sleep_and_retry
    @limits(calls=RATE_LIMIT_CALLS, period=RATE_LIMIT_PERIOD)
    def _rate_limited_call(self, func: Callable, **kwargs) -> Any:
        """Execute a rate-limited API call."""
        self._request_count += 1
        return func(**kwargs)

    def _call(self, operation: str, target_id: str, func: Callable, **kwargs) -> Any:
        try:
            return self._rate_limited_call(func, **kwargs)
        except (HTTPResponseError, RequestTimeoutError, httpx.HTTPError) as e:
            raise RemoteError(f"{operation} failed for {target_id}: {e}") from e

    def _paginate(self, operation: str, target_id: str, func: Callable, **kwargs) -> list[dict]:
        """Collect ``results`` across all pages of a paginated endpoint."""
        results = []
        start_cursor = None

        while True:
            if start_cursor:
                kwargs["start_cursor"] = start_cursor
            response = self._call(operation, target_id, func, **kwargs)
            results.extend(response.get("results", []))

            if not response.get("has_more"):
                return results
            start_cursor = response.get("next_cursor")

    def query_database(
        self,
        database_id: str,
        status_property: Optional[str] = None,
        published_value: str = "Published",
        status_type: str = "select",
        title_property: str = "Name",
    ) -> list[NotionPage]:
        """
        Get the pages of a database.

        Args:
            database_id: The ID of the database.
            status_property: Property to filter on. No filter when None.
            published_value: Value the status property must equal.
            status_type: Notion property type, ``select`` or ``status``.
            title_property: Name of the title property.

        Returns:
            NotionPage objects in the order returned by Notion.
        """
        kwargs: dict[str, Any] = {"database_id": self._format_page_id(database_id)}
        if status_property:
            kwargs["filter"] = {
                "property": status_property,
                status_type: {"equals": published_value},
            }

        rows = self._paginate(
            "Database query", database_id, self.client.databases.query, **kwargs
        )
        return [
            NotionPage.from_database_row(row, title_property)
            for row in rows
            if row.get("object", "page") == "page"
        ]

    def get_child_pages(self, parent_page_id: str) -> list[NotionPage]:
        """
        Get all child pages of a parent page.

        Only direct children of type ``child_page`` are returned; other
        blocks on the parent page are ignored.
        """
        blocks = self._paginate(
            "Listing child pages",
            parent_page_id,
            self.client.blocks.children.list,
            block_id=self._format_page_id(parent_page_id),
        )
        return [
            NotionPage.from_child_page_block(block)
            for block in blocks
            if block.get("type") == "child_page"
        ]

    def get_block(self, block_id: str) -> dict:
        """Retrieve a single block (a page is also a block)."""
        return self._call(
            "Block retrieve",
            block_id,
            self.client.blocks.retrieve,
            block_id=self._format_page_id(block_id),
        )

    def get_page_blocks(self, page_id: str) -> list[NotionBlock]:
        """
        Get all blocks from a page, with children populated recursively.
        """
        blocks = []
        for block_data in self._paginate(
            "Fetching blocks",
            page_id,
            self.client.blocks.children.list,
            block_id=self._format_page_id(page_id),
        ):
            block = NotionBlock.from_api_response(block_data)

            # child pages are exported on their own, not inlined
            if block.has_children and block.type != "child_page":
                block.children = self.get_page_blocks(block.id)

            blocks.append(block)

        return blocks

    def _format_page_id(self, page_id: str) -> str:
        """
        Format a page ID for API calls.

        Notion API sometimes requires dashes, sometimes doesn't.
        This ensures consistent formatting.
        """
        clean_id = page_id.replace("-", "")

        if len(clean_id) == 32:
            return f"{clean_id[:8]}-{clean_id[8:12]}-{clean_id[12:16]}-{clean_id[16:20]}-{clean_id[20:]}"

        return page_id

    @property
    def request_count(self) -> int:
        """Number of API requests made."""
        return self._request_count
