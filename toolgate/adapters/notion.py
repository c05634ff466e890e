"""
Notion client.

Fetches pages (or databases) as plain text and searches the workspace.
"""

from typing import Any, Dict, List, Optional

from ..tools.base import AdapterError
from .base import BackendClient, path_segment

NOTION_API = "https://api.notion.com/v1"


def plain_text(rich_text: List[dict]) -> str:
    """Flatten a Notion rich-text array."""
    return "".join(part.get("plain_text", "") for part in rich_text or [])


def page_title(page: dict) -> str:
    """Find the title property of a page or the title of a database."""
    if "title" in page and isinstance(page["title"], list):
        return plain_text(page["title"])

    for prop in (page.get("properties") or {}).values():
        if prop.get("type") == "title":
            return plain_text(prop.get("title", []))
    return ""


def block_text(block: dict) -> str:
    """Extract the text of a single block, if it has any."""
    content = block.get(block.get("type", ""), {})
    if not isinstance(content, dict):
        return ""
    return plain_text(content.get("rich_text", []))


class NotionClient(BackendClient):
    """Thin async client for the Notion REST API."""

    name = "notion"
    base_url = NOTION_API

    def __init__(self, token: Optional[str], version: str = "2022-06-28", **kwargs):
        super().__init__(**kwargs)
        self.token = token
        self.version = version

    async def _auth_headers(self) -> Dict[str, str]:
        token = self._require(self.token, "NOTION_TOKEN")
        return {
            "Authorization": f"Bearer {token}",
            "Notion-Version": self.version,
        }

    async def fetch_content(self, page_id: str) -> List[str]:
        """Return ``[title, body]`` for a page, falling back to a database."""
        segment = path_segment(page_id)
        try:
            page = await self._request("GET", f"/pages/{segment}")
        except AdapterError as e:
            if e.status != 404:
                raise
            database = await self._request("GET", f"/databases/{segment}")
            title = page_title(database) or f"Untitled database ({page_id})"
            return [title, plain_text(database.get("description", [])) or "(no description)"]

        blocks = await self._request("GET", f"/blocks/{segment}/children", params={"page_size": 100})
        lines = [block_text(block) for block in blocks.get("results", [])]
        body = "\n".join(line for line in lines if line)

        return [page_title(page) or f"Untitled page ({page_id})", body or "(empty page)"]

    async def search(
        self,
        query: str,
        cursor: Optional[str] = None,
        page_size: int = 20,
    ) -> Dict[str, Any]:
        """Search pages and databases shared with the integration."""
        payload: Dict[str, Any] = {"query": query, "page_size": page_size}
        if cursor:
            payload["start_cursor"] = cursor

        data = await self._request("POST", "/search", json=payload)

        results = [
            {
                "id": item.get("id"),
                "name": page_title(item) or "(untitled)",
                "object": item.get("object"),
                "url": item.get("url"),
            }
            for item in data.get("results", [])
        ]
        return {
            "results": results,
            "nextCursor": data.get("next_cursor") if data.get("has_more") else None,
        }
