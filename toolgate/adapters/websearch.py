"""
Web search via SerpAPI.
"""

from typing import Any, Dict, List, Optional

from .base import BackendClient

SERPAPI_URL = "https://serpapi.com"


class WebSearchClient(BackendClient):
    """Thin async client for SerpAPI's Google search endpoint."""

    name = "websearch"
    base_url = SERPAPI_URL

    def __init__(self, api_key: Optional[str], **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key

    async def search(self, query: str) -> List[Dict[str, Any]]:
        """Return organic results as ``{title, link, snippet}``."""
        api_key = self._require(self.api_key, "SERPAPI_KEY")
        data = await self._request(
            "GET", "/search.json", params={"q": query, "api_key": api_key}
        )
        return [
            {
                "title": result.get("title"),
                "link": result.get("link"),
                "snippet": result.get("snippet"),
            }
            for result in data.get("organic_results") or []
        ]

    async def company_culture(self, company: str) -> List[Dict[str, Any]]:
        return await self.search(f"{company} company culture values")


def render_result(result: Dict[str, Any]) -> str:
    line = f"{result.get('title')} - {result.get('link')}"
    if result.get("snippet"):
        line += f"\n{result['snippet']}"
    return line
