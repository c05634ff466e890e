"""
GitHub client.

Lists a user's repositories and reads files from a repository. Works
unauthenticated for public data; a token raises the upstream rate limit and
unlocks private repositories.
"""

import base64
import re
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, urlparse

from ..tools.base import AdapterError
from .base import BackendClient, path_segment, relative_path

GITHUB_API = "https://api.github.com"

REPO_FIELDS = (
    "id", "name", "full_name", "description", "topics", "language",
    "stargazers_count", "forks_count", "updated_at", "html_url",
)

_LINK_RE = re.compile(r'<([^>]+)>;\s*rel="([^"]+)"')


def next_page(link_header: Optional[str]) -> Optional[str]:
    """Pull the page number of the rel="next" link, if any."""
    if not link_header:
        return None
    for url, rel in _LINK_RE.findall(link_header):
        if rel == "next":
            pages = parse_qs(urlparse(url).query).get("page")
            return pages[0] if pages else None
    return None


class GitHubClient(BackendClient):
    """Thin async client for the GitHub REST API."""

    name = "github"
    base_url = GITHUB_API

    def __init__(self, token: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.token = token

    async def _auth_headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def list_repos(self, username: str, cursor: Optional[str] = None) -> Dict[str, Any]:
        """List public repositories for a user, 100 per page."""
        params = {"per_page": 100, "page": cursor or "1"}
        data, headers = await self._request(
            "GET", f"/users/{path_segment(username)}/repos", params=params, expect="response"
        )

        repos = [{key: repo.get(key) for key in REPO_FIELDS} for repo in data]
        return {"results": repos, "nextCursor": next_page(headers.get("Link"))}

    async def get_readme(self, owner: str, repo: str) -> str:
        return await self._request(
            "GET",
            f"/repos/{path_segment(owner)}/{path_segment(repo)}/readme",
            headers={"Accept": "application/vnd.github.raw"},
            expect="text",
        )

    async def get_file(self, owner: str, repo: str, path: str) -> str:
        """Read a file's text. Directories are rejected."""
        url = f"/repos/{path_segment(owner)}/{path_segment(repo)}/contents/{relative_path(path)}"
        data = await self._request("GET", url)

        if isinstance(data, list):
            raise AdapterError("Path is a directory")

        if data.get("type") == "file" and data.get("content") and data.get("encoding") == "base64":
            return base64.b64decode(data["content"]).decode("utf-8", errors="replace")
        if data.get("type") == "symlink" and data.get("target"):
            return f"Symlink to: {data['target']}"

        raise AdapterError("Unsupported file type or missing content")


def render_repo(repo: Dict[str, Any]) -> str:
    line = f"{repo.get('full_name') or repo.get('name')} ({repo.get('stargazers_count', 0)} stars)"
    if repo.get("description"):
        line += f": {repo['description']}"
    return line
