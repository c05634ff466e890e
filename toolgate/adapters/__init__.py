"""
Backend clients for the content stores behind the gateway.

Each client performs one HTTP round trip per call and reports failure
either by raising AdapterError or, for Drive, by returning an
``{"error": ...}`` mapping.
"""

from dataclasses import dataclass
from typing import List, Optional

import aiohttp

from ..config import BackendsConfig
from .base import BackendClient
from .drive import DriveClient
from .github import GitHubClient
from .notion import NotionClient
from .websearch import WebSearchClient


@dataclass
class Backends:
    """The set of clients the tool catalog is built from."""
    notion: NotionClient
    drive: DriveClient
    github: GitHubClient
    websearch: WebSearchClient

    @classmethod
    def from_config(
        cls,
        config: BackendsConfig,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> "Backends":
        timeout = config.request_timeout
        return cls(
            notion=NotionClient(config.notion_token, config.notion_version, session=session, timeout=timeout),
            drive=DriveClient(
                config.google_client_id,
                config.google_client_secret,
                config.google_refresh_token,
                session=session,
                timeout=timeout,
            ),
            github=GitHubClient(config.github_token, session=session, timeout=timeout),
            websearch=WebSearchClient(config.serpapi_key, session=session, timeout=timeout),
        )

    def use_session(self, session: aiohttp.ClientSession) -> None:
        for client in self.clients():
            client.use_session(session)

    def clients(self) -> List[BackendClient]:
        return [self.notion, self.drive, self.github, self.websearch]

    async def close(self) -> None:
        for client in self.clients():
            await client.close()


__all__ = [
    "Backends",
    "BackendClient",
    "DriveClient",
    "GitHubClient",
    "NotionClient",
    "WebSearchClient",
]
