"""
Shared HTTP plumbing for backend clients.
"""

import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import aiohttp

from ..tools.base import AdapterError

logger = logging.getLogger(__name__)

_DOT_SEGMENTS = (".", "..")


def path_segment(value: str) -> str:
    """Quote a caller-supplied value for use as exactly one URL path segment."""
    if not value or value in _DOT_SEGMENTS:
        raise AdapterError(f"Invalid path segment: {value!r}")
    return quote(value, safe="")


def relative_path(value: str) -> str:
    """
    Quote a slash-separated relative path segment by segment.

    Empty segments are dropped; `.` and `..` are rejected so the path can
    never climb out of the resource it is appended to.
    """
    segments = [segment for segment in value.split("/") if segment]
    if not segments:
        raise AdapterError("Path is empty")
    return "/".join(path_segment(segment) for segment in segments)


class BackendClient:
    """
    Base class for backend clients.

    Holds an aiohttp session (shared when one is passed in, otherwise
    created lazily and owned by the client) and turns HTTP failures into
    AdapterError with the upstream message preserved.
    """

    name = "backend"
    base_url = ""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 30.0,
    ):
        self._session = session
        self._owns_session = session is None
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    def use_session(self, session: aiohttp.ClientSession) -> None:
        """Share a session owned by someone else."""
        self._session = session
        self._owns_session = False

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def _auth_headers(self) -> Dict[str, str]:
        return {}

    def _require(self, value: Optional[str], setting: str) -> str:
        if not value:
            raise AdapterError(f"{self.name} is not configured: set {setting}")
        return value

    async def _request(
        self,
        method: str,
        path: str,
        *,
        expect: str = "json",
        authenticated: bool = True,
        headers: Optional[Dict[str, str]] = None,
        **kwargs
    ) -> Any:
        """
        Perform one HTTP round trip.

        ``expect`` selects the body decoding: "json", "text", "bytes" or
        "response" (returns ``(body_json, response_headers)``).
        """
        url = path if path.startswith("http") else f"{self.base_url}{path}"
        request_headers = await self._auth_headers() if authenticated else {}
        if headers:
            request_headers.update(headers)

        session = await self._get_session()
        logger.debug(f"{self.name} {method} {url}")

        try:
            async with session.request(
                method, url, headers=request_headers, timeout=self.timeout, **kwargs
            ) as resp:
                if resp.status >= 400:
                    detail = await resp.text()
                    raise AdapterError(
                        f"{self.name} returned HTTP {resp.status}: {detail}",
                        status=resp.status,
                    )

                if resp.status == 204:
                    return None
                if expect == "text":
                    return await resp.text()
                if expect == "bytes":
                    return await resp.read()
                if expect == "response":
                    return await resp.json(content_type=None), dict(resp.headers)
                return await resp.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise AdapterError(f"{self.name} request timed out") from e
        except aiohttp.ClientError as e:
            raise AdapterError(f"{self.name} request failed: {e}") from e
