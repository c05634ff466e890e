"""
Google Drive client.

Every public method reports failure as ``{"error": message}`` instead of
raising; the gateway folds that shape into a failed outcome.
"""

import functools
import logging
import time
from typing import Any, Dict, List, Optional

import aiohttp

from ..tools.base import AdapterError
from .base import BackendClient, path_segment

logger = logging.getLogger(__name__)

DRIVE_API = "https://www.googleapis.com/drive/v3"
TOKEN_URL = "https://oauth2.googleapis.com/token"
UPLOAD_API = "https://www.googleapis.com/upload/drive/v3"

DOC_MIME_TYPE = "application/vnd.google-apps.document"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"

FILE_FIELDS = "id, name, mimeType, parents, modifiedTime"

PERMISSION_ROLES = ["reader", "commenter", "writer", "fileOrganizer", "organizer", "owner"]
PERMISSION_TYPES = ["user", "group", "domain", "anyone"]


def escape_query(value: str) -> str:
    """Escape a value for use inside a Drive query string literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def error_field(method):
    """Report AdapterError as an ``{"error": ...}`` mapping."""
    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            return await method(self, *args, **kwargs)
        except AdapterError as e:
            logger.warning(f"Drive call {method.__name__} failed: {e}")
            return {"error": str(e)}
    return wrapper


class DriveClient(BackendClient):
    """Thin async client for the Drive v3 REST API using a refresh token."""

    name = "drive"
    base_url = DRIVE_API

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        refresh_token: Optional[str],
        **kwargs
    ):
        super().__init__(**kwargs)
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token

        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0

    async def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {await self._get_access_token()}"}

    async def _get_access_token(self) -> str:
        # Refresh a minute early so a token never expires mid-request
        if self._access_token and time.monotonic() < self._token_expires_at - 60:
            return self._access_token

        data = await self._request(
            "POST",
            TOKEN_URL,
            authenticated=False,
            data={
                "client_id": self._require(self.client_id, "GOOGLE_CLIENT_ID"),
                "client_secret": self._require(self.client_secret, "GOOGLE_CLIENT_SECRET"),
                "refresh_token": self._require(self.refresh_token, "GOOGLE_REFRESH_TOKEN"),
                "grant_type": "refresh_token",
            },
        )
        if "access_token" not in data:
            raise AdapterError("drive token refresh returned no access token")

        self._access_token = data["access_token"]
        self._token_expires_at = time.monotonic() + float(data.get("expires_in", 3600))
        return self._access_token

    async def _list(
        self,
        query: Optional[str],
        page_size: int = 100,
        cursor: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "fields": f"nextPageToken, files({FILE_FIELDS})",
            "pageSize": page_size,
        }
        if query:
            params["q"] = query
        if cursor:
            params["pageToken"] = cursor

        data = await self._request("GET", "/files", params=params)
        return {
            "results": data.get("files", []),
            "nextCursor": data.get("nextPageToken"),
        }

    @error_field
    async def list_files(
        self,
        mime_type: Optional[str] = None,
        folder_id: Optional[str] = None,
        page_size: int = 100,
        cursor: Optional[str] = None,
    ) -> Dict[str, Any]:
        """List files, optionally filtered by MIME type or parent folder."""
        clauses = ["trashed = false"]
        if mime_type:
            clauses.append(f"mimeType = '{escape_query(mime_type)}'")
        if folder_id:
            clauses.append(f"'{escape_query(folder_id)}' in parents")
        return await self._list(" and ".join(clauses), page_size=page_size, cursor=cursor)

    @error_field
    async def search_files(
        self,
        query: str,
        docs_only: bool = False,
        cursor: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Full-text search over file names and contents."""
        clauses = [f"fullText contains '{escape_query(query)}'", "trashed = false"]
        if docs_only:
            clauses.append(f"mimeType = '{DOC_MIME_TYPE}'")
        return await self._list(" and ".join(clauses), cursor=cursor)

    @error_field
    async def list_folders(self, cursor: Optional[str] = None) -> Dict[str, Any]:
        return await self._list(f"mimeType = '{FOLDER_MIME_TYPE}' and trashed = false", cursor=cursor)

    @error_field
    async def get_metadata(self, file_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/files/{path_segment(file_id)}", params={"fields": "*"})

    @error_field
    async def export_text(self, file_id: str) -> Any:
        """Export a Google Doc as plain text."""
        return await self._request(
            "GET",
            f"/files/{path_segment(file_id)}/export",
            params={"mimeType": "text/plain"},
            expect="text",
        )

    @error_field
    async def download_file(self, file_id: str, mime_type: Optional[str] = None) -> Any:
        """
        Download a file's raw content.

        Google Docs, Sheets and Slides have no content of their own; pass
        ``mime_type`` to export them in that format instead.
        """
        segment = path_segment(file_id)
        if mime_type:
            return await self._request(
                "GET", f"/files/{segment}/export", params={"mimeType": mime_type}, expect="bytes"
            )
        return await self._request("GET", f"/files/{segment}", params={"alt": "media"}, expect="bytes")

    @error_field
    async def create_file(
        self,
        name: str,
        mime_type: str,
        parents: Optional[List[str]] = None,
        content: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a file or folder, uploading ``content`` when given."""
        metadata: Dict[str, Any] = {"name": name, "mimeType": mime_type}
        if parents:
            metadata["parents"] = list(parents)

        if content is None:
            return await self._request("POST", "/files", params={"fields": "*"}, json=metadata)
        return await self._upload("POST", "/files", metadata, content, mime_type)

    @error_field
    async def update_file(
        self,
        file_id: str,
        name: Optional[str] = None,
        add_parents: Optional[List[str]] = None,
        remove_parents: Optional[List[str]] = None,
        content: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Rename or move a file; content is replaced only when a MIME type comes with it."""
        params: Dict[str, Any] = {"fields": "*"}
        if add_parents:
            params["addParents"] = ",".join(add_parents)
        if remove_parents:
            params["removeParents"] = ",".join(remove_parents)

        metadata: Dict[str, Any] = {}
        if name:
            metadata["name"] = name

        path = f"/files/{path_segment(file_id)}"
        if content is not None and mime_type:
            return await self._upload("PATCH", path, metadata, content, mime_type, params)
        return await self._request("PATCH", path, params=params, json=metadata)

    async def _upload(
        self,
        method: str,
        path: str,
        metadata: Dict[str, Any],
        content: str,
        mime_type: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        # Metadata and media travel together as multipart/related
        upload_params: Dict[str, Any] = {"uploadType": "multipart", "fields": "*"}
        upload_params.update(params or {})

        with aiohttp.MultipartWriter("related") as writer:
            writer.append_json(metadata)
            writer.append(content, {"Content-Type": mime_type})

        return await self._request(method, f"{UPLOAD_API}{path}", params=upload_params, data=writer)

    @error_field
    async def list_revisions(self, file_id: str) -> Any:
        data = await self._request("GET", f"/files/{path_segment(file_id)}/revisions")
        return data.get("revisions", [])

    @error_field
    async def delete_file(self, file_id: str) -> Dict[str, Any]:
        await self._request("DELETE", f"/files/{path_segment(file_id)}", expect="text")
        return {"success": True, "id": file_id}

    @error_field
    async def share_file(
        self,
        file_id: str,
        role: Optional[str] = None,
        type: Optional[str] = None,
        email_address: Optional[str] = None,
        permissions: Optional[List[Dict[str, Any]]] = None,
    ) -> Any:
        """
        Grant permissions on a file.

        Pass ``role``/``type`` (plus ``email_address``) for a single grant,
        or ``permissions`` as a list of ``{role, type, emailAddress}``
        mappings. Every grant is checked before any is sent; grants are then
        created in order and the first upstream failure stops the rest.
        """
        if permissions is None:
            permissions = [{"role": role, "type": type}]
            if email_address:
                permissions[0]["emailAddress"] = email_address
        if not permissions:
            return {"error": "At least one permission is required"}

        for permission in permissions:
            problem = permission_problem(permission)
            if problem:
                return {"error": problem}

        segment = path_segment(file_id)
        created = []
        for permission in permissions:
            created.append(await self._request(
                "POST",
                f"/files/{segment}/permissions",
                params={"fields": "*"},
                json=permission,
            ))
        return created


def permission_problem(permission: Any) -> Optional[str]:
    """Describe what is wrong with a permission grant, or None if it is valid."""
    if not isinstance(permission, dict):
        return "Each permission must be an object"

    role = permission.get("role")
    grantee = permission.get("type")
    if role not in PERMISSION_ROLES:
        return f"Invalid permission role: {role!r}"
    if grantee not in PERMISSION_TYPES:
        return f"Invalid permission type: {grantee!r}"
    if grantee in ("user", "group") and not permission.get("emailAddress"):
        return f"emailAddress is required for type '{grantee}'"
    return None


def render_file(item: Dict[str, Any]) -> str:
    """One summary line per Drive file."""
    line = f"{item.get('id')}: {item.get('name')}"
    mime_type = item.get("mimeType")
    if mime_type:
        line += f" ({mime_type})"
    return line


def render_revision(item: Dict[str, Any]) -> str:
    return f"{item.get('id')}: modified {item.get('modifiedTime', 'unknown')}"
