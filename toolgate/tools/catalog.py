"""
The gateway's tool catalog.

One table of tool definitions, built once at startup from the backend
clients. Handlers are the clients' bound methods; argument names match the
method signatures.
"""

import logging
from typing import List

from ..adapters import Backends
from ..adapters.drive import PERMISSION_ROLES, PERMISSION_TYPES, render_file, render_revision
from ..adapters.github import render_repo
from ..adapters.websearch import render_result
from .base import ParamSpec, ToolSpec
from .registry import ToolRegistry

logger = logging.getLogger(__name__)

CURSOR = ParamSpec(
    "cursor", "string", "Cursor returned as nextCursor by a previous call",
    required=False,
)


def _render_named(item: dict) -> str:
    return f"{item.get('id')}: {item.get('name')}"


def build_tool_table(backends: Backends) -> List[ToolSpec]:
    """Return every tool definition, in listing order."""
    notion = backends.notion
    drive = backends.drive
    github = backends.github
    websearch = backends.websearch

    return [
        # === Notion ===
        ToolSpec(
            name="notion_fetch",
            description="Fetch content from a Notion page or database",
            parameters=[
                ParamSpec("page_id", "string", "The Notion page or database ID"),
            ],
            handler=notion.fetch_content,
            category="notion",
        ),
        ToolSpec(
            name="notion_search",
            description="Search Notion pages and databases shared with the integration",
            parameters=[
                ParamSpec("query", "string", "Search text"),
                CURSOR,
                ParamSpec("page_size", "integer", "Results per page (max 100)", required=False, default=20),
            ],
            handler=notion.search,
            render=_render_named,
            category="notion",
        ),
        # === Google Drive ===
        ToolSpec(
            name="drive_list_files",
            description="List files in Google Drive, optionally filtered by MIME type or folder",
            parameters=[
                ParamSpec("mime_type", "string", "Only files of this MIME type", required=False),
                ParamSpec("folder_id", "string", "Only files inside this folder", required=False),
                ParamSpec("page_size", "integer", "Files per page (max 1000)", required=False, default=100),
                CURSOR,
            ],
            handler=drive.list_files,
            render=render_file,
            category="drive",
        ),
        ToolSpec(
            name="drive_search_files",
            description="Search Google Drive files by name or content",
            parameters=[
                ParamSpec("query", "string", "Text to search for"),
                ParamSpec("docs_only", "boolean", "Only return Google Docs", required=False, default=False),
                CURSOR,
            ],
            handler=drive.search_files,
            render=render_file,
            category="drive",
        ),
        ToolSpec(
            name="drive_list_folders",
            description="List folders in Google Drive",
            parameters=[CURSOR],
            handler=drive.list_folders,
            render=render_file,
            category="drive",
        ),
        ToolSpec(
            name="drive_get_metadata",
            description="Get all metadata for a Google Drive file",
            parameters=[ParamSpec("file_id", "string", "The Drive file ID")],
            handler=drive.get_metadata,
            category="drive",
        ),
        ToolSpec(
            name="drive_export_text",
            description="Export a Google Doc as plain text",
            parameters=[ParamSpec("file_id", "string", "The Google Doc file ID")],
            handler=drive.export_text,
            category="drive",
        ),
        ToolSpec(
            name="drive_download_file",
            description="Download a Google Drive file's content, or export a Google Doc in a given format",
            parameters=[
                ParamSpec("file_id", "string", "The Drive file ID"),
                ParamSpec("mime_type", "string", "Export format for Google Docs, Sheets and Slides", required=False),
            ],
            handler=drive.download_file,
            category="drive",
        ),
        ToolSpec(
            name="drive_create_file",
            description="Create a file or folder in Google Drive",
            parameters=[
                ParamSpec("name", "string", "File name"),
                ParamSpec("mime_type", "string", "MIME type (use application/vnd.google-apps.folder for folders)"),
                ParamSpec("parents", "array", "IDs of the parent folders", required=False),
                ParamSpec("content", "string", "Initial file content", required=False),
            ],
            handler=drive.create_file,
            category="drive",
        ),
        ToolSpec(
            name="drive_update_file",
            description="Rename, move, or replace the content of a Google Drive file",
            parameters=[
                ParamSpec("file_id", "string", "The Drive file ID"),
                ParamSpec("name", "string", "New file name", required=False),
                ParamSpec("add_parents", "array", "Folder IDs to add the file to", required=False),
                ParamSpec("remove_parents", "array", "Folder IDs to remove the file from", required=False),
                ParamSpec("content", "string", "New content (requires mime_type)", required=False),
                ParamSpec("mime_type", "string", "MIME type of the new content", required=False),
            ],
            handler=drive.update_file,
            category="drive",
        ),
        ToolSpec(
            name="drive_list_revisions",
            description="List previous versions of a Google Drive file",
            parameters=[ParamSpec("file_id", "string", "The Drive file ID")],
            handler=drive.list_revisions,
            render=render_revision,
            category="drive",
        ),
        ToolSpec(
            name="drive_delete_file",
            description="Permanently delete a Google Drive file",
            parameters=[ParamSpec("file_id", "string", "The Drive file ID")],
            handler=drive.delete_file,
            category="drive",
        ),
        ToolSpec(
            name="drive_share_file",
            description="Grant sharing permissions on a Google Drive file",
            parameters=[
                ParamSpec("file_id", "string", "The Drive file ID"),
                ParamSpec("role", "string", "Permission role for a single grant",
                          required=False, enum=PERMISSION_ROLES),
                ParamSpec("type", "string", "Grantee type for a single grant",
                          required=False, enum=PERMISSION_TYPES),
                ParamSpec("email_address", "string", "Grantee email (user and group only)", required=False),
                ParamSpec("permissions", "array",
                          "Several grants as {role, type, emailAddress} objects; replaces role/type", required=False),
            ],
            handler=drive.share_file,
            category="drive",
        ),
        # === GitHub ===
        ToolSpec(
            name="github_list_repos",
            description="List public repositories for a GitHub user",
            parameters=[
                ParamSpec("username", "string", "GitHub username"),
                CURSOR,
            ],
            handler=github.list_repos,
            render=render_repo,
            category="github",
        ),
        ToolSpec(
            name="github_get_readme",
            description="Fetch the README of a GitHub repository",
            parameters=[
                ParamSpec("owner", "string", "Repository owner"),
                ParamSpec("repo", "string", "Repository name"),
            ],
            handler=github.get_readme,
            category="github",
        ),
        ToolSpec(
            name="github_get_file",
            description="Fetch a file (e.g. package.json) from a GitHub repository",
            parameters=[
                ParamSpec("owner", "string", "Repository owner"),
                ParamSpec("repo", "string", "Repository name"),
                ParamSpec("path", "string", "Path of the file within the repository"),
            ],
            handler=github.get_file,
            category="github",
        ),
        # === Web search ===
        ToolSpec(
            name="web_search",
            description="Search the web",
            parameters=[ParamSpec("query", "string", "Search query")],
            handler=websearch.search,
            render=render_result,
            category="search",
        ),
        ToolSpec(
            name="company_culture",
            description="Search the web for a company's culture and values",
            parameters=[ParamSpec("company", "string", "Company name")],
            handler=websearch.company_culture,
            render=render_result,
            category="search",
        ),
    ]


def build_registry(backends: Backends) -> ToolRegistry:
    """Create a registry holding the full catalog."""
    registry = ToolRegistry(build_tool_table(backends))
    logger.info(f"Registered {len(registry)} tools")
    return registry
