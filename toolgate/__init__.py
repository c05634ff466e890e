"""
Toolgate - one tool endpoint for many content stores.

Exposes Notion, Google Drive, GitHub and web search as named, schema-typed
tools behind a single guarded endpoint that always answers with the same
content envelope.

Example:
    >>> from toolgate.api import create_app
    >>> app = create_app()
"""

__version__ = "1.0.0"

from .config import Config, get_config

__all__ = [
    "__version__",
    "Config",
    "get_config",
]
