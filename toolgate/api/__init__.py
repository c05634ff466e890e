"""
API server for Toolgate.

Provides HTTP and WebSocket endpoints for:
- Tool invocation
- Tool discovery
- Health and status
"""

from .server import create_app, GatewayServer
from .routes import router

__all__ = [
    "create_app",
    "GatewayServer",
    "router",
]
