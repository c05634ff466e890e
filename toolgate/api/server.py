"""
FastAPI server for Toolgate.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import aiohttp
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..adapters import Backends
from ..auth import GuardRejection, InMemoryRateLimiter, RateLimiter, RequestGuard
from ..config import Config, get_config
from ..tools.catalog import build_registry
from ..tools.dispatcher import Dispatcher
from ..tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class GatewayServer:
    """
    Toolgate server state.

    Owns:
    - The request guard and its rate limiter
    - The tool registry and dispatcher
    - The backend clients and their shared HTTP session
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        registry: Optional[ToolRegistry] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self.config = config or get_config()

        self.rate_limiter = rate_limiter or InMemoryRateLimiter(
            limit=self.config.rate_limit.limit,
            window_seconds=self.config.rate_limit.window_seconds,
            max_keys=self.config.rate_limit.max_keys,
        )
        self.guard = RequestGuard(
            api_keys=self.config.guard.api_keys,
            allowed_origins=self.config.guard.allowed_origins,
            rate_limiter=self.rate_limiter,
            require_secure_transport=self.config.guard.require_secure_transport,
        )

        self.backends = Backends.from_config(self.config.backends)
        self.registry = registry if registry is not None else build_registry(self.backends)
        self.dispatcher = Dispatcher(self.registry)

        self._session: Optional[aiohttp.ClientSession] = None
        self._running = False

    async def start(self) -> None:
        """Open the shared HTTP session."""
        timeout = aiohttp.ClientTimeout(total=self.config.backends.request_timeout)
        self._session = aiohttp.ClientSession(timeout=timeout)
        self.backends.use_session(self._session)
        self._running = True

        configured = [name for name, ok in self.config.backends.configured().items() if ok]
        logger.info(f"Toolgate started with {len(self.registry)} tools; configured backends: {configured or 'none'}")

    async def stop(self) -> None:
        """Close HTTP sessions."""
        self._running = False
        await self.backends.close()
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
        logger.info("Toolgate stopped")

    def status(self) -> dict:
        return {
            "status": "running" if self._running else "starting",
            "tools": len(self.registry),
            "dispatcher": self.dispatcher.stats(),
            "rate_limiter": self.rate_limiter.stats(),
        }


def get_gateway(request: Request) -> GatewayServer:
    """Get the gateway attached to the running app."""
    return request.app.state.gateway


async def guard_rejection_handler(request: Request, exc: GuardRejection) -> JSONResponse:
    headers = {}
    if exc.retry_after is not None:
        headers["Retry-After"] = str(max(int(exc.retry_after + 0.999), 1))
    return JSONResponse(status_code=exc.status, content=exc.to_dict(), headers=headers)


def create_app(
    config: Optional[Config] = None,
    registry: Optional[ToolRegistry] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    """Create the FastAPI application."""
    from .routes import router

    gateway = GatewayServer(config, registry=registry, rate_limiter=rate_limiter)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        await gateway.start()
        yield
        await gateway.stop()

    app = FastAPI(
        title="Toolgate",
        description="Uniform tool gateway for content backends",
        version=__version__,
        lifespan=lifespan
    )
    app.state.gateway = gateway

    # CORS for browser callers; the guard still enforces the origin list
    if gateway.config.guard.allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=gateway.config.guard.allowed_origins,
            allow_credentials=False,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    app.add_exception_handler(GuardRejection, guard_rejection_handler)

    app.include_router(router, prefix="/api")

    # Health check
    @app.get("/health")
    async def health():
        return {"status": "ok"}

    # API status
    @app.get("/api")
    async def api_status():
        return {
            "name": "Toolgate",
            "version": __version__,
            **gateway.status()
        }

    return app


def run_server(
    host: str = "0.0.0.0",
    port: int = 8787,
    reload: bool = False,
    log_level: str = "info",
):
    """Run the server with uvicorn."""
    if reload:
        # Reload needs an import string so the worker can rebuild the app
        uvicorn.run(
            "toolgate.api.server:create_app",
            factory=True,
            host=host,
            port=port,
            reload=True,
            log_level=log_level
        )
        return

    uvicorn.run(
        create_app(),
        host=host,
        port=port,
        log_level=log_level
    )
