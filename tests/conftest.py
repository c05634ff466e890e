"""
Shared fixtures for the Toolgate tests.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from toolgate.api.server import create_app
from toolgate.auth import InMemoryRateLimiter
from toolgate.config import Config, GuardConfig
from toolgate.tools import ParamSpec, ToolRegistry, ToolSpec

API_KEY = "test-key"
ALLOWED_ORIGIN = "https://app.example.com"


def auth_headers(client_address: str = "203.0.113.10", **extra) -> dict:
    """Headers of a well-formed request arriving through a TLS proxy."""
    headers = {
        "x-api-key": API_KEY,
        "x-forwarded-proto": "https",
        "x-forwarded-for": client_address,
    }
    headers.update(extra)
    return headers


async def _echo(message: str):
    return message


async def _slow(delay: float = 0.2):
    await asyncio.sleep(delay)
    return "slow done"


async def _explode():
    raise RuntimeError("upstream exploded")


async def _listing(cursor=None):
    if cursor is None:
        return {"results": [{"id": "1", "name": "first"}], "nextCursor": "page-2"}
    return {"results": [{"id": "2", "name": "second"}]}


def build_test_registry() -> ToolRegistry:
    return ToolRegistry([
        ToolSpec(
            name="echo",
            description="Echo a message",
            parameters=[ParamSpec("message", "string", "Text to echo")],
            handler=_echo,
        ),
        ToolSpec(
            name="slow",
            description="Answer after a delay",
            parameters=[ParamSpec("delay", "number", required=False, default=0.2)],
            handler=_slow,
        ),
        ToolSpec(name="explode", description="Always fails", handler=_explode),
        ToolSpec(
            name="listing",
            description="Paginated listing",
            parameters=[ParamSpec("cursor", "string", required=False)],
            handler=_listing,
        ),
    ])


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        data_dir=tmp_path,
        guard=GuardConfig(api_keys=[API_KEY], allowed_origins=[ALLOWED_ORIGIN]),
    )


@pytest.fixture
def rate_limiter() -> InMemoryRateLimiter:
    return InMemoryRateLimiter(limit=100, window_seconds=60)


@pytest.fixture
def client(config, rate_limiter):
    app = create_app(config, registry=build_test_registry(), rate_limiter=rate_limiter)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_headers():
    return auth_headers
