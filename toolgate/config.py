"""
Configuration management for Toolgate.

Handles:
- API server settings
- Guard settings (API keys, allowed origins, transport policy)
- Rate-limit settings
- Backend credentials

Settings live in ~/.toolgate/config.json; environment variables override
the file for anything secret.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

# Default paths
DEFAULT_DATA_DIR = Path.home() / ".toolgate"

DEFAULT_API_PORT = 8787


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ServerConfig:
    """Configuration for the API server."""
    host: str = "0.0.0.0"
    port: int = DEFAULT_API_PORT
    debug: bool = False

    def to_dict(self) -> dict:
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ServerConfig":
        known_fields = {"host", "port", "debug"}
        return cls(**{k: v for k, v in data.items() if k in known_fields})


@dataclass
class GuardConfig:
    """Who may call the gateway."""
    api_keys: List[str] = field(default_factory=list)
    allowed_origins: List[str] = field(default_factory=list)
    require_secure_transport: bool = True

    def to_dict(self) -> dict:
        return {
            "api_keys": self.api_keys,
            "allowed_origins": self.allowed_origins,
            "require_secure_transport": self.require_secure_transport
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GuardConfig":
        known_fields = {"api_keys", "allowed_origins", "require_secure_transport"}
        return cls(**{k: v for k, v in data.items() if k in known_fields})


@dataclass
class RateLimitConfig:
    """Fixed-window rate limit per client."""
    limit: int = 100
    window_seconds: float = 60.0
    max_keys: int = 10000

    def to_dict(self) -> dict:
        return {
            "limit": self.limit,
            "window_seconds": self.window_seconds,
            "max_keys": self.max_keys
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RateLimitConfig":
        known_fields = {"limit", "window_seconds", "max_keys"}
        return cls(**{k: v for k, v in data.items() if k in known_fields})


@dataclass
class BackendsConfig:
    """Credentials and endpoints for the content backends."""
    notion_token: Optional[str] = None
    notion_version: str = "2022-06-28"
    github_token: Optional[str] = None
    serpapi_key: Optional[str] = None
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    google_refresh_token: Optional[str] = None
    request_timeout: float = 30.0

    # config.json key -> environment variable
    ENV_VARS = {
        "notion_token": "NOTION_TOKEN",
        "github_token": "GITHUB_TOKEN",
        "serpapi_key": "SERPAPI_KEY",
        "google_client_id": "GOOGLE_CLIENT_ID",
        "google_client_secret": "GOOGLE_CLIENT_SECRET",
        "google_refresh_token": "GOOGLE_REFRESH_TOKEN",
    }

    def to_dict(self) -> dict:
        return {
            "notion_token": self.notion_token,
            "notion_version": self.notion_version,
            "github_token": self.github_token,
            "serpapi_key": self.serpapi_key,
            "google_client_id": self.google_client_id,
            "google_client_secret": self.google_client_secret,
            "google_refresh_token": self.google_refresh_token,
            "request_timeout": self.request_timeout
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BackendsConfig":
        known_fields = set(cls().to_dict())
        return cls(**{k: v for k, v in data.items() if k in known_fields})

    def configured(self) -> Dict[str, bool]:
        """Which backends have credentials."""
        return {
            "notion": bool(self.notion_token),
            "drive": bool(self.google_client_id and self.google_client_secret and self.google_refresh_token),
            "github": bool(self.github_token),
            "websearch": bool(self.serpapi_key),
        }


@dataclass
class Config:
    """
    Main Toolgate configuration.

    Stored at ~/.toolgate/config.json
    """
    # Paths
    data_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)

    # Components
    server: ServerConfig = field(default_factory=ServerConfig)
    guard: GuardConfig = field(default_factory=GuardConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    backends: BackendsConfig = field(default_factory=BackendsConfig)

    @property
    def config_path(self) -> Path:
        return self.data_dir / "config.json"

    def ensure_data_dir(self) -> None:
        """Create data directory if it doesn't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> dict:
        return {
            "server": self.server.to_dict(),
            "guard": self.guard.to_dict(),
            "rate_limit": self.rate_limit.to_dict(),
            "backends": self.backends.to_dict()
        }

    def save(self) -> None:
        """Save configuration to disk."""
        self.ensure_data_dir()

        with open(self.config_path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

        logger.debug(f"Configuration saved to {self.config_path}")

    @classmethod
    def load(cls, data_dir: Optional[Path] = None, env: Optional[Dict[str, str]] = None) -> "Config":
        """Load configuration from disk, then apply environment overrides."""
        data_dir = data_dir or DEFAULT_DATA_DIR
        config_path = data_dir / "config.json"
        config = cls(data_dir=data_dir)

        if config_path.exists():
            with open(config_path, 'r') as f:
                data = json.load(f)

            if "server" in data:
                config.server = ServerConfig.from_dict(data["server"])
            if "guard" in data:
                config.guard = GuardConfig.from_dict(data["guard"])
            if "rate_limit" in data:
                config.rate_limit = RateLimitConfig.from_dict(data["rate_limit"])
            if "backends" in data:
                config.backends = BackendsConfig.from_dict(data["backends"])

        config.apply_env(os.environ if env is None else env)
        return config

    def apply_env(self, env: Dict[str, str]) -> None:
        """Override settings from environment variables."""
        if env.get("TOOLGATE_API_KEYS"):
            self.guard.api_keys = _split_list(env["TOOLGATE_API_KEYS"])
        if env.get("TOOLGATE_ALLOWED_ORIGINS"):
            self.guard.allowed_origins = _split_list(env["TOOLGATE_ALLOWED_ORIGINS"])
        if env.get("TOOLGATE_REQUIRE_HTTPS"):
            self.guard.require_secure_transport = _parse_bool(env["TOOLGATE_REQUIRE_HTTPS"])
        if env.get("TOOLGATE_RATE_LIMIT"):
            self.rate_limit.limit = int(env["TOOLGATE_RATE_LIMIT"])

        for attr, var in BackendsConfig.ENV_VARS.items():
            if env.get(var):
                setattr(self.backends, attr, env[var])

    @classmethod
    def exists(cls, data_dir: Optional[Path] = None) -> bool:
        """Check if configuration exists."""
        data_dir = data_dir or DEFAULT_DATA_DIR
        return (data_dir / "config.json").exists()


# Global config instance
_config: Optional[Config] = None


def get_config(data_dir: Optional[Path] = None) -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load(data_dir)
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None
