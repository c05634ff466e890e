"""
Tool Registry for Toolgate.

An ordered table of tool definitions, built once at startup. Names are
case-sensitive and unique; registration order is the listing order.
"""

import logging
from typing import Dict, Iterable, List, Optional

from .base import DuplicateToolError, ToolSpec

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Registry for tools.

    Usage:
        registry = ToolRegistry()

        # Register a tool
        registry.register(spec)

        # Find a tool by name
        spec = registry.get("web_search")
    """

    def __init__(self, specs: Optional[Iterable[ToolSpec]] = None):
        # Dicts keep insertion order, which is the discovery order
        self._tools: Dict[str, ToolSpec] = {}

        for spec in specs or ():
            self.register(spec)

    # === Registration ===

    def register(self, spec: ToolSpec) -> None:
        """Register a tool. Fails fast on a duplicate name."""
        if spec.name in self._tools:
            raise DuplicateToolError(spec.name)
        if spec.handler is None:
            raise ValueError(f"Tool {spec.name!r} has no handler")

        self._tools[spec.name] = spec
        logger.debug(f"Registered tool: {spec.name}")

    # === Lookup ===

    def get(self, name: str) -> Optional[ToolSpec]:
        """Get a tool by exact name."""
        return self._tools.get(name)

    def list_specs(self) -> List[ToolSpec]:
        """List all tools in registration order."""
        return list(self._tools.values())

    def list_names(self) -> List[str]:
        """List all tool names in registration order."""
        return list(self._tools.keys())

    def find_by_category(self, category: str) -> List[ToolSpec]:
        """Find tools in a category."""
        return [spec for spec in self._tools.values() if spec.category == category]

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def stats(self) -> dict:
        """Get registry statistics."""
        categories: Dict[str, int] = {}
        for spec in self._tools.values():
            categories[spec.category] = categories.get(spec.category, 0) + 1

        return {
            "tools": len(self._tools),
            "categories": categories,
        }


# Global registry instance
_registry: Optional[ToolRegistry] = None


def get_registry() -> ToolRegistry:
    """
    Get the global registry, building the full catalog on first use.

    The catalog is bound to backend clients created from the global
    configuration.
    """
    global _registry
    if _registry is None:
        from ..adapters import Backends
        from ..config import get_config
        from .catalog import build_registry

        _registry = build_registry(Backends.from_config(get_config().backends))
    return _registry


def set_registry(registry: ToolRegistry) -> None:
    """Set the global registry instance."""
    global _registry
    _registry = registry


def reset_registry() -> None:
    """Reset the global registry instance."""
    global _registry
    _registry = None
