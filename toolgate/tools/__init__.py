"""
Toolgate Tool System.

Tools are named, schema-typed operations against the content backends. The
registry holds their definitions, the dispatcher runs them, and the
normalizer turns every outcome into the same content envelope.
"""

from .base import (
    ToolSpec,
    ParamSpec,
    ToolOutcome,
    ToolResult,
    ContentBlock,
    Page,
    ErrorCode,
    ToolError,
    ToolNotFoundError,
    ValidationError,
    DuplicateToolError,
    AdapterError,
)
from .registry import ToolRegistry, get_registry, set_registry, reset_registry
from .dispatcher import Dispatcher, ToolInvocation
from .normalizer import normalize, to_outcome

__all__ = [
    # Base
    "ToolSpec",
    "ParamSpec",
    "ToolOutcome",
    "ToolResult",
    "ContentBlock",
    "Page",
    "ErrorCode",
    "ToolError",
    "ToolNotFoundError",
    "ValidationError",
    "DuplicateToolError",
    "AdapterError",
    # Registry
    "ToolRegistry",
    "get_registry",
    "set_registry",
    "reset_registry",
    # Dispatch
    "Dispatcher",
    "ToolInvocation",
    "normalize",
    "to_outcome",
]
