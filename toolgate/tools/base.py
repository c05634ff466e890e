"""
Base types for the Toolgate tool system.

Tools are named, schema-typed operations with:
- Input parameters (described as JSON schema, validated before dispatch)
- A handler that talks to an external backend
- An optional renderer that turns one result item into a summary line
"""

import base64
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

NO_RESULTS_TEXT = "No results found."


class ErrorCode(str, Enum):
    """Codes attached to failed tool outcomes."""
    UNKNOWN_TOOL = "UNKNOWN_TOOL"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    ADAPTER_FAILURE = "ADAPTER_FAILURE"
    DUPLICATE_TOOL = "DUPLICATE_TOOL"


class ToolError(Exception):
    """Base exception for tool errors."""

    def __init__(self, message: str, code: str = ErrorCode.ADAPTER_FAILURE.value):
        super().__init__(message)
        self.code = code


class ToolNotFoundError(ToolError):
    """Raised when a tool is not registered."""

    def __init__(self, tool_name: str):
        super().__init__(f"Unknown tool: {tool_name}", code=ErrorCode.UNKNOWN_TOOL.value)
        self.tool_name = tool_name


class ValidationError(ToolError):
    """Raised when tool arguments fail validation."""

    def __init__(self, message: str, param: Optional[str] = None):
        super().__init__(message, code=ErrorCode.INVALID_ARGUMENT.value)
        self.param = param


class DuplicateToolError(ToolError):
    """Raised at startup when two tools share a name."""

    def __init__(self, tool_name: str):
        super().__init__(f"Tool already registered: {tool_name}", code=ErrorCode.DUPLICATE_TOOL.value)
        self.tool_name = tool_name


class AdapterError(ToolError):
    """Raised by backend clients when the upstream call fails."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message, code=ErrorCode.ADAPTER_FAILURE.value)
        self.status = status


# === Outcomes and envelopes ===

@dataclass
class Page:
    """A slice of a paginated listing."""

    items: List[Any] = field(default_factory=list)
    next_cursor: Optional[str] = None


@dataclass
class ToolOutcome:
    """
    What a handler produced: either a payload or an error message.

    Use ``ok()`` / ``fail()`` rather than the constructor so an outcome is
    never partially both.
    """

    success: bool
    payload: Any = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def ok(cls, payload: Any) -> "ToolOutcome":
        """Create a successful outcome."""
        return cls(success=True, payload=payload)

    @classmethod
    def fail(cls, error: str, code: str = ErrorCode.ADAPTER_FAILURE.value) -> "ToolOutcome":
        """Create a failed outcome."""
        return cls(success=False, error=error, error_code=code)


@dataclass
class ContentBlock:
    """One renderable unit of a tool response."""

    text: str
    type: str = "text"

    def to_dict(self) -> dict:
        return {"type": self.type, "text": self.text}


@dataclass
class ToolResult:
    """The uniform envelope returned for every dispatched call."""

    content: List[ContentBlock] = field(default_factory=list)
    next_cursor: Optional[str] = None
    is_error: bool = False

    @property
    def text(self) -> str:
        """All block texts joined by newlines."""
        return "\n".join(block.text for block in self.content)

    def to_dict(self) -> dict:
        data = {"content": [block.to_dict() for block in self.content]}
        if self.next_cursor is not None:
            data["nextCursor"] = self.next_cursor
        return data


# === Tool specifications ===

PRIMITIVE_TYPES = ("string", "integer", "number", "boolean", "array", "object")


def matches_type(value: Any, type_name: str) -> bool:
    """Check a value against a JSON-schema primitive type name."""
    # bool is a subclass of int, so it has to be excluded explicitly
    if type_name == "string":
        return isinstance(value, str)
    if type_name == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if type_name == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if type_name == "boolean":
        return isinstance(value, bool)
    if type_name == "array":
        return isinstance(value, (list, tuple))
    if type_name == "object":
        return isinstance(value, dict)
    return True


def json_type_name(value: Any) -> str:
    """Name the JSON type of a Python value, for error messages."""
    if value is None:
        return "null"
    for type_name in ("boolean", "integer", "number", "string", "array", "object"):
        if matches_type(value, type_name):
            return type_name
    return type(value).__name__


@dataclass
class ParamSpec:
    """Specification for a tool parameter."""

    name: str
    type: str = "string"  # "string", "integer", "number", "boolean", "array", "object"
    description: str = ""
    required: bool = True
    default: Any = None
    enum: Optional[List[Any]] = None

    def __post_init__(self):
        if self.type not in PRIMITIVE_TYPES:
            raise ValueError(f"Unsupported parameter type for {self.name!r}: {self.type}")

    def to_json_schema(self) -> dict:
        """Convert to JSON Schema format."""
        schema = {"type": self.type}

        if self.description:
            schema["description"] = self.description
        if self.default is not None:
            schema["default"] = self.default
        if self.enum:
            schema["enum"] = self.enum

        return schema

    def validate(self, value: Any) -> Any:
        """Validate a supplied value, raising ValidationError on mismatch."""
        if not matches_type(value, self.type):
            raise ValidationError(
                f"Invalid argument '{self.name}': expected {self.type}, got {json_type_name(value)}",
                param=self.name,
            )
        if self.enum and value not in self.enum:
            raise ValidationError(
                f"Invalid argument '{self.name}': must be one of {self.enum}",
                param=self.name,
            )
        return value


@dataclass
class ToolSpec:
    """
    Complete definition of a tool.

    The name is the lookup key and is case-sensitive. The handler receives
    validated arguments as keyword arguments and may be sync or async.
    ``render`` turns one list item of a successful payload into a line of
    text; without it the normalizer picks a generic rendering.
    """

    name: str
    description: str = ""
    parameters: List[ParamSpec] = field(default_factory=list)
    handler: Optional[Callable[..., Any]] = None
    render: Optional[Callable[[Any], str]] = None

    category: str = "general"

    def to_json_schema(self) -> dict:
        """Generate JSON Schema for parameters."""
        required = [p.name for p in self.parameters if p.required]
        properties = {p.name: p.to_json_schema() for p in self.parameters}

        return {
            "type": "object",
            "required": required,
            "properties": properties,
        }

    def to_dict(self) -> dict:
        """Serialize the discoverable part of the tool."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.to_json_schema(),
        }

    def validate(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate and normalize arguments.

        Returns validated arguments with defaults filled in. Unknown fields
        are dropped. Raises ValidationError on the first bad field.
        """
        result = {}

        for param_spec in self.parameters:
            name = param_spec.name
            value = arguments.get(name)

            if value is None:
                # Explicit nulls count as "not supplied"
                if param_spec.required:
                    raise ValidationError(f"Missing required argument: {name}", param=name)
                if param_spec.default is not None:
                    result[name] = param_spec.default
                continue

            result[name] = param_spec.validate(value)

        return result


# === Result rendering ===

def to_json(value: Any) -> str:
    """Serialize any value to readable JSON text."""
    if isinstance(value, bytes):
        return bytes_to_text(value)
    return json.dumps(value, indent=2, default=str, ensure_ascii=False)


def bytes_to_text(data: bytes) -> str:
    """Decode bytes as UTF-8, falling back to base64 for binary data."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return base64.b64encode(data).decode("ascii")


def default_render(item: Any) -> str:
    """Render a single list item when the tool supplies no renderer."""
    if isinstance(item, str):
        return item
    if isinstance(item, dict) and "id" in item and "name" in item:
        return f"{item['id']}: {item['name']}"
    return to_json(item)
