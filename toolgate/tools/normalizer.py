"""
Response normalization.

Backends answer in different shapes: a bare value or list, a mapping with an
``error`` field, or a ``{results, nextCursor}`` page. ``to_outcome`` folds
all of them into a ToolOutcome at the adapter boundary, and ``normalize``
turns any outcome into the uniform ToolResult envelope.
"""

import logging
from typing import Any, Callable, List, Mapping, Optional

from .base import (
    NO_RESULTS_TEXT,
    ContentBlock,
    ErrorCode,
    Page,
    ToolOutcome,
    ToolResult,
    bytes_to_text,
    default_render,
    to_json,
)

logger = logging.getLogger(__name__)

Renderer = Callable[[Any], str]


def to_outcome(native: Any) -> ToolOutcome:
    """Wrap a backend's native return value into a ToolOutcome."""
    if isinstance(native, ToolOutcome):
        return native

    if isinstance(native, Mapping):
        if "error" in native:
            return ToolOutcome.fail(str(native["error"]), code=ErrorCode.ADAPTER_FAILURE.value)
        if "results" in native:
            return ToolOutcome.ok(Page(
                items=list(native.get("results") or []),
                next_cursor=native.get("nextCursor"),
            ))

    return ToolOutcome.ok(native)


def error_result(message: str) -> ToolResult:
    """Build the single-block envelope for a failure."""
    return ToolResult(content=[ContentBlock(f"Error: {message}")], is_error=True)


def normalize(outcome: ToolOutcome, render: Optional[Renderer] = None) -> ToolResult:
    """Convert an outcome into the uniform content envelope."""
    if not outcome.success:
        return error_result(outcome.error or "Unknown error")

    payload = outcome.payload

    if isinstance(payload, Page):
        return ToolResult(
            content=_render_items(payload.items, render),
            next_cursor=payload.next_cursor,
        )

    if isinstance(payload, (list, tuple)):
        return ToolResult(content=_render_items(payload, render))

    if payload is None:
        return ToolResult(content=[ContentBlock(NO_RESULTS_TEXT)])

    if isinstance(payload, str):
        return ToolResult(content=[ContentBlock(payload)])

    if isinstance(payload, (bytes, bytearray)):
        return ToolResult(content=[ContentBlock(bytes_to_text(bytes(payload)))])

    # Mappings and anything unrecognized are serialized whole
    return ToolResult(content=[ContentBlock(to_json(payload))])


def _render_items(items: Any, render: Optional[Renderer]) -> List[ContentBlock]:
    blocks = [ContentBlock(_render_item(item, render)) for item in items]
    if not blocks:
        return [ContentBlock(NO_RESULTS_TEXT)]
    return blocks


def _render_item(item: Any, render: Optional[Renderer]) -> str:
    if render is None:
        return default_render(item)

    try:
        return render(item)
    except Exception as e:
        logger.warning(f"Renderer failed, serializing item instead: {e}")
        return to_json(item)
