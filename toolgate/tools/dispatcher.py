"""
Tool Dispatcher for Toolgate.

Resolves an invocation to a registered tool and runs it:
1. Looks the tool up by name
2. Validates arguments against the tool's parameters
3. Invokes the handler
4. Converts every failure into an error envelope

Nothing raised by a handler escapes ``dispatch``; the caller always gets a
ToolResult back.
"""

import asyncio
import inspect
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .base import ErrorCode, ToolError, ToolNotFoundError, ToolOutcome, ToolResult, ToolSpec
from .normalizer import normalize, to_outcome
from .registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class ToolInvocation:
    """A single request to run a tool."""

    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "ToolInvocation":
        return cls(
            name=data.get("tool", ""),
            arguments=data.get("parameters") or {},
        )


class Dispatcher:
    """
    Runs tool invocations against a registry.

    Usage:
        dispatcher = Dispatcher(registry)

        result = await dispatcher.dispatch(
            ToolInvocation("web_search", {"query": "fastapi"})
        )
    """

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

        # Metrics
        self._dispatches = 0
        self._successes = 0
        self._failures: Counter = Counter()

    async def dispatch(self, invocation: ToolInvocation) -> ToolResult:
        """
        Dispatch a tool invocation.

        Args:
            invocation: Tool name and raw arguments

        Returns:
            ToolResult; failures are encoded as a single "Error: ..." block
        """
        self._dispatches += 1

        spec = self.registry.get(invocation.name)
        if spec is None:
            outcome = ToolOutcome.fail(
                str(ToolNotFoundError(invocation.name)),
                code=ErrorCode.UNKNOWN_TOOL.value,
            )
            return self._finish(invocation, outcome, None)

        outcome = await self._run(spec, invocation.arguments)
        return self._finish(invocation, outcome, spec)

    async def _run(self, spec: ToolSpec, arguments: Any) -> ToolOutcome:
        if not isinstance(arguments, dict):
            return ToolOutcome.fail(
                "Invalid arguments: expected an object",
                code=ErrorCode.INVALID_ARGUMENT.value,
            )

        try:
            validated = spec.validate(arguments)
        except ToolError as e:
            return ToolOutcome.fail(str(e), code=e.code)

        try:
            result = spec.handler(**validated)
            if inspect.isawaitable(result):
                result = await result
        except ToolError as e:
            return ToolOutcome.fail(str(e), code=e.code)
        except Exception as e:
            logger.error(f"Tool {spec.name} failed: {e}")
            return ToolOutcome.fail(str(e) or type(e).__name__, code=ErrorCode.ADAPTER_FAILURE.value)

        return to_outcome(result)

    def _finish(
        self,
        invocation: ToolInvocation,
        outcome: ToolOutcome,
        spec: Optional[ToolSpec],
    ) -> ToolResult:
        if outcome.success:
            self._successes += 1
        else:
            self._failures[outcome.error_code] += 1
            logger.warning(f"Tool call {invocation.name!r} failed ({outcome.error_code}): {outcome.error}")

        return normalize(outcome, spec.render if spec else None)

    async def dispatch_batch(self, invocations: List[ToolInvocation]) -> List[ToolResult]:
        """
        Dispatch several invocations concurrently.

        Returns results in the same order as the invocations.
        """
        return list(await asyncio.gather(*(self.dispatch(inv) for inv in invocations)))

    def stats(self) -> dict:
        """Get dispatcher statistics."""
        failures = sum(self._failures.values())
        return {
            "dispatches": self._dispatches,
            "successes": self._successes,
            "failures": failures,
            "failures_by_code": dict(self._failures),
            "success_rate": self._successes / self._dispatches if self._dispatches > 0 else 0,
        }
