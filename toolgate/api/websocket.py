"""
WebSocket entry point for push-style tool calls.

Clients send JSON messages:
- {"type": "call", "id": ..., "tool": ..., "parameters": {...}}
- {"type": "list"}
- {"type": "ping"}

Each call runs as its own task, so a slow backend does not hold up other
calls on the same socket. Results are pushed back tagged with the call id.
"""

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any, Set

from fastapi import WebSocket, WebSocketDisconnect

from ..auth import GuardRejection, GuardRequest, RejectionKind
from ..tools.dispatcher import ToolInvocation

if TYPE_CHECKING:
    from .server import GatewayServer

logger = logging.getLogger(__name__)

# RFC 6455 close codes
POLICY_VIOLATION = 1008
TRY_AGAIN_LATER = 1013


def close_code(rejection: GuardRejection) -> int:
    if rejection.kind == RejectionKind.RATE_LIMITED:
        return TRY_AGAIN_LATER
    return POLICY_VIOLATION


class StreamSession:
    """One authorized WebSocket connection."""

    def __init__(self, websocket: WebSocket, gateway: "GatewayServer", guard_request: GuardRequest):
        self.websocket = websocket
        self.gateway = gateway
        self.guard_request = guard_request

        self._send_lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()

    async def send(self, message: dict) -> None:
        async with self._send_lock:
            await self.websocket.send_text(json.dumps(message, default=str))

    async def run(self) -> None:
        await self.websocket.accept()
        await self.send({"type": "connected", "tools": self.gateway.registry.list_names()})

        try:
            while True:
                data = await self.websocket.receive_text()
                await self.handle(data)
        except WebSocketDisconnect:
            logger.debug("Stream client disconnected")
        finally:
            for task in self._tasks:
                task.cancel()

    async def handle(self, data: str) -> None:
        try:
            message = json.loads(data)
        except json.JSONDecodeError:
            await self.send({"type": "error", "status": 400, "error": "Invalid JSON"})
            return

        if not isinstance(message, dict):
            await self.send({"type": "error", "status": 400, "error": "Expected a JSON object"})
            return

        msg_type = message.get("type")

        if msg_type == "ping":
            await self.send({"type": "pong"})

        elif msg_type == "list":
            await self.send({
                "type": "tools",
                "tools": [spec.to_dict() for spec in self.gateway.registry.list_specs()],
            })

        elif msg_type == "call":
            await self.start_call(message)

        else:
            await self.send({"type": "error", "status": 400, "error": f"Unknown message type: {msg_type}"})

    async def start_call(self, message: dict) -> None:
        call_id = message.get("id")

        try:
            self.gateway.guard.check_rate_limit(self.guard_request)
        except GuardRejection as e:
            await self.send({"type": "error", "id": call_id, "status": e.status, "error": e.kind.value})
            return

        tool = message.get("tool")
        if not isinstance(tool, str):
            await self.send({"type": "error", "id": call_id, "status": 400, "error": "Missing tool name"})
            return

        invocation = ToolInvocation(tool, message.get("parameters") or {})
        task = asyncio.create_task(self.run_call(call_id, invocation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def run_call(self, call_id: Any, invocation: ToolInvocation) -> None:
        result = await self.gateway.dispatcher.dispatch(invocation)
        try:
            await self.send({"type": "result", "id": call_id, **result.to_dict()})
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.debug(f"Dropped result for call {call_id}: {e}")


async def stream_endpoint(websocket: WebSocket):
    """Guard the handshake, then serve tool calls until the client leaves."""
    gateway = websocket.app.state.gateway
    guard_request = GuardRequest.from_headers(websocket.headers, websocket.url.scheme)

    try:
        gateway.guard.authorize(guard_request)
    except GuardRejection as e:
        logger.info(f"Rejected stream handshake: {e.kind.value}")
        await websocket.close(code=close_code(e), reason=str(e))
        return

    await StreamSession(websocket, gateway, guard_request).run()
