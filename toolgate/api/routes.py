"""
API routes for Toolgate.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, Field

from ..auth import GuardRequest, RateLimitDecision
from ..tools.dispatcher import ToolInvocation
from .server import get_gateway
from .websocket import stream_endpoint

logger = logging.getLogger(__name__)

router = APIRouter()


# ============ Request/Response Models ============

class ToolCallRequest(BaseModel):
    """Request to invoke a tool."""
    tool: str = Field(..., description="Name of the tool to invoke")
    parameters: Optional[Dict[str, Any]] = Field(default=None, description="Tool arguments")


class ContentBlockModel(BaseModel):
    """One block of tool output."""
    type: str = "text"
    text: str


class ToolCallResponse(BaseModel):
    """Uniform tool response envelope."""
    content: List[ContentBlockModel]
    nextCursor: Optional[str] = None


class ToolDescription(BaseModel):
    """A tool as advertised to callers."""
    name: str
    description: str
    inputSchema: Dict[str, Any]


class ToolListResponse(BaseModel):
    tools: List[ToolDescription]


# ============ Dependencies ============

async def authorize(request: Request) -> RateLimitDecision:
    """Run the request guard; rejections become HTTP errors."""
    gateway = get_gateway(request)
    guard_request = GuardRequest.from_headers(request.headers, request.url.scheme)
    return gateway.guard.authorize(guard_request)


# ============ Routes ============

@router.post("/tools/call", response_model=ToolCallResponse, response_model_exclude_none=True)
async def call_tool(
    body: ToolCallRequest,
    request: Request,
    response: Response,
    decision: RateLimitDecision = Depends(authorize),
):
    """
    Invoke a tool.

    Always answers 200 once the guard has passed: unknown tools, invalid
    arguments and backend failures come back as a single "Error: ..."
    content block. A body without a tool name is rejected by validation
    with 422 before any tool runs; null parameters count as none.
    """
    gateway = get_gateway(request)
    response.headers["X-RateLimit-Limit"] = str(decision.limit)
    response.headers["X-RateLimit-Remaining"] = str(decision.remaining)

    result = await gateway.dispatcher.dispatch(ToolInvocation(body.tool, body.parameters or {}))
    return result.to_dict()


@router.get("/tools", response_model=ToolListResponse)
async def list_tools(request: Request, decision: RateLimitDecision = Depends(authorize)):
    """List tools in registration order."""
    gateway = get_gateway(request)
    return {"tools": [spec.to_dict() for spec in gateway.registry.list_specs()]}


router.add_api_websocket_route("/stream", stream_endpoint)
