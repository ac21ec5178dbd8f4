"""
讨论 API
Discussion API Endpoints (batch JSON and server-sent events)
"""

import json
from typing import Any, Dict

import structlog
from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from claim_consensus.flows.discussion_flow import (
    DiscussionFailedError,
    DiscussionOrchestrator,
    collect_discussion,
)
from claim_consensus.models.discussion import DiscussionEvent, DiscussionRequest

router = APIRouter()
logger = structlog.get_logger()


def _orchestrator(request: Request) -> DiscussionOrchestrator:
    return request.app.state.orchestrator


def _require_inputs(payload: DiscussionRequest) -> None:
    missing = payload.missing_fields()
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Primary source and claim are required (missing: {', '.join(missing)})",
        )


def _sse_event(event: DiscussionEvent) -> str:
    """Format a Server-Sent Event."""
    data = json.dumps(event.data, ensure_ascii=False, default=str)
    return f"id: {event.event_id}\nevent: {event.event.value}\ndata: {data}\n\n"


@router.post("")
async def run_discussion(payload: DiscussionRequest, request: Request) -> Dict[str, Any]:
    """运行完整讨论并一次性返回结果"""
    _require_inputs(payload)
    try:
        discussion = await collect_discussion(_orchestrator(request).run(payload))
    except DiscussionFailedError as exc:
        logger.warning("discussion_request_failed", claim_id=payload.claim_id, error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    return {"discussion": discussion.to_wire()}


@router.post("/stream")
async def stream_discussion(payload: DiscussionRequest, request: Request) -> StreamingResponse:
    """以 SSE 流式推送讨论事件"""
    _require_inputs(payload)
    orchestrator = _orchestrator(request)

    async def event_generator():
        async for event in orchestrator.run(payload):
            yield _sse_event(event)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
