"""
Agent 端点 API
A2A agent endpoints: JSON-RPC task channel, agent card and health.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from claim_consensus.a2a.agent_card import build_agent_card

router = APIRouter()
logger = structlog.get_logger()


@router.post("/{agent_id}/tasks")
async def agent_tasks(agent_id: str, request: Request):
    """
    JSON-RPC 2.0 任务通道

    Always answers HTTP 200; protocol errors travel inside the envelope.
    """
    dispatcher = request.app.state.dispatcher
    body = await request.body()
    response = await dispatcher.dispatch_raw(agent_id, body)
    return JSONResponse(content=response.to_wire())


@router.get("/{agent_id}/health")
async def agent_health(agent_id: str, request: Request):
    registry = request.app.state.agent_registry
    return {
        "agentId": agent_id,
        "status": "ready" if agent_id in registry else "not_initialized",
        "sourceUrl": registry.source_of(agent_id),
    }


@router.get("/{agent_id}")
async def get_agent_card(
    agent_id: str,
    request: Request,
    source_url: Optional[str] = Query(default=None, alias="sourceUrl"),
):
    """返回 Agent Card；带 sourceUrl 时顺便物化该 Agent"""
    if source_url:
        await request.app.state.agent_registry.get_or_create(agent_id, source_url)
        logger.info("agent_card_probe_materialized", agent_id=agent_id, source_url=source_url)
    base_url = str(request.url_for("agent_tasks", agent_id=agent_id)).rsplit("/tasks", 1)[0]
    card = build_agent_card(base_url, agent_id, source_url)
    return card.to_wire()
