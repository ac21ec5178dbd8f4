"""
A2A 客户端
A2A Client

Sends JSON-RPC envelopes to agent endpoints over httpx. Transport failures are
returned as ``InternalError`` envelopes so callers only ever branch on the
envelope.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
import structlog
from pydantic import ValidationError

from claim_consensus.a2a.errors import A2AErrorCode
from claim_consensus.models.agent_card import AgentCard
from claim_consensus.models.rpc import (
    JsonRpcRequest,
    JsonRpcResponse,
    create_error_response,
    create_request,
)
from claim_consensus.models.task import Content, Task

logger = structlog.get_logger()


class A2AClient:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        agents_root: str,
        timeout: Optional[float] = None,
    ):
        self._http = http_client
        self._agents_root = agents_root.rstrip("/")
        self._timeout = timeout

    def agent_url(self, agent_id: str) -> str:
        return f"{self._agents_root}/{agent_id}"

    async def fetch_agent_card(self, agent_id: str, source_url: Optional[str] = None) -> Optional[AgentCard]:
        """GET the agent card; passing ``source_url`` materializes the agent."""
        params = {"sourceUrl": source_url} if source_url else None
        try:
            response = await self._http.get(
                self.agent_url(agent_id), params=params, timeout=self._timeout
            )
            response.raise_for_status()
            return AgentCard.model_validate(response.json())
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("agent_card_fetch_failed", agent_id=agent_id, error=str(exc))
            return None

    async def send(self, agent_id: str, request: JsonRpcRequest) -> JsonRpcResponse:
        try:
            response = await self._http.post(
                f"{self.agent_url(agent_id)}/tasks",
                json=request.model_dump(mode="json"),
                timeout=self._timeout,
            )
            response.raise_for_status()
            return JsonRpcResponse.model_validate(response.json())
        except (httpx.HTTPError, ValidationError, ValueError) as exc:
            logger.warning(
                "a2a_request_failed",
                agent_id=agent_id,
                method=request.method,
                error=str(exc),
            )
            return create_error_response(
                request.id,
                A2AErrorCode.INTERNAL_ERROR,
                str(exc) or exc.__class__.__name__,
            )

    async def call(self, agent_id: str, method: str, params: Any = None) -> JsonRpcResponse:
        return await self.send(agent_id, create_request(method, params))

    async def start_task(
        self,
        agent_id: str,
        task_type: str,
        content: Content,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> JsonRpcResponse:
        modality = "text" if isinstance(content, str) else "json"
        return await self.call(
            agent_id,
            "StartTask",
            {
                "taskType": task_type,
                "input": {"modality": modality, "content": content},
                "metadata": metadata or {},
            },
        )

    async def get_task_status(self, agent_id: str, task_id: str) -> JsonRpcResponse:
        return await self.call(agent_id, "GetTaskStatus", {"taskId": task_id})

    async def get_task(self, agent_id: str, task_id: str) -> Optional[Task]:
        """GetTaskStatus decoded into a Task; None on any error envelope."""
        response = await self.get_task_status(agent_id, task_id)
        if not response.ok or not isinstance(response.result, dict):
            return None
        try:
            return Task.model_validate(response.result)
        except ValidationError as exc:
            logger.warning("task_payload_invalid", agent_id=agent_id, task_id=task_id, error=str(exc))
            return None

    async def send_message(
        self,
        agent_id: str,
        task_id: str,
        content: Content,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> JsonRpcResponse:
        modality = "text" if isinstance(content, str) else "json"
        message: Dict[str, Any] = {"modality": modality, "content": content}
        if metadata:
            message["metadata"] = metadata
        return await self.call(agent_id, "SendMessage", {"taskId": task_id, "message": message})

    async def cancel_task(self, agent_id: str, task_id: str) -> JsonRpcResponse:
        return await self.call(agent_id, "CancelTask", {"taskId": task_id})
