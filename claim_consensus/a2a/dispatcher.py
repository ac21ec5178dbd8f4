"""
A2A JSON-RPC 分发器
A2A JSON-RPC Dispatcher

Validates envelopes, routes by method name and always answers with a typed
success or error envelope. Protocol errors never create a task.
"""

from __future__ import annotations

import json
import uuid
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog
from pydantic import ValidationError

from claim_consensus.a2a.errors import (
    A2AErrorCode,
    A2AProtocolError,
    InvalidParamsError,
    InvalidTaskTransitionError,
    TaskExecutionError,
)
from claim_consensus.models.rpc import (
    JSONRPC_VERSION,
    JsonRpcResponse,
    RequestId,
    create_error_response,
    create_success_response,
)
from claim_consensus.models.task import (
    SendMessageParams,
    TaskIdParams,
    TaskMessage,
    TaskStatus,
    start_task_params_adapter,
    utc_now_iso,
)
from claim_consensus.runtime.agent_registry import AgentRegistry
from claim_consensus.runtime.task_executor import TaskExecutor
from claim_consensus.runtime.task_store import TaskStore

logger = structlog.get_logger()

Handler = Callable[[str, Any], Awaitable[Dict[str, Any]]]


def _parse_params(validate: Callable[[Any], Any], raw: Any, message: str) -> Any:
    try:
        return validate(raw)
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise InvalidParamsError(message, data={"fields": fields}) from exc


class A2ADispatcher:
    """Routes StartTask / SendMessage / GetTaskStatus / CancelTask."""

    def __init__(self, store: TaskStore, registry: AgentRegistry, executor: TaskExecutor):
        self._store = store
        self._registry = registry
        self._executor = executor
        self._handlers: Dict[str, Handler] = {
            "StartTask": self._start_task,
            "SendMessage": self._send_message,
            "GetTaskStatus": self._get_task_status,
            "CancelTask": self._cancel_task,
        }

    @property
    def methods(self) -> list:
        return list(self._handlers.keys())

    async def dispatch_raw(self, agent_id: str, body: bytes) -> JsonRpcResponse:
        try:
            payload = json.loads(body or b"")
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            return create_error_response(None, A2AErrorCode.PARSE_ERROR, f"Parse error: {exc}")
        return await self.dispatch(agent_id, payload)

    async def dispatch(self, agent_id: str, payload: Any) -> JsonRpcResponse:
        if not isinstance(payload, dict):
            return create_error_response(
                None, A2AErrorCode.INVALID_REQUEST, "Invalid JSON-RPC 2.0 request"
            )

        request_id: RequestId = payload.get("id")
        if not isinstance(request_id, (str, int, type(None))) or isinstance(request_id, bool):
            request_id = None
        method = payload.get("method")
        if payload.get("jsonrpc") != JSONRPC_VERSION or not isinstance(method, str) or not method:
            return create_error_response(
                request_id, A2AErrorCode.INVALID_REQUEST, "Invalid JSON-RPC 2.0 request"
            )

        handler = self._handlers.get(method)
        if handler is None:
            return create_error_response(
                request_id, A2AErrorCode.METHOD_NOT_FOUND, f"Method {method} not found"
            )

        try:
            result = await handler(agent_id, payload.get("params"))
        except A2AProtocolError as exc:
            return create_error_response(request_id, exc.code, exc.message, exc.data)
        except TaskExecutionError as exc:
            return create_error_response(
                request_id,
                A2AErrorCode.INTERNAL_ERROR,
                str(exc) or "Task execution failed",
                {"taskId": exc.task_id} if exc.task_id else None,
            )
        except Exception as exc:
            logger.error(
                "a2a_handler_crashed",
                agent_id=agent_id,
                method=method,
                error=str(exc),
                exc_info=True,
            )
            return create_error_response(
                request_id, A2AErrorCode.INTERNAL_ERROR, str(exc) or "Internal server error"
            )
        return create_success_response(request_id, result)

    # ==================== handlers ====================

    async def _start_task(self, agent_id: str, raw: Any) -> Dict[str, Any]:
        params = _parse_params(
            start_task_params_adapter.validate_python,
            raw,
            "Missing required parameters: taskType, input",
        )
        # materialize on first contact; a failure here surfaces as a failed task
        await self._registry.get_or_create(agent_id, params.metadata.source_url)

        task = await self._store.create(task_type=params.task_type)
        logger.info(
            "task_started",
            agent_id=agent_id,
            task_id=task.task_id,
            task_type=params.task_type,
            claim_id=params.metadata.claim_id,
        )
        task = await self._executor.execute(agent_id, task.task_id, params)
        return {"taskId": task.task_id, "status": task.status.value}

    async def _send_message(self, agent_id: str, raw: Any) -> Dict[str, Any]:
        params: SendMessageParams = _parse_params(
            SendMessageParams.model_validate,
            raw,
            "Missing required parameters: taskId, message",
        )
        metadata: Optional[Dict[str, Any]] = params.message.metadata
        message = TaskMessage(
            message_id=f"msg_{uuid.uuid4().hex[:16]}",
            sender=agent_id,
            to=str((metadata or {}).get("to") or "unknown"),
            timestamp=utc_now_iso(),
            modality=params.message.modality,
            content=params.message.content,
            metadata=metadata,
        )
        stored = await self._store.append_message(params.task_id, message)
        return {"messageId": stored.message_id}

    async def _get_task_status(self, agent_id: str, raw: Any) -> Dict[str, Any]:
        params: TaskIdParams = _parse_params(
            TaskIdParams.model_validate, raw, "Missing required parameter: taskId"
        )
        task = await self._store.get(params.task_id)
        return task.to_wire()

    async def _cancel_task(self, agent_id: str, raw: Any) -> Dict[str, Any]:
        params: TaskIdParams = _parse_params(
            TaskIdParams.model_validate, raw, "Missing required parameter: taskId"
        )
        current = await self._store.get(params.task_id)
        if current.status == TaskStatus.CANCELLED:
            return {"taskId": current.task_id, "status": current.status.value}
        try:
            task = await self._store.cancel(params.task_id)
        except InvalidTaskTransitionError as exc:
            raise InvalidParamsError(f"Cannot cancel task in {exc.current} status") from exc
        return {"taskId": task.task_id, "status": task.status.value}
