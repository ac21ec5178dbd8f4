"""Task executor: turns a StartTask request into one LLM call and one terminal state."""

from __future__ import annotations

import uuid
from typing import Optional

import structlog

from claim_consensus.a2a.errors import (
    AgentNotMaterializedError,
    InvalidTaskTransitionError,
    TaskExecutionError,
)
from claim_consensus.agents.prompts import claim_review_prompt, settlement_prompt
from claim_consensus.models.task import (
    TASK_EXECUTION_ERROR,
    Artifact,
    ClaimReviewParams,
    ClaimValidationParams,
    GenericTaskParams,
    SettlementProposalParams,
    StartTaskParams,
    Task,
)
from claim_consensus.runtime.agent_registry import AgentRegistry
from claim_consensus.runtime.task_store import TaskStore

logger = structlog.get_logger()


def build_task_prompt(params: StartTaskParams) -> str:
    if isinstance(params, (ClaimReviewParams, ClaimValidationParams)):
        return claim_review_prompt(params.input.claim_text())
    if isinstance(params, SettlementProposalParams):
        return settlement_prompt(params.input.claim_text())
    if isinstance(params, GenericTaskParams):
        return params.input.as_text()
    raise TypeError(f"Unsupported task params: {type(params).__name__}")


def _missing_output_fallback(params: StartTaskParams) -> str:
    if isinstance(params, (ClaimReviewParams, ClaimValidationParams)):
        return "Unable to provide review."
    if isinstance(params, SettlementProposalParams):
        return "Settlement proposal generated."
    return ""


class TaskExecutor:
    def __init__(self, store: TaskStore, registry: AgentRegistry):
        self._store = store
        self._registry = registry

    async def execute(self, agent_id: str, task_id: str, params: StartTaskParams) -> Task:
        """
        Run one task to a terminal state.

        Raises TaskExecutionError after recording the failure on the task, so
        the caller can surface it as an RPC error.
        """
        try:
            agent = self._registry.get(agent_id)
            if agent is None:
                raise AgentNotMaterializedError(agent_id)
            prompt = build_task_prompt(params)
            output = await agent.invoke(prompt)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            logger.warning(
                "task_failed",
                agent_id=agent_id,
                task_id=task_id,
                task_type=params.task_type,
                error=message,
            )
            await self._record_failure(task_id, message)
            if isinstance(exc, TaskExecutionError):
                exc.task_id = task_id
                raise
            raise TaskExecutionError(message, task_id=task_id) from exc

        text = output if output is not None else _missing_output_fallback(params)
        artifact = Artifact(
            artifact_id=f"artifact_{uuid.uuid4().hex[:12]}",
            type="text",
            content=text,
        )
        try:
            task = await self._store.complete(task_id, [artifact])
        except InvalidTaskTransitionError as exc:
            # cancelled while the model was still answering
            logger.info("task_result_discarded", task_id=task_id, status=exc.current)
            return await self._store.get(task_id)

        logger.info(
            "task_completed",
            agent_id=agent_id,
            task_id=task_id,
            task_type=params.task_type,
            output_chars=len(text),
        )
        return task

    async def _record_failure(self, task_id: str, message: str) -> Optional[Task]:
        try:
            return await self._store.fail(task_id, TASK_EXECUTION_ERROR, message)
        except InvalidTaskTransitionError as exc:
            logger.info("task_failure_discarded", task_id=task_id, status=exc.current)
            return None
