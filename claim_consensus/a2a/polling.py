"""
任务完成轮询
Fixed-interval polling of GetTaskStatus with a bounded attempt count.
"""

from __future__ import annotations

from typing import Optional

import structlog
from tenacity import AsyncRetrying, retry_if_result, stop_after_attempt, wait_fixed

from claim_consensus.a2a.client import A2AClient
from claim_consensus.models.task import Task, TaskStatus

logger = structlog.get_logger()


def _still_running(task: Optional[Task]) -> bool:
    # None means the status call itself failed; that ends the wait
    return task is not None and not task.status.is_terminal


async def wait_for_task_completion(
    client: A2AClient,
    agent_id: str,
    task_id: str,
    *,
    interval: float = 0.5,
    max_attempts: int = 10,
) -> Optional[Task]:
    """
    Poll until the task reaches a terminal state.

    Returns the terminal task, or None when the deadline
    (``max_attempts`` x ``interval``) passes or the status call fails.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(1, int(max_attempts))),
        wait=wait_fixed(max(0.0, float(interval))),
        retry=retry_if_result(_still_running),
        retry_error_callback=lambda state: None,
    )
    task = await retrying(client.get_task, agent_id, task_id)
    if task is None:
        logger.warning(
            "task_poll_gave_up",
            agent_id=agent_id,
            task_id=task_id,
            max_attempts=max_attempts,
        )
    return task


def completed_text(task: Optional[Task]) -> Optional[str]:
    """First artifact text of a completed task, else None."""
    if task is None or task.status != TaskStatus.COMPLETED:
        return None
    return task.first_artifact_text
