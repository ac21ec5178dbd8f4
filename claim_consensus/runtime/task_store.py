"""
Process-scoped A2A task store.

Tasks live for the lifetime of the process. Mutations on the same task id are
serialized with a per-task lock; different task ids never contend.
"""

from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional, Set

import structlog

from claim_consensus.a2a.errors import InvalidTaskTransitionError, TaskNotFoundError
from claim_consensus.models.task import (
    Artifact,
    Task,
    TaskError,
    TaskMessage,
    TaskResult,
    TaskStatus,
    utc_now_iso,
)

logger = structlog.get_logger()


class TaskStore:
    """In-memory task registry with guarded lifecycle transitions."""

    _STATUS_TRANSITIONS: Dict[TaskStatus, Set[TaskStatus]] = {
        TaskStatus.PENDING: {TaskStatus.RUNNING, TaskStatus.CANCELLED},
        TaskStatus.RUNNING: {TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED},
        TaskStatus.COMPLETED: set(),
        TaskStatus.FAILED: set(),
        TaskStatus.CANCELLED: set(),
    }

    def __init__(self):
        self._tasks: Dict[str, Task] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    @staticmethod
    def new_task_id() -> str:
        return f"task_{uuid.uuid4().hex[:16]}"

    @asynccontextmanager
    async def _locked(self, task_id: str) -> AsyncIterator[Task]:
        lock = self._locks.get(task_id)
        if lock is None:
            raise TaskNotFoundError(task_id)
        async with lock:
            task = self._tasks.get(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)
            yield task

    def _transition(self, task: Task, target: TaskStatus) -> None:
        allowed = self._STATUS_TRANSITIONS.get(task.status, set())
        if target not in allowed:
            raise InvalidTaskTransitionError(task.task_id, task.status.value, target.value)
        task.status = target
        task.updated_at = utc_now_iso()

    async def create(
        self,
        task_type: Optional[str] = None,
        status: TaskStatus = TaskStatus.RUNNING,
    ) -> Task:
        now = utc_now_iso()
        task = Task(
            task_id=self.new_task_id(),
            status=status,
            created_at=now,
            updated_at=now,
            task_type=task_type,
        )
        # ids are fresh uuids, so the lock can be installed before the task is visible
        self._locks[task.task_id] = asyncio.Lock()
        self._tasks[task.task_id] = task
        logger.debug("task_created", task_id=task.task_id, task_type=task_type, status=status.value)
        return task.model_copy(deep=True)

    async def get(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task.model_copy(deep=True)

    async def complete(self, task_id: str, artifacts: List[Artifact]) -> Task:
        if not artifacts:
            raise ValueError("A completed task must carry at least one artifact")
        async with self._locked(task_id) as task:
            self._transition(task, TaskStatus.COMPLETED)
            result = task.result or TaskResult()
            result.artifacts = list(artifacts)
            task.result = result
            return task.model_copy(deep=True)

    async def fail(self, task_id: str, code: str, message: str, details=None) -> Task:
        async with self._locked(task_id) as task:
            self._transition(task, TaskStatus.FAILED)
            task.error = TaskError(code=code, message=message, details=details)
            return task.model_copy(deep=True)

    async def cancel(self, task_id: str) -> Task:
        async with self._locked(task_id) as task:
            self._transition(task, TaskStatus.CANCELLED)
            logger.info("task_cancelled", task_id=task_id)
            return task.model_copy(deep=True)

    async def append_message(self, task_id: str, message: TaskMessage) -> TaskMessage:
        async with self._locked(task_id) as task:
            if task.result is None:
                task.result = TaskResult()
            task.result.messages.append(message)
            task.updated_at = utc_now_iso()
            return message.model_copy(deep=True)

    def __len__(self) -> int:
        return len(self._tasks)
