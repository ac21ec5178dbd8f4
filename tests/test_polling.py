from typing import List, Optional

import pytest

from claim_consensus.a2a.polling import completed_text, wait_for_task_completion
from claim_consensus.models.task import Artifact, Task, TaskResult, TaskStatus


def _task(status: TaskStatus, text: Optional[str] = None) -> Task:
    result = None
    if text is not None:
        result = TaskResult(artifacts=[Artifact(artifact_id="artifact_1", content=text)])
    return Task(
        task_id="task_1",
        status=status,
        created_at="2024-01-01T00:00:00Z",
        updated_at="2024-01-01T00:00:00Z",
        result=result,
    )


class _ScriptedStatusClient:
    def __init__(self, answers: List[Optional[Task]]):
        self._answers = list(answers)
        self.calls = 0

    async def get_task(self, agent_id: str, task_id: str) -> Optional[Task]:
        self.calls += 1
        if len(self._answers) > 1:
            return self._answers.pop(0)
        return self._answers[0]


@pytest.mark.asyncio
async def test_polls_until_terminal():
    client = _ScriptedStatusClient(
        [_task(TaskStatus.RUNNING), _task(TaskStatus.RUNNING), _task(TaskStatus.COMPLETED, "ok")]
    )
    task = await wait_for_task_completion(client, "agent_peer_1", "task_1", interval=0, max_attempts=5)

    assert client.calls == 3
    assert completed_text(task) == "ok"


@pytest.mark.asyncio
async def test_gives_up_after_max_attempts():
    client = _ScriptedStatusClient([_task(TaskStatus.RUNNING)])
    task = await wait_for_task_completion(client, "agent_peer_1", "task_1", interval=0, max_attempts=4)

    assert task is None
    assert client.calls == 4


@pytest.mark.asyncio
async def test_status_error_stops_polling():
    client = _ScriptedStatusClient([None])
    task = await wait_for_task_completion(client, "agent_peer_1", "task_1", interval=0, max_attempts=10)

    assert task is None
    assert client.calls == 1


@pytest.mark.asyncio
async def test_failed_task_is_terminal_but_has_no_text():
    client = _ScriptedStatusClient([_task(TaskStatus.FAILED)])
    task = await wait_for_task_completion(client, "agent_peer_1", "task_1", interval=0, max_attempts=10)

    assert task.status == TaskStatus.FAILED
    assert completed_text(task) is None
    assert client.calls == 1
