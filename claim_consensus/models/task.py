"""
A2A 任务模型
A2A Task Models
"""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import ConfigDict, Discriminator, Field, Tag, TypeAdapter

from claim_consensus.models.base import WireModel

Modality = Literal["text", "file", "json"]
Content = Union[str, Dict[str, Any]]

TASK_EXECUTION_ERROR = "TASK_EXECUTION_ERROR"


def utc_now_iso() -> str:
    return datetime.utcnow().isoformat() + "Z"


class TaskStatus(str, Enum):
    """任务状态"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in {TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED}


class TaskType(str, Enum):
    """已知任务类型；其他类型走 generic 透传"""
    CLAIM_REVIEW = "claim_review"
    CLAIM_VALIDATION = "claim_validation"
    SETTLEMENT_PROPOSAL = "settlement_proposal"


class Artifact(WireModel):
    artifact_id: str
    type: Modality = "text"
    content: Content
    metadata: Optional[Dict[str, Any]] = None


class TaskMessage(WireModel):
    """Message appended to a task through SendMessage."""

    message_id: str
    sender: str = Field(alias="from")
    to: str
    timestamp: str
    modality: Modality = "text"
    content: Content
    metadata: Optional[Dict[str, Any]] = None


class TaskResult(WireModel):
    artifacts: List[Artifact] = Field(default_factory=list)
    messages: List[TaskMessage] = Field(default_factory=list)


class TaskError(WireModel):
    code: str
    message: str
    details: Optional[Any] = None


class Task(WireModel):
    task_id: str
    status: TaskStatus
    created_at: str
    updated_at: str
    task_type: Optional[str] = None
    result: Optional[TaskResult] = None
    error: Optional[TaskError] = None

    @property
    def first_artifact_text(self) -> Optional[str]:
        if not self.result or not self.result.artifacts:
            return None
        content = self.result.artifacts[0].content
        if isinstance(content, str):
            return content
        return json.dumps(content, ensure_ascii=False)


# ==================== StartTask 参数 (tagged union) ====================


class TaskInput(WireModel):
    modality: Modality = "text"
    content: Content

    def as_text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        return json.dumps(self.content, ensure_ascii=False)

    def claim_text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        return str(self.content.get("claim") or "")


class TaskMetadata(WireModel):
    model_config = ConfigDict(extra="allow")

    source_url: Optional[str] = None
    claim_id: Optional[str] = None


class _StartTaskBase(WireModel):
    input: TaskInput
    metadata: TaskMetadata = Field(default_factory=TaskMetadata)


class ClaimReviewParams(_StartTaskBase):
    task_type: Literal["claim_review"] = "claim_review"


class ClaimValidationParams(_StartTaskBase):
    task_type: Literal["claim_validation"] = "claim_validation"


class SettlementProposalParams(_StartTaskBase):
    task_type: Literal["settlement_proposal"] = "settlement_proposal"


class GenericTaskParams(_StartTaskBase):
    """Any task type the executor does not specialise; input passes through."""

    task_type: str = Field(min_length=1)


_KNOWN_TASK_TYPES = {member.value for member in TaskType}


def _start_task_tag(value: Any) -> str:
    if isinstance(value, dict):
        task_type = value.get("taskType", value.get("task_type"))
    else:
        task_type = getattr(value, "task_type", None)
    if task_type in _KNOWN_TASK_TYPES:
        return str(task_type)
    return "generic"


StartTaskParams = Annotated[
    Union[
        Annotated[ClaimReviewParams, Tag("claim_review")],
        Annotated[ClaimValidationParams, Tag("claim_validation")],
        Annotated[SettlementProposalParams, Tag("settlement_proposal")],
        Annotated[GenericTaskParams, Tag("generic")],
    ],
    Discriminator(_start_task_tag),
]

start_task_params_adapter: TypeAdapter = TypeAdapter(StartTaskParams)


class SendMessageBody(WireModel):
    modality: Modality = "text"
    content: Content
    metadata: Optional[Dict[str, Any]] = None


class SendMessageParams(WireModel):
    task_id: str = Field(min_length=1)
    message: SendMessageBody


class TaskIdParams(WireModel):
    task_id: str = Field(min_length=1)
