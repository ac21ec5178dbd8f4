"""
数据模型
Data Models
"""

from claim_consensus.models.agent_card import AgentCard
from claim_consensus.models.discussion import (
    A2AMessage,
    AgentIdentity,
    AgreementStatus,
    Discussion,
    DiscussionEvent,
    DiscussionEventType,
    DiscussionRequest,
    FinalAgreement,
    MessageType,
)
from claim_consensus.models.rpc import JsonRpcError, JsonRpcRequest, JsonRpcResponse
from claim_consensus.models.task import Artifact, Task, TaskStatus, TaskType

__all__ = [
    # Task models
    "Artifact",
    "Task",
    "TaskStatus",
    "TaskType",
    # RPC envelopes
    "JsonRpcRequest",
    "JsonRpcResponse",
    "JsonRpcError",
    # Discussion models
    "A2AMessage",
    "AgentIdentity",
    "AgreementStatus",
    "Discussion",
    "DiscussionEvent",
    "DiscussionEventType",
    "DiscussionRequest",
    "FinalAgreement",
    "MessageType",
    # Discovery
    "AgentCard",
]
