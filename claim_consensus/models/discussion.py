"""
讨论模型
Discussion Models
"""

from __future__ import annotations

import secrets
import time
import uuid
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import (
    AliasChoices,
    ConfigDict,
    Field,
    SerializationInfo,
    SerializerFunctionWrapHandler,
    field_validator,
    model_serializer,
)

from claim_consensus.models.base import WireModel


def clamp_confidence(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return max(0.0, min(1.0, float(value)))


def now_ms() -> int:
    return int(time.time() * 1000)


class MessageType(str, Enum):
    """A2A 消息类型"""
    QUERY = "query"
    RESPONSE = "response"
    PROPOSAL = "proposal"
    AGREEMENT = "agreement"
    DISAGREEMENT = "disagreement"
    SETTLEMENT = "settlement"


class AgreementStatus(str, Enum):
    """最终共识状态"""
    AGREED = "agreed"
    DISAGREED = "disagreed"
    PARTIAL = "partial"


AgreementLevel = Literal["strong", "moderate", "weak", "none"]


class AgentIdentity(WireModel):
    id: str
    did: Optional[str] = None
    public_key: Optional[str] = None
    name: str
    role: Optional[str] = None
    source_url: Optional[str] = None

    @classmethod
    def generate(cls, agent_id: str, name: str, role: str, source_url: str) -> "AgentIdentity":
        return cls(
            id=agent_id,
            did=f"did:agentic:{agent_id}",
            public_key=f"0x{secrets.token_hex(8)}",
            name=name,
            role=role,
            source_url=source_url,
        )


class MessageMetadata(WireModel):
    model_config = ConfigDict(extra="allow")

    confidence: Optional[float] = None
    evidence: Optional[List[str]] = None
    agreement_level: Optional[AgreementLevel] = None
    settlement_hash: Optional[str] = None
    settlement_error: Optional[str] = None
    topic_id: Optional[str] = None
    transaction_id: Optional[str] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, v):
        return clamp_confidence(v)

    @model_serializer(mode="wrap")
    def _keep_extra_nulls(
        self, handler: SerializerFunctionWrapHandler, info: SerializationInfo
    ) -> Dict[str, Any]:
        # exclude_none only prunes declared fields; caller-supplied keys pass through
        data = handler(self)
        if info.exclude_none:
            for key, value in (self.model_extra or {}).items():
                if value is None:
                    data.setdefault(key, None)
        return data


class A2AMessage(WireModel):
    message_id: str = Field(default_factory=lambda: f"msg_{uuid.uuid4().hex[:16]}")
    sender: str = Field(alias="from")
    to: str
    timestamp: int = Field(default_factory=now_ms)
    claim_id: Optional[str] = None
    type: MessageType
    content: str
    metadata: MessageMetadata = Field(default_factory=MessageMetadata)


class FinalAgreement(WireModel):
    status: AgreementStatus
    confidence: float
    settlement_hash: Optional[str] = None
    settlement_error: Optional[str] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, v):
        return clamp_confidence(v)


class Discussion(WireModel):
    claim_id: str
    claim: str
    agents: List[AgentIdentity] = Field(default_factory=list)
    messages: List[A2AMessage] = Field(default_factory=list)
    final_agreement: Optional[FinalAgreement] = None


class DiscussionEventType(str, Enum):
    INIT = "init"
    STATUS = "status"
    MESSAGE = "message"
    FINAL = "final"
    ERROR = "error"


class DiscussionEvent(WireModel):
    """One step of the discussion state machine, transport agnostic."""

    event: DiscussionEventType
    data: Dict[str, Any] = Field(default_factory=dict)
    sequence: int = 0
    event_id: str = ""


class DiscussionRequest(WireModel):
    """Orchestrator input; peer sources may be plain URLs or ``{url}`` objects."""

    primary_source: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("primarySource", "primary_source", "url"),
    )
    claim: Optional[str] = None
    claim_id: Optional[str] = None
    peer_sources: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("peerSources", "peer_sources", "relatedArticles"),
    )

    @field_validator("peer_sources", mode="before")
    @classmethod
    def _normalize_peer_sources(cls, v):
        if v is None:
            return []
        if not isinstance(v, list):
            raise ValueError("peerSources must be a list")
        normalized: List[str] = []
        for item in v:
            if isinstance(item, str):
                normalized.append(item.strip())
            elif isinstance(item, dict):
                normalized.append(str(item.get("url") or "").strip())
            else:
                raise ValueError("peer source must be a URL string or an object with a url")
        return normalized

    def missing_fields(self) -> List[str]:
        missing = []
        if not (self.primary_source or "").strip():
            missing.append("primarySource")
        if not (self.claim or "").strip():
            missing.append("claim")
        return missing
