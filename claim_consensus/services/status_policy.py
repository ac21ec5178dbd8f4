"""
共识状态策略
Status policies mapping an aggregated discussion to agreed / disagreed / partial.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Protocol

import structlog

from claim_consensus.config import Settings
from claim_consensus.models.discussion import AgreementLevel, AgreementStatus, MessageType

logger = structlog.get_logger()

AskPrimary = Callable[[str], Awaitable[Optional[str]]]

_DISAGREED = re.compile(r"\bdisagreed\b", re.IGNORECASE)
_AGREED = re.compile(r"\bagreed\b", re.IGNORECASE)


@dataclass
class StatusContext:
    claim: str
    confidence: float
    transcript: str
    ask_primary: Optional[AskPrimary] = None


@dataclass
class StatusDecision:
    """Verdict plus an optional synthesis message to publish."""
    status: AgreementStatus
    synthesis: Optional[str] = None
    message_type: Optional[MessageType] = None
    agreement_level: Optional[AgreementLevel] = None


class StatusPolicy(Protocol):
    name: str

    async def decide(self, context: StatusContext) -> StatusDecision:
        ...


class ThresholdStatusPolicy:
    name = "threshold"

    def __init__(self, agree_threshold: float = 0.7, disagree_threshold: float = 0.3):
        if disagree_threshold > agree_threshold:
            raise ValueError("disagree_threshold must not exceed agree_threshold")
        self.agree_threshold = agree_threshold
        self.disagree_threshold = disagree_threshold

    def classify(self, confidence: float) -> AgreementStatus:
        if confidence >= self.agree_threshold:
            return AgreementStatus.AGREED
        if confidence <= self.disagree_threshold:
            return AgreementStatus.DISAGREED
        return AgreementStatus.PARTIAL

    async def decide(self, context: StatusContext) -> StatusDecision:
        return StatusDecision(status=self.classify(context.confidence))


def classify_agreement_text(text: Optional[str]) -> AgreementStatus:
    """Whole-word match, ``disagreed`` checked first since it contains ``agreed``."""
    if not text:
        return AgreementStatus.PARTIAL
    if _DISAGREED.search(text):
        return AgreementStatus.DISAGREED
    if _AGREED.search(text):
        return AgreementStatus.AGREED
    return AgreementStatus.PARTIAL


_SYNTHESIS_SHAPE = {
    AgreementStatus.AGREED: (MessageType.AGREEMENT, "strong"),
    AgreementStatus.DISAGREED: (MessageType.DISAGREEMENT, "none"),
    AgreementStatus.PARTIAL: (MessageType.PROPOSAL, "moderate"),
}


class ClassificationStatusPolicy:
    """Ask the primary agent to classify the whole discussion."""

    name = "classification"

    def __init__(self, prompt_builder: Callable[[str, str], str]):
        self._prompt_builder = prompt_builder

    async def decide(self, context: StatusContext) -> StatusDecision:
        text: Optional[str] = None
        if context.ask_primary is not None:
            text = await context.ask_primary(self._prompt_builder(context.claim, context.transcript))
        if not text:
            logger.info("classification_unavailable", fallback=AgreementStatus.PARTIAL.value)
            text = AgreementStatus.PARTIAL.value
        status = classify_agreement_text(text)
        message_type, level = _SYNTHESIS_SHAPE[status]
        return StatusDecision(
            status=status,
            synthesis=text,
            message_type=message_type,
            agreement_level=level,
        )


def get_status_policy(config: Settings) -> StatusPolicy:
    if config.DISCUSSION_STATUS_POLICY == "classification":
        from claim_consensus.agents.prompts import classification_prompt

        return ClassificationStatusPolicy(classification_prompt)
    return ThresholdStatusPolicy(
        agree_threshold=config.DISCUSSION_AGREE_THRESHOLD,
        disagree_threshold=config.DISCUSSION_DISAGREE_THRESHOLD,
    )
