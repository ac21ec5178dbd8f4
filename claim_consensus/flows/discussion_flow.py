"""
多 Agent 讨论编排
Discussion Orchestrator

Fans one claim out to several peer agents, runs a review / follow-up /
conclusion thread per peer concurrently, aggregates confidence, decides the
verdict and records a settlement. The orchestrator only yields
DiscussionEvents; transports decide how to ship them.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

import structlog

from claim_consensus.a2a.client import A2AClient
from claim_consensus.a2a.polling import completed_text, wait_for_task_completion
from claim_consensus.agents.prompts import (
    conclusion_prompt,
    debate_prompt,
    follow_up_prompt,
    query_message,
)
from claim_consensus.core.event_schema import EventStamper
from claim_consensus.core.observability import MetricsStore
from claim_consensus.models.discussion import (
    A2AMessage,
    AgentIdentity,
    Discussion,
    DiscussionEvent,
    DiscussionEventType,
    DiscussionRequest,
    FinalAgreement,
    MessageMetadata,
    MessageType,
)
from claim_consensus.models.task import TaskType
from claim_consensus.services.confidence import aggregate_confidence, extract_confidence
from claim_consensus.services.settlement import SettlementClient, SettlementRecord
from claim_consensus.services.status_policy import StatusContext, StatusPolicy

logger = structlog.get_logger()

DEFAULT_CLAIM_ID = "unknown"
REVIEW_FALLBACK = "Unable to provide review."
CONCLUSION_FALLBACK = "Unable to reach a conclusion."
SETTLEMENT_FALLBACK = "Settlement proposal generated."
BROADCAST = "all"

_THREADS_DONE = object()


class DiscussionInputError(ValueError):
    """Claim or primary source missing; nothing was started."""


class DiscussionFailedError(RuntimeError):
    """The event sequence ended with an ``error`` event."""


@dataclass
class PeerOutcome:
    peer_id: str
    review: str
    confidence: Optional[float]
    degraded: bool = False


class DiscussionOrchestrator:
    """
    讨论编排器

    每个 peer 一条内部串行的线程，线程之间并发；线程失败只降级为兜底值，
    不影响其他线程与聚合结果。
    """

    def __init__(
        self,
        client: A2AClient,
        settlement: SettlementClient,
        policy: StatusPolicy,
        *,
        poll_interval: float = 0.5,
        poll_max_attempts: int = 10,
        max_peers: int = 5,
        metrics: Optional[MetricsStore] = None,
    ):
        self._client = client
        self._settlement = settlement
        self._policy = policy
        self._poll_interval = poll_interval
        self._poll_max_attempts = poll_max_attempts
        self._max_peers = max(1, int(max_peers))
        self._metrics = metrics

    # ==================== participants ====================

    def build_participants(self, request: DiscussionRequest) -> List[AgentIdentity]:
        """Primary first, then one identity per peer source (or one default peer)."""
        primary_source = (request.primary_source or "").strip()
        primary = AgentIdentity.generate(
            f"agent_primary_{uuid.uuid4().hex[:12]}",
            "Primary Agent",
            "Document Analyzer",
            primary_source,
        )
        peers: List[AgentIdentity] = []
        for index, source in enumerate(request.peer_sources[: self._max_peers], start=1):
            peers.append(
                AgentIdentity.generate(
                    f"agent_peer_{index}_{uuid.uuid4().hex[:12]}",
                    f"Peer Reviewer {index}",
                    "Independent Validator",
                    source or primary_source,
                )
            )
        if not peers:
            peers.append(
                AgentIdentity.generate(
                    f"agent_peer_{uuid.uuid4().hex[:12]}",
                    "Peer Reviewer",
                    "Independent Validator",
                    primary_source,
                )
            )
        return [primary, *peers]

    # ==================== A2A helpers ====================

    async def _run_task(
        self,
        agent: AgentIdentity,
        task_type: TaskType,
        content: str,
        claim_id: str,
    ) -> Optional[str]:
        """StartTask then poll; None when the peer errors or the deadline passes."""
        response = await self._client.start_task(
            agent.id,
            task_type.value,
            content,
            {"sourceUrl": agent.source_url, "claimId": claim_id},
        )
        task_id = response.result.get("taskId") if isinstance(response.result, dict) else None
        if not response.ok or not task_id:
            logger.info(
                "discussion_task_rejected",
                agent_id=agent.id,
                task_type=task_type.value,
                error=response.error.message if response.error else "missing taskId",
            )
            return None
        task = await wait_for_task_completion(
            self._client,
            agent.id,
            task_id,
            interval=self._poll_interval,
            max_attempts=self._poll_max_attempts,
        )
        return completed_text(task) or None

    @staticmethod
    def _message(
        sender: AgentIdentity,
        to: str,
        message_type: MessageType,
        content: str,
        claim_id: str,
        **metadata: Any,
    ) -> A2AMessage:
        return A2AMessage(
            sender=sender.id,
            to=to,
            claim_id=claim_id,
            type=message_type,
            content=content,
            metadata=MessageMetadata(**metadata),
        )

    # ==================== per-peer thread ====================

    async def _peer_thread(
        self,
        primary: AgentIdentity,
        peer: AgentIdentity,
        claim: str,
        claim_id: str,
        emit: "asyncio.Queue[Any]",
    ) -> PeerOutcome:
        emit.put_nowait(
            self._message(primary, peer.id, MessageType.QUERY, query_message(claim), claim_id)
        )

        review = await self._run_task(peer, TaskType.CLAIM_REVIEW, claim, claim_id)
        confidence = extract_confidence(review) if review else None
        emit.put_nowait(
            self._message(
                peer,
                primary.id,
                MessageType.RESPONSE,
                review or REVIEW_FALLBACK,
                claim_id,
                confidence=confidence,
            )
        )

        if review is None:
            # nothing to debate; the peer contributes no confidence
            logger.warning("peer_thread_degraded", peer_id=peer.id, claim_id=claim_id)
            emit.put_nowait(
                self._message(primary, peer.id, MessageType.AGREEMENT, CONCLUSION_FALLBACK, claim_id)
            )
            return PeerOutcome(peer.id, REVIEW_FALLBACK, None, degraded=True)

        debate: Optional[str] = None
        follow_up = await self._run_task(
            primary,
            TaskType.CLAIM_VALIDATION,
            follow_up_prompt(claim, peer.name, review),
            claim_id,
        )
        if follow_up:
            emit.put_nowait(
                self._message(primary, peer.id, MessageType.PROPOSAL, follow_up, claim_id)
            )
            debate = await self._run_task(
                peer, TaskType.CLAIM_REVIEW, debate_prompt(claim, follow_up), claim_id
            )
            if debate:
                debate_confidence = extract_confidence(debate)
                emit.put_nowait(
                    self._message(
                        peer,
                        primary.id,
                        MessageType.RESPONSE,
                        debate,
                        claim_id,
                        confidence=debate_confidence,
                    )
                )
                if debate_confidence is not None:
                    confidence = debate_confidence

        conclusion = await self._run_task(
            primary,
            TaskType.CLAIM_VALIDATION,
            conclusion_prompt(claim, peer.name, review, debate),
            claim_id,
        )
        concluded = extract_confidence(conclusion) if conclusion else None
        final_confidence = concluded if concluded is not None else confidence
        emit.put_nowait(
            self._message(
                primary,
                peer.id,
                MessageType.AGREEMENT,
                conclusion or CONCLUSION_FALLBACK,
                claim_id,
                confidence=final_confidence,
            )
        )
        return PeerOutcome(peer.id, review, final_confidence)

    async def _gather_peers(
        self,
        primary: AgentIdentity,
        peers: List[AgentIdentity],
        claim: str,
        claim_id: str,
        emit: "asyncio.Queue[Any]",
    ) -> List[PeerOutcome]:
        try:
            results = await asyncio.gather(
                *(self._peer_thread(primary, peer, claim, claim_id, emit) for peer in peers),
                return_exceptions=True,
            )
        finally:
            emit.put_nowait(_THREADS_DONE)

        outcomes: List[PeerOutcome] = []
        for peer, result in zip(peers, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning(
                    "peer_thread_degraded",
                    peer_id=peer.id,
                    claim_id=claim_id,
                    error=str(result),
                )
                outcomes.append(PeerOutcome(peer.id, REVIEW_FALLBACK, None, degraded=True))
            else:
                outcomes.append(result)
        return outcomes

    # ==================== event sequence ====================

    async def run(
        self,
        request: DiscussionRequest,
        stamper: Optional[EventStamper] = None,
    ) -> AsyncIterator[DiscussionEvent]:
        """
        Yield the discussion as events: init, status*, message*, final.

        Raises DiscussionInputError before the first event when the claim or
        primary source is missing. Any later failure becomes a single
        ``error`` event that ends the sequence.
        """
        missing = request.missing_fields()
        if missing:
            raise DiscussionInputError(f"Missing required fields: {', '.join(missing)}")

        stamper = stamper or EventStamper()
        claim = request.claim.strip()
        claim_id = request.claim_id or DEFAULT_CLAIM_ID
        participants = self.build_participants(request)
        primary, peers = participants[0], participants[1:]
        started = time.perf_counter()
        outcomes: List[PeerOutcome] = []
        settlement_failed = False
        gather_task: Optional[asyncio.Task] = None

        logger.info(
            "discussion_started",
            trace_id=stamper.trace_id,
            claim_id=claim_id,
            peer_count=len(peers),
        )
        try:
            yield stamper.stamp(
                DiscussionEventType.INIT,
                {
                    "claimId": claim_id,
                    "claim": claim,
                    "agents": [agent.to_wire() for agent in participants],
                },
            )
            yield stamper.stamp(DiscussionEventType.STATUS, {"message": "Initializing agents..."})
            await asyncio.gather(
                *(self._client.fetch_agent_card(agent.id, agent.source_url) for agent in participants)
            )

            yield stamper.stamp(
                DiscussionEventType.STATUS,
                {"message": f"Querying {len(peers)} peer agent(s) about the claim..."},
            )
            queue: asyncio.Queue = asyncio.Queue()
            transcript: List[A2AMessage] = []
            gather_task = asyncio.create_task(
                self._gather_peers(primary, peers, claim, claim_id, queue)
            )
            while True:
                item = await queue.get()
                if item is _THREADS_DONE:
                    break
                transcript.append(item)
                yield stamper.stamp(DiscussionEventType.MESSAGE, item.to_wire())
            outcomes = await gather_task

            yield stamper.stamp(
                DiscussionEventType.STATUS,
                {"message": "Synthesizing all discussions and reaching final agreement..."},
            )
            confidence = aggregate_confidence(outcome.confidence for outcome in outcomes)

            async def ask_primary(prompt: str) -> Optional[str]:
                return await self._run_task(primary, TaskType.CLAIM_VALIDATION, prompt, claim_id)

            decision = await self._policy.decide(
                StatusContext(
                    claim=claim,
                    confidence=confidence,
                    transcript=_render_transcript(transcript, participants),
                    ask_primary=ask_primary,
                )
            )
            if decision.synthesis:
                yield stamper.stamp(
                    DiscussionEventType.MESSAGE,
                    self._message(
                        primary,
                        BROADCAST,
                        decision.message_type or MessageType.PROPOSAL,
                        decision.synthesis,
                        claim_id,
                        agreement_level=decision.agreement_level,
                    ).to_wire(),
                )

            yield stamper.stamp(
                DiscussionEventType.STATUS, {"message": "Generating settlement proposal..."}
            )
            settlement_agent = peers[0]
            statement = (
                await self._run_task(settlement_agent, TaskType.SETTLEMENT_PROPOSAL, claim, claim_id)
                or SETTLEMENT_FALLBACK
            )

            yield stamper.stamp(DiscussionEventType.STATUS, {"message": "Recording settlement..."})
            result = await self._settlement.submit(
                SettlementRecord(
                    claim_id=claim_id,
                    agents=[agent.id for agent in participants],
                    agreement=decision.status.value,
                    timestamp=int(time.time() * 1000),
                    statement=statement,
                )
            )
            settlement_failed = not result.success
            if result.success:
                settlement_meta: Dict[str, Any] = {
                    "settlement_hash": result.settlement_hash,
                    "topic_id": result.topic_id,
                    "transaction_id": result.transaction_id,
                }
            else:
                logger.warning("settlement_failed", claim_id=claim_id, error=result.error)
                settlement_meta = {"settlement_error": result.error}
            yield stamper.stamp(
                DiscussionEventType.MESSAGE,
                self._message(
                    settlement_agent,
                    primary.id,
                    MessageType.SETTLEMENT,
                    statement,
                    claim_id,
                    **settlement_meta,
                ).to_wire(),
            )

            final = FinalAgreement(
                status=decision.status,
                confidence=confidence,
                settlement_hash=result.settlement_hash if result.success else None,
                settlement_error=None if result.success else result.error,
            )
            logger.info(
                "discussion_completed",
                trace_id=stamper.trace_id,
                claim_id=claim_id,
                status=final.status.value,
                confidence=final.confidence,
            )
            self._record(started, succeeded=True, outcomes=outcomes, settlement_failed=settlement_failed)
            yield stamper.stamp(DiscussionEventType.FINAL, final.to_wire())
        except Exception as exc:
            logger.error(
                "discussion_failed",
                trace_id=stamper.trace_id,
                claim_id=claim_id,
                error=str(exc),
                exc_info=True,
            )
            self._record(started, succeeded=False, outcomes=outcomes, settlement_failed=settlement_failed)
            yield stamper.stamp(
                DiscussionEventType.ERROR, {"error": str(exc) or exc.__class__.__name__}
            )
        finally:
            if gather_task is not None and not gather_task.done():
                gather_task.cancel()

    def _record(
        self,
        started: float,
        *,
        succeeded: bool,
        outcomes: List[PeerOutcome],
        settlement_failed: bool,
    ) -> None:
        if self._metrics is None:
            return
        self._metrics.record_discussion_result(
            succeeded=succeeded,
            latency_ms=int((time.perf_counter() - started) * 1000),
            degraded_peers=sum(1 for outcome in outcomes if outcome.degraded),
            settlement_failed=settlement_failed,
        )


def _render_transcript(messages: List[A2AMessage], participants: List[AgentIdentity]) -> str:
    names = {agent.id: agent.name for agent in participants}
    lines = []
    for message in messages:
        if message.type not in (MessageType.RESPONSE, MessageType.PROPOSAL, MessageType.AGREEMENT):
            continue
        speaker = names.get(message.sender, message.sender)
        lines.append(f"{speaker} ({message.type.value}): {message.content}")
    return "\n\n".join(lines)


class DiscussionAccumulator:
    """Folds an event sequence into a Discussion for the batch transport."""

    def __init__(self):
        self._discussion: Optional[Discussion] = None
        self._messages: List[A2AMessage] = []
        self._final: Optional[FinalAgreement] = None

    def apply(self, event: DiscussionEvent) -> None:
        if event.event == DiscussionEventType.INIT:
            self._discussion = Discussion.model_validate(
                {
                    "claimId": event.data.get("claimId", DEFAULT_CLAIM_ID),
                    "claim": event.data.get("claim", ""),
                    "agents": event.data.get("agents", []),
                }
            )
        elif event.event == DiscussionEventType.MESSAGE:
            self._messages.append(A2AMessage.model_validate(event.data))
        elif event.event == DiscussionEventType.FINAL:
            self._final = FinalAgreement.model_validate(event.data)
        elif event.event == DiscussionEventType.ERROR:
            raise DiscussionFailedError(str(event.data.get("error") or "Discussion failed"))

    @property
    def discussion(self) -> Discussion:
        if self._discussion is None:
            raise DiscussionFailedError("Discussion never initialized")
        return self._discussion.model_copy(
            update={"messages": list(self._messages), "final_agreement": self._final}
        )


async def collect_discussion(events: AsyncIterator[DiscussionEvent]) -> Discussion:
    accumulator = DiscussionAccumulator()
    async for event in events:
        accumulator.apply(event)
    return accumulator.discussion
