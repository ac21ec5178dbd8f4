"""
Agent Card 构建
Agent card builders for document-analysis and peer-review agents.
"""

from __future__ import annotations

from typing import List, Optional

from claim_consensus.models.agent_card import (
    AgentCapabilities,
    AgentCard,
    AgentEndpoints,
    AuthenticationScheme,
)

AGENT_CARD_VERSION = "1.0.0"
MAX_CONCURRENT_TASKS = 5

DOCUMENT_AGENT_TASKS = [
    "claim_analysis",
    "claim_validation",
    "peer_review",
    "settlement_negotiation",
]
PEER_AGENT_TASKS = ["claim_review", "claim_validation", "settlement_proposal"]


def is_peer_agent(agent_id: str) -> bool:
    return "peer" in agent_id


def _build_card(
    *,
    name: str,
    description: str,
    base_url: str,
    supported_tasks: List[str],
) -> AgentCard:
    return AgentCard(
        name=name,
        description=description,
        version=AGENT_CARD_VERSION,
        capabilities=AgentCapabilities(
            supported_modalities=["text", "json"],
            supported_tasks=supported_tasks,
            max_concurrent_tasks=MAX_CONCURRENT_TASKS,
        ),
        endpoints=AgentEndpoints(
            base_url=base_url,
            health=f"{base_url}/health",
            tasks=f"{base_url}/tasks",
        ),
        authentication=[
            AuthenticationScheme(type="none", description="No authentication required"),
        ],
    )


def document_analysis_card(base_url: str, agent_id: str, source_url: Optional[str] = None) -> AgentCard:
    description = "Analyzes and validates claims from documents"
    if source_url:
        description = f"{description}. Initialized with: {source_url}"
    return _build_card(
        name=f"Document Analysis Agent - {agent_id}",
        description=description,
        base_url=base_url,
        supported_tasks=DOCUMENT_AGENT_TASKS,
    )


def peer_review_card(base_url: str, agent_id: str, source_url: Optional[str] = None) -> AgentCard:
    description = "Provides independent peer review of claims"
    if source_url:
        description = f"{description}. Initialized with: {source_url}"
    return _build_card(
        name=f"Peer Review Agent - {agent_id}",
        description=description,
        base_url=base_url,
        supported_tasks=PEER_AGENT_TASKS,
    )


def build_agent_card(base_url: str, agent_id: str, source_url: Optional[str] = None) -> AgentCard:
    """Peer card when the id names a peer, document-analysis card otherwise."""
    if is_peer_agent(agent_id):
        return peer_review_card(base_url, agent_id, source_url)
    return document_analysis_card(base_url, agent_id, source_url)
