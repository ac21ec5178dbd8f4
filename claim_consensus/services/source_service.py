"""
文档源工具服务
Source utilities: one-paragraph summary and claim extraction for a URL.
"""

from __future__ import annotations

import re
import uuid
from typing import Any, List, Optional

import structlog

from claim_consensus.agents.prompts import CLAIMS_PROMPT, SUMMARY_PROMPT
from claim_consensus.core.json_utils import extract_json_list
from claim_consensus.models.base import WireModel
from claim_consensus.runtime.agent_registry import AgentFactory

logger = structlog.get_logger()

MAX_FALLBACK_CLAIMS = 20
MIN_FALLBACK_LINE_CHARS = 10

_LIST_MARKER = re.compile(r"^\s*(?:[-*•]+|\d+[.)])\s*")


class ExtractedClaim(WireModel):
    id: str
    claim: str
    score: Optional[float] = None


def _claim_from_item(item: Any) -> Optional[str]:
    if isinstance(item, dict):
        text = item.get("claim") or item.get("text")
        return str(text).strip() if text else None
    if item is None:
        return None
    text = str(item).strip()
    return text or None


def _score_from_item(item: Any) -> Optional[float]:
    if not isinstance(item, dict):
        return None
    score = item.get("score")
    if isinstance(score, (int, float)) and not isinstance(score, bool):
        return float(score)
    return None


def parse_claims(output: str) -> List[ExtractedClaim]:
    """
    Parse model output into claims.

    A JSON array (code fences tolerated) wins; otherwise bullet or numbered
    lines longer than ten characters are taken as claims.
    """
    items = extract_json_list(output)
    if items is not None:
        claims: List[ExtractedClaim] = []
        for item in items:
            text = _claim_from_item(item)
            if text:
                claims.append(
                    ExtractedClaim(id=str(len(claims) + 1), claim=text, score=_score_from_item(item))
                )
        return claims

    lines = []
    for raw_line in (output or "").splitlines():
        line = _LIST_MARKER.sub("", raw_line).strip()
        if len(line) > MIN_FALLBACK_LINE_CHARS and not line.startswith(("[", "]", "{", "}")):
            lines.append(line)
    return [
        ExtractedClaim(id=str(index + 1), claim=line)
        for index, line in enumerate(lines[:MAX_FALLBACK_CLAIMS])
    ]


class SourceService:
    def __init__(self, agent_factory: AgentFactory):
        self._agent_factory = agent_factory

    async def _ask(self, url: str, prompt: str) -> str:
        # a throwaway agent per request; these never enter the registry
        agent = await self._agent_factory(f"source_{uuid.uuid4().hex[:12]}", url)
        return await agent.invoke(prompt)

    async def summarize(self, url: str) -> str:
        summary = await self._ask(url, SUMMARY_PROMPT)
        logger.info("source_summarized", url=url, summary_chars=len(summary or ""))
        return summary or "No summary available"

    async def extract_claims(self, url: str) -> List[ExtractedClaim]:
        output = await self._ask(url, CLAIMS_PROMPT)
        claims = parse_claims(output)
        logger.info("source_claims_extracted", url=url, claim_count=len(claims))
        return claims
