"""
文档 Agent
Document Agent

将单个文档源包装为可对话的 LLM Agent。
The agent keeps the document in its conversation memory and answers prompts
about it through a LangChain chat model.
"""

from __future__ import annotations

import asyncio
from typing import Any, List, Optional, Protocol, runtime_checkable

import structlog
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from claim_consensus.agents.llm import build_chat_model, extract_reply_text
from claim_consensus.agents.prompts import (
    DOCUMENT_MEMORY_ACK,
    document_memory_seed,
    document_system_prompt,
)
from claim_consensus.agents.source_loader import SourceLoader
from claim_consensus.config import Settings, settings as default_settings

logger = structlog.get_logger()


@runtime_checkable
class AgentExecutor(Protocol):
    """Anything that turns a prompt into text. The LLM is a black box to callers."""

    async def invoke(self, prompt: str) -> str: ...


class DocumentAgent:
    """
    LLM-backed agent representing one source document.

    Conversation memory is seeded with the document text and keeps the most
    recent exchanges (bounded by ``memory_max_turns``).
    """

    def __init__(
        self,
        agent_id: str,
        source_url: str,
        llm: Any,
        source_text: str,
        memory_max_turns: int = 20,
        timeout: Optional[float] = None,
    ):
        self.agent_id = agent_id
        self.source_url = source_url
        self._llm = llm
        self._timeout = timeout
        self._memory_max_turns = max(1, int(memory_max_turns))
        self._system = SystemMessage(content=document_system_prompt(source_url))
        self._seed: List[BaseMessage] = [
            HumanMessage(content=document_memory_seed(source_url, source_text)),
            AIMessage(content=DOCUMENT_MEMORY_ACK),
        ]
        self._history: List[BaseMessage] = []

        logger.info(
            "document_agent_initialized",
            agent_id=agent_id,
            source_url=source_url,
            source_chars=len(source_text),
        )

    def _messages_for(self, prompt: str) -> List[BaseMessage]:
        return [self._system, *self._seed, *self._history, HumanMessage(content=prompt)]

    def _remember(self, prompt: str, reply: str) -> None:
        self._history.extend([HumanMessage(content=prompt), AIMessage(content=reply)])
        overflow = len(self._history) - self._memory_max_turns * 2
        if overflow > 0:
            del self._history[:overflow]

    async def invoke(self, prompt: str) -> str:
        messages = self._messages_for(prompt)
        call = asyncio.to_thread(self._llm.invoke, messages)
        if self._timeout:
            reply = await asyncio.wait_for(call, timeout=float(self._timeout))
        else:
            reply = await call
        text = extract_reply_text(reply)
        self._remember(prompt, text)
        logger.debug(
            "document_agent_invoked",
            agent_id=self.agent_id,
            prompt_chars=len(prompt),
            reply_chars=len(text),
        )
        return text


async def create_document_agent(
    agent_id: str,
    source_url: str,
    *,
    loader: Optional[SourceLoader] = None,
    config: Settings = default_settings,
) -> DocumentAgent:
    """Default agent factory: fetch the source, then bind a chat model to it."""
    if not source_url:
        raise ValueError("source_url must be set")
    source_text = await (loader or SourceLoader(timeout=config.SOURCE_FETCH_TIMEOUT)).fetch_text(source_url)
    return DocumentAgent(
        agent_id=agent_id,
        source_url=source_url,
        llm=build_chat_model(config),
        source_text=source_text,
        memory_max_turns=config.AGENT_MEMORY_MAX_TURNS,
        timeout=config.LLM_TIMEOUT,
    )
