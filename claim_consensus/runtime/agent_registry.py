"""
Agent 注册中心
Agent Registry

按 agent id 懒加载并缓存文档 Agent，进程生命周期内复用。
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, List, Optional

import structlog

from claim_consensus.agents.document_agent import AgentExecutor

logger = structlog.get_logger()

AgentFactory = Callable[[str, str], Awaitable[AgentExecutor]]


class AgentRegistry:
    """
    Agent 注册中心

    - 第一次按 agent id 请求时调用 factory 物化 Agent 并缓存
    - 之后同一 agent id 直接复用缓存实例
    - 同一 agent id 的并发物化通过按 key 的锁串行化，只物化一次
    """

    def __init__(self, factory: AgentFactory):
        self._factory = factory
        self._agents: Dict[str, AgentExecutor] = {}
        self._sources: Dict[str, str] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, agent_id: str) -> asyncio.Lock:
        # setdefault has no await point, so two coroutines always share one lock
        return self._locks.setdefault(agent_id, asyncio.Lock())

    async def get_or_create(self, agent_id: str, source_url: Optional[str]) -> Optional[AgentExecutor]:
        """
        获取 Agent 实例，不存在且提供了 source_url 时物化

        Args:
            agent_id: Agent ID
            source_url: Agent 代表的文档源

        Returns:
            Agent 实例；物化失败或缺少 source_url 时返回 None
        """
        agent = self._agents.get(agent_id)
        if agent is not None:
            self._warn_on_source_mismatch(agent_id, source_url)
            return agent
        if not source_url:
            return None

        async with self._lock_for(agent_id):
            agent = self._agents.get(agent_id)
            if agent is not None:
                return agent
            try:
                agent = await self._factory(agent_id, source_url)
            except Exception as exc:
                logger.error(
                    "agent_materialization_failed",
                    agent_id=agent_id,
                    source_url=source_url,
                    error=str(exc),
                )
                return None
            self._agents[agent_id] = agent
            self._sources[agent_id] = source_url
            logger.info("agent_materialized", agent_id=agent_id, source_url=source_url)
            return agent

    def get(self, agent_id: str) -> Optional[AgentExecutor]:
        return self._agents.get(agent_id)

    def source_of(self, agent_id: str) -> Optional[str]:
        return self._sources.get(agent_id)

    def list_agents(self) -> List[str]:
        return list(self._agents.keys())

    def _warn_on_source_mismatch(self, agent_id: str, source_url: Optional[str]) -> None:
        known = self._sources.get(agent_id)
        if source_url and known and source_url != known:
            logger.warning(
                "agent_source_mismatch_ignored",
                agent_id=agent_id,
                cached_source=known,
                requested_source=source_url,
            )

    def __contains__(self, agent_id: str) -> bool:
        return agent_id in self._agents
