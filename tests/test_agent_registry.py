import asyncio

import pytest

from claim_consensus.runtime.agent_registry import AgentRegistry
from tests.conftest import BROKEN_SOURCE, SOURCE_A, SOURCE_B, FakeAgentFactory


@pytest.mark.asyncio
async def test_concurrent_first_calls_materialize_once():
    factory = FakeAgentFactory()
    registry = AgentRegistry(factory)

    agents = await asyncio.gather(
        *(registry.get_or_create("agent_peer_1_x", SOURCE_A) for _ in range(5))
    )

    assert factory.calls == 1
    assert all(agent is agents[0] for agent in agents)
    assert "agent_peer_1_x" in registry
    assert registry.source_of("agent_peer_1_x") == SOURCE_A


@pytest.mark.asyncio
async def test_cached_agent_keeps_first_source():
    factory = FakeAgentFactory()
    registry = AgentRegistry(factory)

    first = await registry.get_or_create("agent_peer_1_x", SOURCE_A)
    again = await registry.get_or_create("agent_peer_1_x", SOURCE_B)

    assert again is first
    assert registry.source_of("agent_peer_1_x") == SOURCE_A
    assert factory.calls == 1


@pytest.mark.asyncio
async def test_missing_source_returns_none():
    registry = AgentRegistry(FakeAgentFactory())
    assert await registry.get_or_create("agent_primary_x", None) is None
    assert registry.list_agents() == []


@pytest.mark.asyncio
async def test_materialization_failure_leaves_no_entry():
    factory = FakeAgentFactory()
    registry = AgentRegistry(factory)

    assert await registry.get_or_create("agent_peer_3_x", BROKEN_SOURCE) is None
    assert "agent_peer_3_x" not in registry
    assert registry.get("agent_peer_3_x") is None
