from typing import Callable, Dict, List, Optional

import pytest

from claim_consensus.config import Settings
from claim_consensus.main import create_application
from claim_consensus.services.settlement import SettlementRecord, SettlementResult

PRIMARY_SOURCE = "https://news.example/primary"
SOURCE_A = "https://journal.example/a"
SOURCE_B = "https://journal.example/b"
BROKEN_SOURCE = "https://broken.example/doc"


class ScriptedAgent:
    """Stand-in for a document agent: replies come from a function of the prompt."""

    def __init__(self, agent_id: str, source_url: str, reply: Callable[[str], str]):
        self.agent_id = agent_id
        self.source_url = source_url
        self._reply = reply
        self.prompts: List[str] = []

    async def invoke(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self._reply(prompt)


def _primary_reply(prompt: str) -> str:
    if "final synthesis" in prompt:
        return "Overall the peers agreed. Final confidence 0.8"
    if "prepare 1-2 VERY BRIEF follow-up" in prompt:
        return "Is the sample size large enough?"
    if "Conclude your exchange" in prompt:
        return "We have settled this exchange."
    return "Primary notes."


def _peer_reply(review: str) -> Callable[[str], str]:
    def reply(prompt: str) -> str:
        if "settlement statement" in prompt:
            return "The claim is settled as supported."
        if "Your initial review was already provided" in prompt:
            return "The evidence still holds."
        return review

    return reply


DEFAULT_REPLIES: Dict[str, Callable[[str], str]] = {
    PRIMARY_SOURCE: _primary_reply,
    SOURCE_A: _peer_reply("I agree. Confidence: 0.9. The trial data supports it."),
    SOURCE_B: _peer_reply("Partly true, 60% sure given the small cohort."),
}


class FakeAgentFactory:
    def __init__(self, replies: Optional[Dict[str, Callable[[str], str]]] = None):
        self.replies = dict(DEFAULT_REPLIES if replies is None else replies)
        self.created: Dict[str, ScriptedAgent] = {}
        self.calls = 0

    async def __call__(self, agent_id: str, source_url: str) -> ScriptedAgent:
        self.calls += 1
        reply = self.replies.get(source_url)
        if reply is None:
            raise RuntimeError(f"Failed to fetch content from URL: {source_url}")
        agent = ScriptedAgent(agent_id, source_url, reply)
        self.created[agent_id] = agent
        return agent


class RecordingSettlement:
    def __init__(self, result: Optional[SettlementResult] = None, error: Optional[Exception] = None):
        self.result = result or SettlementResult(
            success=True,
            transaction_hash="0.0.4242@1700000000.000",
            transaction_id="0.0.4242@1700000000.000",
            topic_id="0.0.777",
        )
        self.error = error
        self.records: List[SettlementRecord] = []

    async def submit(self, record: SettlementRecord) -> SettlementResult:
        self.records.append(record)
        if self.error is not None:
            raise self.error
        return self.result


def make_settings(**overrides) -> Settings:
    values = {
        "A2A_BASE_URL": "",
        "A2A_POLL_INTERVAL_SECONDS": 0.0,
        "A2A_POLL_MAX_ATTEMPTS": 3,
        "SETTLEMENT_SERVICE_URL": "",
        "LOG_FORMAT": "console",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def agent_factory() -> FakeAgentFactory:
    return FakeAgentFactory()


@pytest.fixture
def settlement() -> RecordingSettlement:
    return RecordingSettlement()


@pytest.fixture
def app(agent_factory, settlement):
    return create_application(
        make_settings(),
        agent_factory=agent_factory,
        settlement_client=settlement,
    )
