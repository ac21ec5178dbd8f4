import json

import httpx
import pytest

from claim_consensus.services.settlement import HttpSettlementClient, SettlementRecord


def _record():
    return SettlementRecord(
        claim_id="claim-1",
        agents=["agent_primary_x", "agent_peer_1_x"],
        agreement="agreed",
        timestamp=1700000000000,
        statement="Supported by both sources.",
    )


@pytest.mark.asyncio
async def test_unconfigured_service_returns_error_result():
    result = await HttpSettlementClient("").submit(_record())
    assert result.success is False
    assert "SETTLEMENT_SERVICE_URL" in result.error


@pytest.mark.asyncio
async def test_successful_submission_posts_payload():
    captured = {}

    def handler(request):
        captured.update(json.loads(request.content))
        return httpx.Response(200, json={"success": True, "transactionId": "0.0.1@1.2", "topicId": "0.0.9"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        client = HttpSettlementClient("https://ledger.example/settle", topic_id="0.0.9", http_client=http)
        result = await client.submit(_record())

    assert result.success is True
    assert result.settlement_hash == "0.0.1@1.2"
    assert result.topic_id == "0.0.9"
    assert captured["type"] == "agent_settlement"
    assert captured["claimId"] == "claim-1"
    assert captured["statement"] == "Supported by both sources."
    assert captured["topicId"] == "0.0.9"


@pytest.mark.asyncio
async def test_transport_and_service_failures_become_error_results():
    def server_error(request):
        return httpx.Response(503)

    def rejected(request):
        return httpx.Response(200, json={"success": False, "error": "topic closed"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(server_error)) as http:
        result = await HttpSettlementClient("https://ledger.example/settle", http_client=http).submit(_record())
    assert result.success is False
    assert result.error

    async with httpx.AsyncClient(transport=httpx.MockTransport(rejected)) as http:
        result = await HttpSettlementClient("https://ledger.example/settle", http_client=http).submit(_record())
    assert result.success is False
    assert result.error == "topic closed"
