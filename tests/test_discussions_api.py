import json

import pytest

from fastapi.testclient import TestClient

from claim_consensus.main import create_application
from tests.conftest import PRIMARY_SOURCE, SOURCE_A, SOURCE_B, RecordingSettlement, make_settings

CLAIM = "Daily walking lowers blood pressure"


def _parse_sse(text):
    frames = []
    for block in text.strip().split("\n\n"):
        frame = {}
        for line in block.splitlines():
            key, _, value = line.partition(": ")
            frame[key] = value
        frame["data"] = json.loads(frame["data"])
        frames.append(frame)
    return frames


def test_batch_discussion_returns_folded_discussion(app):
    client = TestClient(app)
    response = client.post(
        "/api/v1/discussions",
        json={"url": PRIMARY_SOURCE, "claim": CLAIM, "peerSources": [SOURCE_A, SOURCE_B]},
    )

    assert response.status_code == 200
    discussion = response.json()["discussion"]
    assert discussion["claimId"] == "unknown"
    assert discussion["claim"] == CLAIM
    assert len(discussion["agents"]) == 3
    assert discussion["finalAgreement"]["status"] == "agreed"
    assert discussion["finalAgreement"]["confidence"] == pytest.approx(0.75)
    assert discussion["messages"][-1]["type"] == "settlement"

    metrics = client.get("/metrics").json()
    assert metrics["discussion_slo"]["success_total"] == 1
    assert metrics["request_total"] > 1


def test_primary_source_request_shape_is_accepted(app):
    client = TestClient(app)
    response = client.post(
        "/api/v1/discussions",
        json={"primarySource": PRIMARY_SOURCE, "claim": CLAIM, "claimId": "c-1", "peerSources": [SOURCE_A]},
    )

    assert response.status_code == 200
    discussion = response.json()["discussion"]
    assert discussion["claimId"] == "c-1"
    assert discussion["agents"][0]["sourceUrl"] == PRIMARY_SOURCE
    assert discussion["agents"][1]["sourceUrl"] == SOURCE_A


def test_missing_inputs_are_rejected(app):
    client = TestClient(app)
    response = client.post("/api/v1/discussions", json={"url": PRIMARY_SOURCE})
    assert response.status_code == 400
    assert "claim" in response.json()["detail"]

    response = client.post("/api/v1/discussions/stream", json={"claim": CLAIM})
    assert response.status_code == 400
    assert "primarySource" in response.json()["detail"]


def test_fatal_error_maps_to_http_500(agent_factory):
    app = create_application(
        make_settings(),
        agent_factory=agent_factory,
        settlement_client=RecordingSettlement(error=RuntimeError("ledger exploded")),
    )
    client = TestClient(app)
    response = client.post("/api/v1/discussions", json={"url": PRIMARY_SOURCE, "claim": CLAIM})

    assert response.status_code == 500
    assert response.json() == {"detail": "ledger exploded"}


def test_stream_emits_one_frame_per_event(app):
    client = TestClient(app)
    response = client.post(
        "/api/v1/discussions/stream",
        json={"url": PRIMARY_SOURCE, "claim": CLAIM, "claimId": "c-7", "relatedArticles": [{"url": SOURCE_A}]},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")

    frames = _parse_sse(response.text)
    assert frames[0]["event"] == "init"
    assert frames[0]["data"]["claimId"] == "c-7"
    assert frames[-1]["event"] == "final"
    assert all(frame["id"].startswith("evt_") for frame in frames)
    assert {"status", "message"} <= {frame["event"] for frame in frames}


def test_stream_ends_with_error_frame_on_fatal_error(agent_factory):
    app = create_application(
        make_settings(),
        agent_factory=agent_factory,
        settlement_client=RecordingSettlement(error=RuntimeError("ledger exploded")),
    )
    client = TestClient(app)
    response = client.post("/api/v1/discussions/stream", json={"url": PRIMARY_SOURCE, "claim": CLAIM})

    frames = _parse_sse(response.text)
    assert frames[-1]["event"] == "error"
    assert frames[-1]["data"] == {"error": "ledger exploded"}


def test_health_and_root(app):
    client = TestClient(app)
    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["app_name"] == "Claim Consensus Agents"
    assert client.get("/").json()["health"] == "/health"
