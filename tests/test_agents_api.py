from fastapi.testclient import TestClient

from claim_consensus.models.task import TASK_EXECUTION_ERROR
from tests.conftest import BROKEN_SOURCE, SOURCE_A

PEER_ID = "agent_peer_1_test"
PRIMARY_ID = "agent_primary_test"
SILENT_SOURCE = "https://silent.example/doc"


def _rpc(client, agent_id, method, params=None, request_id=1):
    payload = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        payload["params"] = params
    response = client.post(f"/api/v1/agents/{agent_id}/tasks", json=payload)
    assert response.status_code == 200
    return response.json()


def _start(client, agent_id=PEER_ID, task_type="claim_review", content="Vitamin C prevents colds", source=SOURCE_A):
    return _rpc(
        client,
        agent_id,
        "StartTask",
        {
            "taskType": task_type,
            "input": {"modality": "text", "content": content},
            "metadata": {"sourceUrl": source, "claimId": "claim-1"},
        },
    )


def test_start_task_completes_with_one_text_artifact(app, agent_factory):
    client = TestClient(app)
    body = _start(client)

    assert body["id"] == 1
    assert body["result"]["status"] == "completed"

    task = _rpc(client, PEER_ID, "GetTaskStatus", {"taskId": body["result"]["taskId"]})["result"]
    assert task["taskType"] == "claim_review"
    artifacts = task["result"]["artifacts"]
    assert len(artifacts) == 1
    assert artifacts[0]["type"] == "text"
    assert "Confidence: 0.9" in artifacts[0]["content"]
    assert 'Review this claim: "Vitamin C prevents colds"' in agent_factory.created[PEER_ID].prompts[0]


def test_unknown_task_type_passes_input_through(app, agent_factory):
    client = TestClient(app)
    body = _start(client, task_type="summarize_section", content={"section": 2})

    assert body["result"]["status"] == "completed"
    assert agent_factory.created[PEER_ID].prompts == ['{"section": 2}']


def test_get_task_status_is_stable_between_calls(app):
    client = TestClient(app)
    task_id = _start(client)["result"]["taskId"]

    first = _rpc(client, PEER_ID, "GetTaskStatus", {"taskId": task_id})
    second = _rpc(client, PEER_ID, "GetTaskStatus", {"taskId": task_id})
    assert first == second


def test_get_task_status_unknown_id(app):
    client = TestClient(app)
    body = _rpc(client, PEER_ID, "GetTaskStatus", {"taskId": "task_nope"})
    assert body["error"]["code"] == -32001
    assert "result" not in body


def test_cancel_completed_task_is_rejected(app):
    client = TestClient(app)
    task_id = _start(client)["result"]["taskId"]

    body = _rpc(client, PEER_ID, "CancelTask", {"taskId": task_id})
    assert body["error"]["code"] == -32602

    task = _rpc(client, PEER_ID, "GetTaskStatus", {"taskId": task_id})["result"]
    assert task["status"] == "completed"


def test_send_message_appends_to_task(app):
    client = TestClient(app)
    task_id = _start(client)["result"]["taskId"]

    body = _rpc(
        client,
        PEER_ID,
        "SendMessage",
        {
            "taskId": task_id,
            "message": {"modality": "text", "content": "see section 3", "metadata": {"to": PRIMARY_ID}},
        },
    )
    message_id = body["result"]["messageId"]

    task = _rpc(client, PEER_ID, "GetTaskStatus", {"taskId": task_id})["result"]
    message = task["result"]["messages"][0]
    assert message["messageId"] == message_id
    assert message["from"] == PEER_ID
    assert message["to"] == PRIMARY_ID
    assert message["content"] == "see section 3"


def test_empty_model_output_is_stored_as_is(app, agent_factory):
    agent_factory.replies[SILENT_SOURCE] = lambda prompt: ""
    client = TestClient(app)
    body = _start(client, agent_id="agent_peer_5_test", source=SILENT_SOURCE)

    assert body["result"]["status"] == "completed"
    task = _rpc(client, "agent_peer_5_test", "GetTaskStatus", {"taskId": body["result"]["taskId"]})["result"]
    assert task["result"]["artifacts"][0]["content"] == ""


def test_failed_execution_returns_internal_error_and_fails_task(app):
    client = TestClient(app)
    body = _start(client, agent_id="agent_peer_9_test", source=BROKEN_SOURCE)

    assert body["error"]["code"] == -32603
    task_id = body["error"]["data"]["taskId"]
    task = _rpc(client, "agent_peer_9_test", "GetTaskStatus", {"taskId": task_id})["result"]
    assert task["status"] == "failed"
    assert task["error"]["code"] == TASK_EXECUTION_ERROR


def test_envelope_errors(app):
    client = TestClient(app)
    url = f"/api/v1/agents/{PEER_ID}/tasks"

    parse_error = client.post(url, content=b"{not json", headers={"Content-Type": "application/json"}).json()
    assert parse_error["error"]["code"] == -32700
    assert parse_error["id"] is None

    no_version = client.post(url, json={"id": 3, "method": "StartTask"}).json()
    assert no_version["error"]["code"] == -32600
    assert no_version["id"] == 3

    not_an_object = client.post(url, json=[1, 2]).json()
    assert not_an_object["error"]["code"] == -32600

    unknown = _rpc(client, PEER_ID, "QuerySkill", {})
    assert unknown["error"] == {"code": -32601, "message": "Method QuerySkill not found"}

    missing_params = _rpc(client, PEER_ID, "StartTask")
    assert missing_params["error"]["code"] == -32602

    empty_type = _start(client, task_type="")
    assert empty_type["error"]["code"] == -32602

    # protocol errors never create tasks
    assert len(app.state.task_store) == 0


def test_agent_card_materializes_and_picks_card_kind(app, agent_factory):
    client = TestClient(app)

    peer_card = client.get(f"/api/v1/agents/{PEER_ID}", params={"sourceUrl": SOURCE_A}).json()
    assert peer_card["name"] == f"Peer Review Agent - {PEER_ID}"
    assert peer_card["capabilities"]["supportedTasks"] == [
        "claim_review",
        "claim_validation",
        "settlement_proposal",
    ]
    assert peer_card["capabilities"]["maxConcurrentTasks"] == 5
    assert peer_card["authentication"][0]["type"] == "none"
    assert peer_card["endpoints"]["tasks"].endswith(f"/api/v1/agents/{PEER_ID}/tasks")
    assert PEER_ID in agent_factory.created

    primary_card = client.get(f"/api/v1/agents/{PRIMARY_ID}").json()
    assert primary_card["name"] == f"Document Analysis Agent - {PRIMARY_ID}"
    assert PRIMARY_ID not in agent_factory.created

    health = client.get(f"/api/v1/agents/{PEER_ID}/health").json()
    assert health == {"agentId": PEER_ID, "status": "ready", "sourceUrl": SOURCE_A}
