import pytest
from pydantic import ValidationError

from claim_consensus.core.event_schema import EventStamper, build_stable_event_id
from claim_consensus.models.discussion import (
    A2AMessage,
    DiscussionEventType,
    DiscussionRequest,
    FinalAgreement,
    MessageMetadata,
    MessageType,
)
from claim_consensus.models.rpc import create_error_response, create_request
from claim_consensus.models.task import (
    ClaimReviewParams,
    GenericTaskParams,
    SettlementProposalParams,
    Task,
    start_task_params_adapter,
)


def test_task_wire_round_trip():
    wire = {
        "taskId": "task_1",
        "status": "completed",
        "createdAt": "2024-01-01T00:00:00Z",
        "updatedAt": "2024-01-01T00:00:01Z",
        "taskType": "claim_review",
        "result": {
            "artifacts": [{"artifactId": "artifact_1", "type": "text", "content": "fine"}],
            "messages": [
                {
                    "messageId": "msg_1",
                    "from": "agent_peer_1",
                    "to": "agent_primary",
                    "timestamp": "2024-01-01T00:00:01Z",
                    "modality": "text",
                    "content": "note",
                }
            ],
        },
    }
    assert Task.model_validate(wire).to_wire() == wire


def test_a2a_message_uses_from_on_the_wire():
    message = A2AMessage(
        sender="agent_primary",
        to="agent_peer_1",
        type=MessageType.QUERY,
        content="q",
        metadata=MessageMetadata(agreement_level=None, confidence=0.4, foo=None, round=2),
    )
    wire = message.to_wire()
    assert wire["from"] == "agent_primary"
    assert "sender" not in wire
    assert wire["metadata"] == {"confidence": 0.4, "foo": None, "round": 2}
    assert A2AMessage.model_validate(wire) == message


def test_confidence_is_clamped():
    message = A2AMessage.model_validate(
        {"from": "a", "to": "b", "type": "response", "content": "x", "metadata": {"confidence": 1.7}}
    )
    assert message.metadata.confidence == 1.0
    assert FinalAgreement(status="partial", confidence=-0.2).confidence == 0.0


def test_start_task_params_are_tagged_by_task_type():
    base = {"input": {"modality": "text", "content": "claim"}, "metadata": {"sourceUrl": "https://s", "foo": 1}}

    review = start_task_params_adapter.validate_python({"taskType": "claim_review", **base})
    settlement = start_task_params_adapter.validate_python({"taskType": "settlement_proposal", **base})
    generic = start_task_params_adapter.validate_python({"taskType": "translate", **base})

    assert isinstance(review, ClaimReviewParams)
    assert isinstance(settlement, SettlementProposalParams)
    assert isinstance(generic, GenericTaskParams)
    assert generic.task_type == "translate"
    assert review.metadata.source_url == "https://s"

    with pytest.raises(ValidationError):
        start_task_params_adapter.validate_python({"input": base["input"]})


def test_error_envelope_keeps_null_id():
    wire = create_error_response(None, -32700, "Parse error").to_wire()
    assert wire == {"jsonrpc": "2.0", "id": None, "error": {"code": -32700, "message": "Parse error"}}

    request = create_request("GetTaskStatus", {"taskId": "task_1"})
    assert isinstance(request.id, int)
    with pytest.raises(ValidationError):
        request.method = "CancelTask"


def test_discussion_request_normalizes_peer_sources():
    request = DiscussionRequest.model_validate(
        {"url": "https://p", "claim": "c", "relatedArticles": ["https://a", {"url": "https://b"}, {}]}
    )
    assert request.peer_sources == ["https://a", "https://b", ""]
    assert request.primary_source == "https://p"
    assert DiscussionRequest.model_validate({"primarySource": "https://q", "claim": "c"}).primary_source == "https://q"
    assert DiscussionRequest.model_validate({"claim": "c"}).missing_fields() == ["primarySource"]


def test_event_ids_are_stable_per_trace_and_sequence():
    stamper = EventStamper(trace_id="dsc_fixed")
    first = stamper.stamp(DiscussionEventType.INIT, {"claim": "c"})
    second = stamper.stamp(DiscussionEventType.STATUS, {"message": "m"})

    assert (first.sequence, second.sequence) == (1, 2)
    assert first.event_id == build_stable_event_id("dsc_fixed", 1, "init")
    assert first.event_id != second.event_id
    assert EventStamper(trace_id="dsc_fixed").stamp(DiscussionEventType.INIT, {}).event_id == first.event_id
