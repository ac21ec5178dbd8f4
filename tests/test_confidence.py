import pytest

from claim_consensus.services.confidence import aggregate_confidence, extract_confidence


@pytest.mark.parametrize(
    "text,expected",
    [
        ("confidence: 0.83", 0.83),
        ("83%", 0.83),
        ("0.83", 0.83),
        ("1.0", 1.0),
        ("I would say 0.7/1 overall", 0.7),
        ("Confidence 0.456 after review", 0.46),
    ],
)
def test_extract_confidence_rules(text, expected):
    assert extract_confidence(text) == expected


@pytest.mark.parametrize("text", ["150%", "1.5", "no numbers here", "", None])
def test_extract_confidence_returns_none_when_nothing_in_range(text):
    assert extract_confidence(text) is None


def test_out_of_range_rule_falls_through_to_next_rule():
    # "confidence: 2" is rejected, the bare 0.x rule still applies
    assert extract_confidence("confidence: 2, maybe 0.4 really") == 0.4


def test_first_matching_rule_wins():
    assert extract_confidence("confidence: 0.2 but 90% of sources agree") == 0.2


def test_aggregate_confidence_mean_and_default():
    assert aggregate_confidence([0.9, 0.3, 0.6]) == pytest.approx(0.6)
    assert aggregate_confidence([0.8, 0.9]) == pytest.approx(0.85)
    assert aggregate_confidence([0.1, None, 0.2]) == pytest.approx(0.15)
    assert aggregate_confidence([]) == 0.5
    assert aggregate_confidence([None, None]) == 0.5
