import pytest

from assetshield.risk import RECOMMENDATIONS, calculate_risk, level_for_score, score_answers


def test_low_risk_with_protection():
    result = calculate_risk("engineer", "under_500k", "none", current_protection=["llc"])
    assert result.score == 0
    assert result.level == "LOW"
    assert result.wealth_at_risk == 25_000
    assert result.recommendations == RECOMMENDATIONS["LOW"]


def test_missing_protection_adds_points():
    assert score_answers("engineer", "none") == 2
    assert score_answers("engineer", "none", current_protection=[]) == 2
    assert score_answers("engineer", "none", current_protection=["trust", "none"]) == 2
    assert score_answers("engineer", "none", current_protection=["trust"]) == 0


def test_medium_risk():
    result = calculate_risk("doctor", "1m_5m", "potential")
    assert result.score == 7
    assert result.level == "MEDIUM"
    assert result.wealth_at_risk == 900_000


def test_high_risk_everything():
    result = calculate_risk(
        "lawyer",
        "over_10m",
        "active",
        has_real_estate=True,
        legal_history=["lawsuit", "divorce", "bankruptcy"],
        current_protection=["none"],
    )
    assert result.score == 3 + 4 + 2 + 3 + 4 + 2
    assert result.level == "HIGH"
    assert result.wealth_at_risk == 9_000_000
    assert result.recommendations == RECOMMENDATIONS["HIGH"]


def test_lawsuit_and_divorce_count_once():
    assert score_answers(None, None, legal_history=["lawsuit"], current_protection=["llc"]) == 3
    assert score_answers(None, None, legal_history=["lawsuit", "divorce"], current_protection=["llc"]) == 3


@pytest.mark.parametrize(
    "score, level",
    [(0, "LOW"), (3, "LOW"), (4, "MEDIUM"), (7, "MEDIUM"), (8, "HIGH"), (20, "HIGH")],
)
def test_level_bands(score, level):
    assert level_for_score(score)[0] == level


def test_unknown_net_worth_uses_default():
    result = calculate_risk("engineer", "lots", "none", current_protection=["llc"])
    assert result.wealth_at_risk == 25_000


def test_recommendations_are_copies():
    result = calculate_risk("engineer", "under_500k", "none")
    result.recommendations.append("mutated")
    assert "mutated" not in RECOMMENDATIONS["LOW"]
