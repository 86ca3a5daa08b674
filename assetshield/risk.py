# assetshield/risk.py
# Rule-based scoring for the asset-protection questionnaire.
from typing import Iterable, List, NamedTuple, Optional

NET_WORTH_ESTIMATES = {
    "under_500k": 250_000,
    "500k_1m": 750_000,
    "1m_5m": 3_000_000,
    "5m_10m": 7_500_000,
    "over_10m": 15_000_000,
}
DEFAULT_NET_WORTH = 250_000

HIGH_EXPOSURE_PROFESSIONS = {"doctor", "lawyer", "business_owner"}

# (upper score bound, level, share of net worth at risk)
RISK_BANDS = (
    (3, "LOW", 0.1),
    (7, "MEDIUM", 0.3),
)
HIGH_BAND = ("HIGH", 0.6)

RECOMMENDATIONS = {
    "HIGH": [
        "Establish a Domestic Asset Protection Trust immediately",
        "Consider offshore asset protection structures",
        "Maximize liability insurance coverage",
    ],
    "MEDIUM": [
        "Form an LLC for business assets",
        "Establish a basic asset protection trust",
        "Review and increase liability insurance",
    ],
    "LOW": [
        "Maintain adequate liability insurance",
        "Consider an LLC for real estate holdings",
        "Regular review of asset protection strategies",
    ],
}


class RiskResult(NamedTuple):
    score: int
    level: str
    wealth_at_risk: int
    recommendations: List[str]


def score_answers(
    profession: Optional[str],
    legal_threats: Optional[str],
    has_real_estate: bool = False,
    legal_history: Optional[Iterable[str]] = None,
    current_protection: Optional[Iterable[str]] = None,
) -> int:
    score = 0
    if profession in HIGH_EXPOSURE_PROFESSIONS:
        score += 3

    if legal_threats == "active":
        score += 4
    elif legal_threats == "potential":
        score += 2

    if has_real_estate:
        score += 2

    history = set(legal_history or ())
    if history & {"lawsuit", "divorce"}:
        score += 3
    if "bankruptcy" in history:
        score += 4

    protection = list(current_protection or ())
    if not protection or "none" in protection:
        score += 2

    return score


def level_for_score(score: int):
    """Map a score to (level, share of net worth at risk)."""
    for bound, level, share in RISK_BANDS:
        if score <= bound:
            return level, share
    return HIGH_BAND


def calculate_risk(
    profession: Optional[str],
    net_worth: Optional[str],
    legal_threats: Optional[str],
    has_real_estate: bool = False,
    legal_history: Optional[Iterable[str]] = None,
    current_protection: Optional[Iterable[str]] = None,
) -> RiskResult:
    """Score the questionnaire answers and estimate the wealth exposed at that level."""
    score = score_answers(
        profession,
        legal_threats,
        has_real_estate=has_real_estate,
        legal_history=legal_history,
        current_protection=current_protection,
    )
    level, share = level_for_score(score)
    estimate = NET_WORTH_ESTIMATES.get(net_worth or "", DEFAULT_NET_WORTH)
    return RiskResult(
        score=score,
        level=level,
        wealth_at_risk=int(round(estimate * share)),
        recommendations=list(RECOMMENDATIONS[level]),
    )
