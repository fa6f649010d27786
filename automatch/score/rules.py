"""Scoring rules and constants."""
from typing import Dict, List, Tuple

# Binary criteria in evaluation order; each is worth one point
CRITERIA: Tuple[str, ...] = (
    "geographic",
    "financing",
    "urbanRural",
    "sector",
    "dealSize",
    "smallDealFund",
    "severelyDistressed",
    "distressPercentile",
    "minorityFocus",
    "utsFocus",
    "entityType",
    "ownerOccupied",
    "tribal",
    "allocationType",
    "hasAllocation",
)

# Failing either of these forces the score to 0
ELIMINATORS: Tuple[str, ...] = ("geographic", "financing")

TOTAL_CRITERIA = len(CRITERIA)

# Deals below this amount need a CDE small-deal fund
SMALL_DEAL_THRESHOLD = 5_000_000

# Match strength bands (score = points / 15 x 100)
STRENGTH_EXCELLENT_MIN = 80
STRENGTH_GOOD_MIN = 65
STRENGTH_FAIR_MIN = 50

MATCH_THRESHOLDS: Dict[str, int] = {
    "excellent": STRENGTH_EXCELLENT_MIN,
    "good": STRENGTH_GOOD_MIN,
    "fair": STRENGTH_FAIR_MIN,
    "weak": 0,
}

# UI tier labels for the same bands
TIER_LABELS: Dict[str, str] = {
    "excellent": "Excellent",
    "good": "Good",
    "fair": "Fair",
    "weak": "Poor",
}

DEFAULT_ALLOCATION_TYPE = "federal"

MAX_SCORE = 100

# Marketplace deal ranking (independent of any CDE)
DEAL_SCORE_BASE = 50
DEAL_SCORE_RULES: Dict[str, int] = {
    "SEVERELY_DISTRESSED": 20,
    "QCT": 10,
    "NONPROFIT": 10,
    "LARGE_REQUEST": 10,  # >= SMALL_DEAL_THRESHOLD
}

# CDFI Fund underserved/targeted states by NMTC allocation round
UNDERSERVED_STATES_BY_YEAR: Dict[int, Tuple[str, ...]] = {
    2025: ("AZ", "CA", "CO", "CT", "FL", "KS", "NC", "TX", "VA", "WV", "PR"),
    2024: ("AZ", "CA", "CO", "CT", "FL", "KS", "NC", "TX", "VA", "WV", "PR"),
    2023: ("AZ", "CA", "CO", "FL", "KS", "NV", "NC", "TX", "VA", "WV", "PR"),
    2022: ("AZ", "CA", "CO", "FL", "NV", "NC", "TN", "TX", "VA", "WV", "VI", "AS", "GU", "MP"),
}


def underserved_states(year: int) -> Tuple[str, ...]:
    """
    Underserved states for an allocation round.

    Years without a published list use the latest round before them; years
    before the first round have no underserved states.

    Args:
        year: Allocation round year

    Returns:
        Tuple of state/territory codes
    """
    rounds: List[int] = sorted(y for y in UNDERSERVED_STATES_BY_YEAR if y <= year)
    if not rounds:
        return ()
    return UNDERSERVED_STATES_BY_YEAR[rounds[-1]]
