"""CDE match scoring module.

Binary scoring: 15 criteria worth one point each, two of which
(geographic and financing) eliminate the match outright when they fail.
Score = points / 15 x 100, rounded.
"""
import logging
import math
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

from automatch.models import CdeInput, DealInput, MatchResult
from automatch.score.reasons import compose_reasons
from automatch.score.rules import (
    CRITERIA,
    DEAL_SCORE_BASE,
    DEAL_SCORE_RULES,
    DEFAULT_ALLOCATION_TYPE,
    MAX_SCORE,
    SMALL_DEAL_THRESHOLD,
    STRENGTH_EXCELLENT_MIN,
    STRENGTH_FAIR_MIN,
    STRENGTH_GOOD_MIN,
    TIER_LABELS,
    TOTAL_CRITERIA,
    underserved_states,
)
from automatch.utils.states import state_key
from automatch.utils.text import normalize_text

logger = logging.getLogger(__name__)

REAL_ESTATE = "real_estate"
BUSINESS = "business"


def financing_kinds(focus: Optional[str]) -> FrozenSet[str]:
    """
    Classify a CDE financing focus.

    Returns an empty set when the focus is missing or unrecognized, which
    the financing gate treats as "finances anything".
    """
    text = normalize_text(focus)
    if not text:
        return frozenset()
    if text == "both" or "both" in text.split():
        return frozenset({REAL_ESTATE, BUSINESS})

    kinds = set()
    if "real estate" in text:
        kinds.add(REAL_ESTATE)
    if "business" in text or "operating" in text:
        kinds.add(BUSINESS)
    return frozenset(kinds)


def venture_kind(venture_type: Optional[str]) -> Optional[str]:
    """Classify a deal venture type, or None if unknown."""
    text = normalize_text(venture_type)
    if "real estate" in text:
        return REAL_ESTATE
    if "business" in text or "operating" in text:
        return BUSINESS
    return None


def passes_geographic(deal: DealInput, cde: CdeInput) -> bool:
    """CDE must be national or serve the deal's state."""
    if cde.is_national:
        return True

    deal_state = state_key(deal.state)
    if not deal_state:
        return False

    for served in cde.service_states:
        if normalize_text(served) == "national":
            return True
        if state_key(served) == deal_state:
            return True
    return False


def passes_financing(deal: DealInput, cde: CdeInput) -> bool:
    """CDE financing focus must cover the deal's venture type."""
    cde_kinds = financing_kinds(cde.financing_focus)
    if not cde_kinds:
        return True

    deal_kind = venture_kind(deal.venture_type)
    if deal_kind is None:
        return True

    return deal_kind in cde_kinds


def sector_matches(deal_sector: Optional[str], cde_sectors: Iterable[str]) -> Tuple[bool, bool]:
    """
    Check the deal sector against the CDE's target sectors.

    Returns:
        Tuple of (matched, restricted). An empty sector list is no restriction.
    """
    sectors = [s for s in (normalize_text(x) for x in cde_sectors) if s]
    if not sectors:
        return True, False

    deal_text = normalize_text(deal_sector)
    if not deal_text:
        return False, True

    for sector in sectors:
        if sector in deal_text or deal_text in sector:
            return True, True
    return False, True


def is_underserved(deal: DealInput, cde: CdeInput, reference_year: int) -> bool:
    """Deal is flagged UTS or sits in an underserved state for the round(s) in play."""
    if deal.is_uts:
        return True

    deal_state = state_key(deal.state)
    if not deal_state:
        return False

    years = {reference_year, *cde.allocation_years}
    if cde.year:
        years.add(cde.year)
    return any(deal_state in underserved_states(year) for year in years)


def match_strength(score: int) -> str:
    """Strength label for a score."""
    if score >= STRENGTH_EXCELLENT_MIN:
        return "excellent"
    elif score >= STRENGTH_GOOD_MIN:
        return "good"
    elif score >= STRENGTH_FAIR_MIN:
        return "fair"
    return "weak"


def match_tier(score: int) -> str:
    """UI tier label for a score: Excellent, Good, Fair or Poor."""
    return TIER_LABELS[match_strength(score)]


def _eliminated(deal: DealInput, cde: CdeInput, breakdown: Dict[str, int], code: str) -> MatchResult:
    return MatchResult(
        score=0,
        strength="weak",
        breakdown=breakdown,
        reason_codes=[code],
        reasons=compose_reasons([code], deal, cde),
    )


def score_match(deal: DealInput, cde: CdeInput, reference_year: int) -> MatchResult:
    """
    Score a deal against a CDE.

    Args:
        deal: Validated deal input
        cde: Validated CDE input
        reference_year: Allocation round for the underserved-states lookup

    Returns:
        MatchResult with score, strength, 15-criterion breakdown and reasons
    """
    scores: Dict[str, int] = {name: 0 for name in CRITERIA}
    reason_codes = []

    # 1. Geographic (eliminator)
    if not passes_geographic(deal, cde):
        return _eliminated(deal, cde, scores, "GEO_MISMATCH")
    scores["geographic"] = 1

    # 2. Financing (eliminator)
    if not passes_financing(deal, cde):
        return _eliminated(deal, cde, scores, "FIN_MISMATCH")
    scores["financing"] = 1

    # 3. Urban/Rural
    if deal.is_rural and cde.rural_focus:
        scores["urbanRural"] = 1
        reason_codes.append("RURAL")
    elif not deal.is_rural and cde.urban_focus:
        scores["urbanRural"] = 1
        reason_codes.append("URBAN")
    elif not cde.rural_focus and not cde.urban_focus:
        scores["urbanRural"] = 1

    # 4. Sector
    matched, restricted = sector_matches(deal.sector, cde.target_sectors)
    if matched:
        scores["sector"] = 1
        if restricted:
            reason_codes.append("SECTOR")

    # 5. Deal size
    amount = deal.amount
    low = cde.min_deal_size or 0
    high = cde.max_deal_size if cde.max_deal_size else math.inf
    if low <= amount <= high:
        scores["dealSize"] = 1
        if cde.min_deal_size or cde.max_deal_size:
            reason_codes.append("DEAL_SIZE")

    # 6. Small deal fund
    if amount >= SMALL_DEAL_THRESHOLD:
        scores["smallDealFund"] = 1
    elif cde.small_deal_fund:
        scores["smallDealFund"] = 1
        reason_codes.append("SMALL_DEAL_FUND")

    # 7. Severely distressed
    if not cde.require_severely_distressed:
        scores["severelyDistressed"] = 1
    elif deal.severely_distressed:
        scores["severelyDistressed"] = 1
        reason_codes.append("DISTRESSED")

    # 8. Distress percentile; a minimum of 0 means none required
    min_distress = cde.min_distress_percentile
    if min_distress == 0:
        scores["distressPercentile"] = 1
    elif deal.distress_percentile >= min_distress:
        scores["distressPercentile"] = 1
        reason_codes.append("DISTRESS_PCT")

    # 9. Minority focus
    if not cde.minority_focus:
        scores["minorityFocus"] = 1
    elif deal.is_minority_owned:
        scores["minorityFocus"] = 1
        reason_codes.append("MINORITY")

    # 10. Underserved/targeted states
    if not cde.uts_focus:
        scores["utsFocus"] = 1
    elif is_underserved(deal, cde, reference_year):
        scores["utsFocus"] = 1
        reason_codes.append("UTS")

    # 11. Entity type
    if cde.forprofit_accepted or deal.is_nonprofit:
        scores["entityType"] = 1
        if deal.is_nonprofit and (cde.nonprofit_preferred or not cde.forprofit_accepted):
            reason_codes.append("NONPROFIT")

    # 12. Owner occupied; unspecified deals count as owner-occupied
    is_owner_occupied = True if deal.is_owner_occupied is None else deal.is_owner_occupied
    if not cde.owner_occupied_preferred:
        scores["ownerOccupied"] = 1
    elif is_owner_occupied:
        scores["ownerOccupied"] = 1
        reason_codes.append("OWNER_OCC")

    # 13. Tribal
    if not cde.tribal_focus:
        scores["tribal"] = 1
    elif deal.is_tribal:
        scores["tribal"] = 1
        reason_codes.append("TRIBAL")

    # 14. Allocation type
    deal_alloc = normalize_text(deal.allocation_type) or DEFAULT_ALLOCATION_TYPE
    cde_alloc = normalize_text(cde.allocation_type) or DEFAULT_ALLOCATION_TYPE
    if deal_alloc == cde_alloc:
        scores["allocationType"] = 1
        if cde.allocation_type:
            reason_codes.append("ALLOC_TYPE")

    # 15. Has allocation
    if cde.remaining_allocation > 0:
        scores["hasAllocation"] = 1
        reason_codes.append("HAS_ALLOC")

    total_points = sum(scores.values())
    score = math.floor(total_points / TOTAL_CRITERIA * 100 + 0.5)

    logger.debug(f"Scored deal {deal.deal_id} vs CDE {cde.cde_id}: {total_points}/{TOTAL_CRITERIA}")

    return MatchResult(
        score=score,
        strength=match_strength(score),
        breakdown=scores,
        reason_codes=reason_codes,
        reasons=compose_reasons(reason_codes, deal, cde),
    )


def calculate_deal_score(deal: DealInput) -> int:
    """
    Rank a deal for the marketplace, independent of any CDE.

    Args:
        deal: Validated deal input

    Returns:
        Score between DEAL_SCORE_BASE and 100
    """
    score = DEAL_SCORE_BASE

    if deal.severely_distressed:
        score += DEAL_SCORE_RULES["SEVERELY_DISTRESSED"]
    if deal.is_qct:
        score += DEAL_SCORE_RULES["QCT"]
    if deal.is_nonprofit:
        score += DEAL_SCORE_RULES["NONPROFIT"]
    if deal.amount >= SMALL_DEAL_THRESHOLD:
        score += DEAL_SCORE_RULES["LARGE_REQUEST"]

    return min(score, MAX_SCORE)
