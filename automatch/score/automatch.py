"""AutoMatch runs: score many candidates, rank, and truncate."""
import logging
from typing import Dict, Iterable, List, Optional

from automatch.models import CdeInput, CdeMatch, DealInput, DealMatch
from automatch.score.scorer import score_match

logger = logging.getLogger(__name__)

# Sponsors are shown their top three CDE matches
TOP_MATCHES = 3


def run_automatch(
    deal: DealInput,
    cdes: Iterable[CdeInput],
    reference_year: int,
    min_score: int = 0,
    max_results: int = 500
) -> List[CdeMatch]:
    """
    Score every CDE row against a deal.

    CDE rows come one per organization per allocation year. Each
    organization keeps its best score across years, reported under the row
    id of its latest allocation year.

    Args:
        deal: Deal to match
        cdes: Candidate CDE rows
        reference_year: Allocation round for the underserved-states lookup
        min_score: Drop matches scoring below this
        max_results: Maximum number of matches returned

    Returns:
        Matches sorted by descending score
    """
    latest_row: Dict[str, CdeInput] = {}
    best: Dict[str, CdeMatch] = {}
    scored = 0

    for cde in cdes:
        org = cde.organization_key
        current = latest_row.get(org)
        if current is None or (cde.year or 0) > (current.year or 0):
            latest_row[org] = cde

        result = score_match(deal, cde, reference_year)
        scored += 1

        existing = best.get(org)
        if existing is None or result.score > existing.score:
            best[org] = CdeMatch(
                cde_id=cde.cde_id,
                organization_id=cde.organization_id,
                cde_name=cde.name or "Unknown CDE",
                year=cde.year,
                score=result.score,
                strength=result.strength,
                breakdown=result.breakdown,
                reasons=result.reasons,
            )

    matches = []
    for org, match in best.items():
        latest = latest_row[org]
        matches.append(match.model_copy(update={"cde_id": latest.cde_id, "year": latest.year}))

    matches = [m for m in matches if m.score >= min_score]
    matches.sort(key=lambda m: (-m.score, m.cde_name))
    matches = matches[:max_results]

    logger.info(
        f"AutoMatch for deal {deal.deal_id}: scored {scored} CDE rows across "
        f"{len(best)} organizations, {len(matches)} matches >= {min_score}"
    )
    return matches


def top_matches(matches: List[CdeMatch], n: Optional[int] = None) -> List[CdeMatch]:
    """Apply the 3-deal rule: keep the n best matches (default three)."""
    limit = TOP_MATCHES if n is None else n
    ranked = sorted(matches, key=lambda m: (-m.score, m.cde_name))
    return ranked[:limit]


def scan_deals(
    cde: CdeInput,
    deals: Iterable[DealInput],
    reference_year: int,
    min_score: int = 70,
    limit: int = 500
) -> List[DealMatch]:
    """
    Score open deals against one CDE (CDE view).

    Args:
        cde: CDE whose criteria drive the scan
        deals: Candidate deals
        reference_year: Allocation round for the underserved-states lookup
        min_score: Drop deals scoring below this
        limit: Maximum number of deals returned

    Returns:
        Deal matches sorted by descending score
    """
    matches = []
    for deal in deals:
        result = score_match(deal, cde, reference_year)
        if result.score < min_score:
            continue
        matches.append(DealMatch(
            deal_id=deal.deal_id,
            project_name=deal.project_name or "Untitled",
            state=deal.state,
            amount=deal.amount,
            score=result.score,
            strength=result.strength,
            breakdown=result.breakdown,
            reasons=result.reasons,
        ))

    matches.sort(key=lambda m: (-m.score, m.project_name))
    matches = matches[:limit]

    logger.info(f"Scan for CDE {cde.name or cde.cde_id}: {len(matches)} deals >= {min_score}")
    return matches
