"""AutoMatch job: match deals to CDEs and save match records."""
import argparse
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

import pandas as pd
from tqdm import tqdm

from automatch.backend.client import AutoMatchBackendClient, BackendAuthError, BackendUnavailable
from automatch.config import settings
from automatch.ingest.cdes import load_cdes
from automatch.ingest.deals import load_deals
from automatch.models import CdeInput, CdeMatch, DealInput
from automatch.score.automatch import run_automatch, top_matches
from automatch.score.persist import matches_to_frame, persist_matches
from automatch.score.scorer import match_strength
from automatch.utils.db import read_table
from automatch.utils.io import write_csv
from automatch.utils.log import setup_job_logging

logger = logging.getLogger(__name__)


def cde_match_from_backend(item: Dict) -> CdeMatch:
    """Convert one match from the AutoMatch service payload."""
    score = int(round(float(item.get("totalScore", item.get("matchScore", 0)) or 0)))
    return CdeMatch(
        cde_id=item.get("cdeId"),
        organization_id=item.get("organizationId"),
        cde_name=item.get("cdeName") or "Unknown CDE",
        score=score,
        strength=item.get("matchStrength") or match_strength(score),
        breakdown=item.get("breakdown") or {},
        reasons=item.get("reasons") or [],
    )


def automatch_for_deal(
    deal: DealInput,
    cdes: List[CdeInput],
    reference_year: int,
    min_score: int = 0,
    max_results: int = 500,
    client: Optional[AutoMatchBackendClient] = None
) -> Tuple[List[CdeMatch], str]:
    """
    Match one deal, preferring the AutoMatch service when a client is given.

    Falls back to local scoring when the service is unreachable or rejects
    the token. Other service errors propagate.

    Returns:
        Tuple of (matches, source) where source is "backend" or "local"
    """
    if client is not None and deal.deal_id:
        try:
            payload = client.run_automatch(deal.deal_id, min_score=min_score, max_results=max_results)
            items = payload.get("matches", []) if isinstance(payload, dict) else payload
            matches = [cde_match_from_backend(item) for item in items or []]
            return matches, "backend"
        except (BackendUnavailable, BackendAuthError) as e:
            logger.info(f"AutoMatch service unavailable for deal {deal.deal_id}, using local scoring: {e}")

    matches = run_automatch(deal, cdes, reference_year, min_score=min_score, max_results=max_results)
    return matches, "local"


def main(argv=None):
    """Main entry point for the AutoMatch job."""
    parser = argparse.ArgumentParser(description="Run AutoMatch for deals against active CDEs")
    parser.add_argument(
        "--deal-ids",
        type=str,
        help="Comma-separated list of deal IDs to match (default: all open NMTC deals)"
    )
    parser.add_argument("--min-score", type=int, default=settings.run_min_score, help="Minimum score kept")
    parser.add_argument("--max-results", type=int, default=settings.max_results, help="Maximum matches per deal")
    parser.add_argument("--top", type=int, default=settings.top_n, help="Matches logged per deal")
    parser.add_argument(
        "--reference-year",
        type=int,
        default=settings.reference_year,
        help="Allocation round for the underserved-states lookup"
    )
    parser.add_argument(
        "--use-backend",
        action="store_true",
        default=False,
        help="Try the AutoMatch service first, fall back to local scoring"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Score and log without saving match records"
    )
    args = parser.parse_args(argv)

    settings.ensure_dirs()
    setup_job_logging("run_automatch")

    start_time = datetime.now()
    logger.info("Starting AutoMatch job...")

    cdes = load_cdes(read_table("raw_cdes"))
    deals_df = read_table("raw_deals")

    if args.deal_ids:
        wanted = {d.strip() for d in args.deal_ids.split(",") if d.strip()}
        deals_df = deals_df[deals_df["id"].astype(str).isin(wanted)] if not deals_df.empty else deals_df
        deals = load_deals(deals_df)
    else:
        deals = load_deals(deals_df, open_only=True)

    if not deals or not cdes:
        logger.warning(f"Nothing to match: {len(deals)} deals, {len(cdes)} CDE rows")
        return

    client = None
    if args.use_backend:
        try:
            client = AutoMatchBackendClient()
        except BackendUnavailable as e:
            logger.warning(f"{e}; scoring locally")

    frames = []
    for deal in tqdm(deals, desc="AutoMatch", unit="deal"):
        matches, source = automatch_for_deal(
            deal, cdes, args.reference_year,
            min_score=args.min_score, max_results=args.max_results, client=client
        )
        frames.append(matches_to_frame(deal.deal_id, matches, source))

        for match in top_matches(matches, args.top):
            logger.info(
                f"Deal {deal.deal_id} ({deal.project_name}): {match.cde_name} "
                f"{match.score}% {match.strength} [{source}]"
            )

    result_df = pd.concat(frames, ignore_index=True)

    if args.dry_run:
        logger.info(f"DRY RUN: would save {len(result_df)} match records")
    else:
        persist_matches(result_df, deal_ids=[d.deal_id for d in deals if d.deal_id])

    timestamp = datetime.now().strftime("%Y%m%d_%H%M")
    write_csv(result_df, settings.out_dir / f"automatch_{timestamp}.csv")

    duration = (datetime.now() - start_time).total_seconds()
    logger.info(
        f"AutoMatch complete: {len(deals)} deals, {len(result_df)} matches in {duration:.2f} seconds",
        extra={"duration": duration}
    )


if __name__ == "__main__":
    main()
