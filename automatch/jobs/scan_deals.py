"""CDE scan job: find open deals matching one CDE's criteria."""
import argparse
import logging
from datetime import datetime
from typing import List, Optional

from automatch.config import settings
from automatch.ingest.cdes import load_cdes
from automatch.ingest.deals import load_deals
from automatch.models import CdeInput
from automatch.score.automatch import scan_deals
from automatch.score.persist import scan_to_frame
from automatch.utils.db import read_table
from automatch.utils.io import write_csv
from automatch.utils.log import setup_job_logging

logger = logging.getLogger(__name__)


def find_cde(cdes: List[CdeInput], cde_id: str) -> Optional[CdeInput]:
    """
    Find a CDE by row id or organization id.

    When an organization has several allocation-year rows, the latest year wins.
    """
    candidates = [c for c in cdes if cde_id in (c.cde_id, c.organization_id)]
    if not candidates:
        return None
    return max(candidates, key=lambda c: c.year or 0)


def main(argv=None):
    """Main entry point for the CDE scan job."""
    parser = argparse.ArgumentParser(description="Scan open NMTC deals for one CDE")
    parser.add_argument("--cde-id", type=str, required=True, help="CDE row id or organization id")
    parser.add_argument("--min-score", type=int, default=settings.scan_min_score, help="Minimum score kept")
    parser.add_argument("--limit", type=int, default=settings.max_results, help="Maximum deals returned")
    parser.add_argument(
        "--reference-year",
        type=int,
        default=settings.reference_year,
        help="Allocation round for the underserved-states lookup"
    )
    args = parser.parse_args(argv)

    settings.ensure_dirs()
    setup_job_logging("scan_deals")

    start_time = datetime.now()
    logger.info(f"Starting deal scan for CDE {args.cde_id}...")

    cde = find_cde(load_cdes(read_table("raw_cdes"), active_only=False), args.cde_id)
    if cde is None:
        logger.error(f"CDE not found: {args.cde_id}")
        return

    deals = load_deals(read_table("raw_deals"), open_only=True)
    matches = scan_deals(cde, deals, args.reference_year, min_score=args.min_score, limit=args.limit)

    result_df = scan_to_frame(cde.cde_id, matches)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M")
    write_csv(result_df, settings.out_dir / f"scan_{cde.cde_id}_{timestamp}.csv")

    duration = (datetime.now() - start_time).total_seconds()
    logger.info(
        f"Scan complete: {len(matches)} of {len(deals)} deals >= {args.min_score}% in {duration:.2f} seconds",
        extra={"duration": duration}
    )


if __name__ == "__main__":
    main()
