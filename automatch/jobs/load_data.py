"""Load CDE and deal exports into DuckDB."""
import argparse
import logging
from datetime import datetime

from automatch.config import settings
from automatch.ingest.cdes import ingest_cdes
from automatch.ingest.deals import ingest_deals
from automatch.utils.log import setup_job_logging

logger = logging.getLogger(__name__)


def main(argv=None):
    """Main entry point for the data load job."""
    parser = argparse.ArgumentParser(description="Load cdes_merged and deals exports into DuckDB")
    parser.add_argument(
        "--cdes",
        type=str,
        default=str(settings.cdes_path),
        help="Path to cdes_merged export (CSV, XLSX or JSON)"
    )
    parser.add_argument(
        "--deals",
        type=str,
        default=str(settings.deals_path),
        help="Path to deals export (CSV, XLSX or JSON)"
    )
    parser.add_argument(
        "--skip-cdes",
        action="store_true",
        default=False,
        help="Only load deals"
    )
    parser.add_argument(
        "--skip-deals",
        action="store_true",
        default=False,
        help="Only load CDEs"
    )
    args = parser.parse_args(argv)

    settings.ensure_dirs()
    setup_job_logging("load_data")

    start_time = datetime.now()
    logger.info("Starting data load job...")

    if not args.skip_cdes:
        cdes_df = ingest_cdes(args.cdes)
        logger.info(f"CDE rows loaded: {len(cdes_df)}")

    if not args.skip_deals:
        deals_df = ingest_deals(args.deals)
        logger.info(f"Deals loaded: {len(deals_df)}")

    duration = (datetime.now() - start_time).total_seconds()
    logger.info(f"Data load complete in {duration:.2f} seconds", extra={"duration": duration})


if __name__ == "__main__":
    main()
