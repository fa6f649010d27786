"""Persist AutoMatch results as match records in DuckDB."""
import json
import logging
from typing import Iterable, List, Optional

import duckdb
import pandas as pd

from automatch.config import settings
from automatch.models import CdeMatch, DealMatch
from automatch.score.scorer import match_tier

logger = logging.getLogger(__name__)


def matches_to_frame(deal_id: Optional[str], matches: List[CdeMatch], source: str = "local") -> pd.DataFrame:
    """
    Flatten CDE matches for one deal into a DataFrame.

    Args:
        deal_id: Deal the matches belong to
        matches: Ranked CDE matches
        source: "local" or "backend"

    Returns:
        DataFrame with one row per match, breakdown as JSON
    """
    rows = []
    for rank, match in enumerate(matches, start=1):
        rows.append({
            "deal_id": deal_id,
            "cde_id": match.cde_id,
            "organization_id": match.organization_id,
            "cde_name": match.cde_name,
            "allocation_year": match.year,
            "rank": rank,
            "score": match.score,
            "strength": match.strength,
            "tier": match_tier(match.score),
            "breakdown": json.dumps(match.breakdown),
            "reason_text": "; ".join(match.reasons),
            "source": source,
        })
    df = pd.DataFrame(rows, columns=[
        "deal_id", "cde_id", "organization_id", "cde_name", "allocation_year", "rank",
        "score", "strength", "tier", "breakdown", "reason_text", "source",
    ])
    df["allocation_year"] = df["allocation_year"].astype("Int64")
    return df


def scan_to_frame(cde_id: Optional[str], matches: List[DealMatch]) -> pd.DataFrame:
    """Flatten CDE scan results into a DataFrame."""
    rows = []
    for match in matches:
        rows.append({
            "cde_id": cde_id,
            "deal_id": match.deal_id,
            "project_name": match.project_name,
            "state": match.state,
            "amount": match.amount,
            "score": match.score,
            "strength": match.strength,
            "tier": match_tier(match.score),
            "breakdown": json.dumps(match.breakdown),
            "reason_text": "; ".join(match.reasons),
        })
    return pd.DataFrame(rows, columns=[
        "cde_id", "deal_id", "project_name", "state", "amount", "score",
        "strength", "tier", "breakdown", "reason_text",
    ])


def persist_matches(
    result_df: pd.DataFrame,
    db_path: Optional[str] = None,
    deal_ids: Optional[Iterable[str]] = None
):
    """
    Replace stored match records for the scored deals.

    Every deal in deal_ids loses its previous records, including deals that
    have no rows in result_df because nothing matched on this run.

    Args:
        result_df: Output of matches_to_frame (one or more deals)
        db_path: DuckDB path (defaults to settings)
        deal_ids: Deals that were scored (defaults to the deal ids in result_df)
    """
    conn = duckdb.connect(db_path or settings.duckdb_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS cde_match (
                deal_id VARCHAR,
                cde_id VARCHAR,
                organization_id VARCHAR,
                cde_name VARCHAR,
                allocation_year INTEGER,
                "rank" INTEGER,
                score INTEGER,
                strength VARCHAR,
                tier VARCHAR,
                breakdown VARCHAR,
                reason_text TEXT,
                source VARCHAR,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        scored = list(deal_ids or [])
        for deal_id in result_df["deal_id"].dropna().unique().tolist():
            if deal_id not in scored:
                scored.append(deal_id)
        for deal_id in scored:
            conn.execute("DELETE FROM cde_match WHERE deal_id = ?", [deal_id])

        if not result_df.empty:
            conn.register("result_df", result_df)
            conn.execute("""
                INSERT INTO cde_match
                SELECT
                    CAST(deal_id AS VARCHAR), CAST(cde_id AS VARCHAR), CAST(organization_id AS VARCHAR),
                    CAST(cde_name AS VARCHAR), CAST(allocation_year AS INTEGER), CAST("rank" AS INTEGER),
                    CAST(score AS INTEGER), strength, tier, breakdown, reason_text, source,
                    CURRENT_TIMESTAMP
                FROM result_df
            """)
            conn.unregister("result_df")
    finally:
        conn.close()

    logger.info(f"Persisted {len(result_df)} match records for {len(scored)} deals")


def load_matches(deal_id: str, db_path: Optional[str] = None) -> pd.DataFrame:
    """Load stored match records for a deal, best first."""
    conn = duckdb.connect(db_path or settings.duckdb_path)
    try:
        return conn.execute(
            'SELECT * FROM cde_match WHERE deal_id = ? ORDER BY "rank"',
            [deal_id]
        ).df()
    except duckdb.CatalogException:
        return pd.DataFrame()
    finally:
        conn.close()
