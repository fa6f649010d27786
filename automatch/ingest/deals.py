"""Deal ingestion (deals export with intake_data JSON)."""
import logging
from typing import Dict, List, Optional, Union
from pathlib import Path

import pandas as pd
from pydantic import ValidationError

from automatch.config import settings
from automatch.models import DealInput
from automatch.utils.coerce import is_missing, to_bool, to_dict, to_float, to_list, to_optional_bool
from automatch.utils.db import write_text_table
from automatch.utils.fuzzy import map_headers
from automatch.utils.io import read_data_file
from automatch.utils.text import contains_any, normalize_text

logger = logging.getLogger(__name__)

# Header mapping: canonical name -> expected header name
EXPECTED_HEADERS = {
    "id": "id",
    "project_name": "project_name",
    "state": "state",
    "city": "city",
    "status": "status",
    "programs": "programs",
    "project_type": "project_type",
    "nmtc_financing_requested": "nmtc_financing_requested",
    "tract_eligible": "tract_eligible",
    "tract_severely_distressed": "tract_severely_distressed",
    "tract_classification": "tract_classification",
    "distress_score": "distress_score",
    "program_level": "program_level",
    "intake_data": "intake_data",
}

# Deal statuses open to AutoMatch scans
OPEN_STATUSES = {"available", "seeking capital"}

# Project-type keywords that imply a real estate venture
REAL_ESTATE_KEYWORDS = (
    "community facility", "community center", "healthcare", "medical", "clinic", "hospital",
    "education", "school", "charter", "housing", "residential", "affordable", "senior",
    "shelter", "homeless", "rescue", "mission", "childcare", "daycare", "industrial",
    "manufacturing", "warehouse", "retail", "commercial", "office", "mixed use",
    "renovation", "construction", "development", "building", "facility", "real estate",
)

NONPROFIT_KEYWORDS = ("nonprofit", "non profit", "501")


def _first(*values):
    for value in values:
        if not is_missing(value):
            return value
    return None


def infer_venture_type(venture_type: Optional[str], project_type: Optional[str]) -> Optional[str]:
    """
    Resolve a deal's venture type.

    Uses the intake venture type when given, otherwise infers "Real Estate"
    from project-type keywords. Returns None when undeterminable.
    """
    venture = normalize_text(venture_type)
    if "real estate" in venture:
        return "Real Estate"
    if "business" in venture or "operating" in venture:
        return "Business"

    project = normalize_text(project_type)
    if project and contains_any(project, REAL_ESTATE_KEYWORDS):
        return "Real Estate"
    return None


def is_nonprofit_org(organization_type: Optional[str]) -> bool:
    """True if an organization type describes a nonprofit (incl. 501(c)(3))."""
    return contains_any(normalize_text(organization_type), NONPROFIT_KEYWORDS)


def deal_from_record(record: Dict) -> DealInput:
    """
    Validate a deals row into a DealInput.

    Intake form answers (``intake_data`` JSON) take precedence over
    table columns where both exist.

    Args:
        record: Row dict keyed by canonical column names

    Returns:
        DealInput

    Raises:
        pydantic.ValidationError: If the row has an invalid shape
    """
    intake = to_dict(record.get("intake_data"))

    project_type = _first(record.get("project_type"), intake.get("projectType"))
    sector = _first(intake.get("sectorCategory"), project_type)

    is_rural = to_bool(intake.get("isRural")) or "rural" in normalize_text(record.get("tract_classification"))

    distress = to_float(intake.get("distressPercentile"))
    if not distress:
        distress = to_float(record.get("distress_score")) or 0

    return DealInput(
        deal_id=None if is_missing(record.get("id")) else str(record.get("id")),
        project_name=None if is_missing(record.get("project_name")) else str(record.get("project_name")),
        state="" if is_missing(record.get("state")) else str(record.get("state")).strip(),
        sector=None if sector is None else str(sector),
        # Missing amount fails validation
        amount=to_float(record.get("nmtc_financing_requested")),
        venture_type=infer_venture_type(intake.get("ventureType"), project_type),
        is_owner_occupied=to_optional_bool(intake.get("isOwnerOccupied")),
        is_rural=is_rural,
        severely_distressed=to_bool(record.get("tract_severely_distressed")),
        is_qct=to_bool(record.get("tract_eligible")),
        distress_percentile=distress,
        is_minority_owned=to_bool(intake.get("minorityOwned")) or to_bool(intake.get("isMinorityOwned")),
        is_tribal=to_bool(intake.get("isTribal")) or to_bool(intake.get("isAian")),
        is_uts=to_bool(intake.get("isUts")),
        is_nonprofit=is_nonprofit_org(_first(intake.get("organizationType"), intake.get("entityType"))),
        allocation_type=None if is_missing(record.get("program_level")) else str(record.get("program_level")),
    )


def is_open_nmtc_deal(record: Dict) -> bool:
    """Deal is available/seeking capital and in the NMTC program."""
    status = normalize_text(record.get("status"))
    programs = [p.strip().upper() for p in to_list(record.get("programs"))]
    return status in OPEN_STATUSES and "NMTC" in programs


def load_deals(df: pd.DataFrame, open_only: bool = False) -> List[DealInput]:
    """
    Convert a deals DataFrame into validated DealInputs.

    Rows that fail validation are logged and skipped.

    Args:
        df: DataFrame keyed by canonical column names
        open_only: Keep only open NMTC deals

    Returns:
        List of DealInput
    """
    deals = []
    skipped = 0

    for record in df.to_dict(orient="records"):
        if open_only and not is_open_nmtc_deal(record):
            continue
        try:
            deals.append(deal_from_record(record))
        except ValidationError as e:
            skipped += 1
            logger.warning(f"Skipping invalid deal row {record.get('id')}: {e.error_count()} errors")

    logger.info(f"Loaded {len(deals)} deals ({skipped} skipped)")
    return deals


def ingest_deals(file_path: Union[str, Path], db_path: Optional[str] = None) -> pd.DataFrame:
    """
    Ingest a deals export into DuckDB table raw_deals.

    Args:
        file_path: Path to CSV, XLSX or JSON export
        db_path: DuckDB path (defaults to settings)

    Returns:
        DataFrame with canonical columns
    """
    logger.info(f"Ingesting deals from {file_path}")
    df = read_data_file(file_path)

    header_map = map_headers(EXPECTED_HEADERS, list(df.columns), settings.header_match_threshold)
    missing = [c for c in ("id", "state", "nmtc_financing_requested") if c not in header_map]
    if missing:
        raise ValueError(f"Deal export is missing required columns: {missing}")

    df = df[list(header_map.values())].rename(columns={v: k for k, v in header_map.items()})
    for column in EXPECTED_HEADERS:
        if column not in df.columns:
            df[column] = None

    df = df[list(EXPECTED_HEADERS)]
    write_text_table(df, "raw_deals", db_path)

    logger.info(f"Ingested {len(df)} deals into raw_deals")
    return df
