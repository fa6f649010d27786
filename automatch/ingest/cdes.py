"""CDE allocation ingestion (cdes_merged export)."""
import logging
from typing import Dict, List, Optional, Union
from pathlib import Path

import pandas as pd
from pydantic import ValidationError

from automatch.config import settings
from automatch.models import CdeInput
from automatch.utils.coerce import is_missing, to_bool, to_float, to_int, to_list
from automatch.utils.db import write_text_table
from automatch.utils.fuzzy import map_headers
from automatch.utils.io import read_data_file
from automatch.utils.states import parse_market_states
from automatch.utils.text import contains_any, normalize_text

logger = logging.getLogger(__name__)

# Header mapping: canonical name -> expected header name
EXPECTED_HEADERS = {
    "id": "id",
    "organization_id": "organization_id",
    "name": "name",
    "year": "year",
    "status": "status",
    "service_area_type": "service_area_type",
    "primary_states": "primary_states",
    "predominant_market": "predominant_market",
    "predominant_financing": "predominant_financing",
    "innovative_activities": "innovative_activities",
    "non_metro_commitment": "non_metro_commitment",
    "target_sectors": "target_sectors",
    "min_deal_size": "min_deal_size",
    "max_deal_size": "max_deal_size",
    "small_deal_fund": "small_deal_fund",
    "require_severely_distressed": "require_severely_distressed",
    "min_distress_percentile": "min_distress_percentile",
    "min_distress_score": "min_distress_score",
    "minority_focus": "minority_focus",
    "uts_focus": "uts_focus",
    "underserved_states_focus": "underserved_states_focus",
    "nonprofit_preferred": "nonprofit_preferred",
    "forprofit_accepted": "forprofit_accepted",
    "owner_occupied_preferred": "owner_occupied_preferred",
    "native_american_focus": "native_american_focus",
    "rural_focus": "rural_focus",
    "urban_focus": "urban_focus",
    "allocation_type": "allocation_type",
    "amount_remaining": "amount_remaining",
    "allocation_years": "allocation_years",
}

# Rural focus is implied by a non-metro commitment at or above this share
NON_METRO_RURAL_MIN = 40

# Sector values used by the deal intake form
COMMUNITY_FACILITY_SECTORS = [
    "Community Facility", "Healthcare/Medical", "Education/Schools",
    "Childcare/Early Education", "Senior Services", "Food Access/Grocery",
]

# (keywords in predominant financing, sectors implied)
FINANCING_SECTOR_RULES = [
    (("community", "facilit"), COMMUNITY_FACILITY_SECTORS),
    (("industrial", "manufactur"), ["Industrial/Manufacturing"]),
    (("mixed",), ["Mixed-Use", "Retail/Commercial", "Housing/Residential"]),
    (("housing", "for sale"), ["Housing/Residential"]),
    (("office",), ["Retail/Commercial"]),
    (("retail",), ["Retail/Commercial"]),
    (("operating", "business"), ["Retail/Commercial", "Industrial/Manufacturing"]),
    (("other real estate",), ["Mixed-Use", "Retail/Commercial"]),
]

# (keywords in predominant market, sector implied)
MARKET_SECTOR_RULES = [
    (("health", "medical"), "Healthcare/Medical"),
    (("education", "school"), "Education/Schools"),
    (("food", "grocery"), "Food Access/Grocery"),
    (("child", "daycare"), "Childcare/Early Education"),
    (("senior", "elder"), "Senior Services"),
]


def derive_target_sectors(predominant_financing: Optional[str], innovative_activities: Optional[str],
                          predominant_market: Optional[str]) -> List[str]:
    """
    Derive target sectors from QEI financing sub-type and activity text.

    Args:
        predominant_financing: e.g. "Real Estate Financing - Community Facilities"
        innovative_activities: Free-text innovative activities
        predominant_market: Free-text market description

    Returns:
        De-duplicated list of intake-form sector values
    """
    financing = normalize_text(predominant_financing)
    activities = normalize_text(innovative_activities)
    market = normalize_text(predominant_market)

    sectors = []
    for keywords, implied in FINANCING_SECTOR_RULES:
        if contains_any(financing, keywords):
            sectors.extend(implied)

    # "Providing QLICIs for Non-Real Estate Activities" signals business financing
    if "non real estate" in activities:
        sectors.extend(["Retail/Commercial", "Industrial/Manufacturing"])

    for keywords, implied in MARKET_SECTOR_RULES:
        if contains_any(market, keywords):
            sectors.append(implied)

    return list(dict.fromkeys(sectors))


def enrich_cde_record(record: Dict) -> Dict:
    """
    Fill missing CDE preference columns from QEI data.

    Only columns that are empty/false are derived; explicit values win.

    Args:
        record: Raw cdes_merged row

    Returns:
        New dict with derived columns filled in
    """
    cde = dict(record)
    market = "" if is_missing(cde.get("predominant_market")) else str(cde.get("predominant_market"))
    activities = normalize_text(cde.get("innovative_activities"))
    non_metro = to_float(cde.get("non_metro_commitment")) or 0

    if not to_list(cde.get("primary_states")):
        states = parse_market_states(market)
        if states:
            cde["primary_states"] = states

    if not to_bool(cde.get("rural_focus")):
        cde["rural_focus"] = non_metro >= NON_METRO_RURAL_MIN

    if not to_bool(cde.get("native_american_focus")):
        cde["native_american_focus"] = contains_any(activities, ("indian country", "tribal"))

    if not to_bool(cde.get("small_deal_fund")):
        cde["small_deal_fund"] = "small dollar" in activities

    if not to_bool(cde.get("uts_focus")) and not to_bool(cde.get("underserved_states_focus")):
        cde["uts_focus"] = contains_any(activities, ("targeting identified states", "underserved"))

    if not to_list(cde.get("target_sectors")):
        sectors = derive_target_sectors(cde.get("predominant_financing"), cde.get("innovative_activities"), market)
        if sectors:
            cde["target_sectors"] = sectors

    return cde


def cde_from_record(record: Dict) -> CdeInput:
    """
    Validate a (possibly enriched) cdes_merged row into a CdeInput.

    Args:
        record: Row dict keyed by canonical column names

    Returns:
        CdeInput

    Raises:
        pydantic.ValidationError: If the row has an invalid shape
    """
    service_type = normalize_text(record.get("service_area_type"))
    market = normalize_text(record.get("predominant_market"))
    is_national = service_type == "national" or "national" in market.split()

    year = to_int(record.get("year"))
    years = [y for y in (to_int(v) for v in to_list(record.get("allocation_years"))) if y]
    if not years and year:
        years = [year]

    min_distress = to_float(record.get("min_distress_percentile"))
    if not min_distress:
        min_distress = to_float(record.get("min_distress_score")) or 0

    forprofit = record.get("forprofit_accepted")

    return CdeInput(
        cde_id=None if is_missing(record.get("id")) else str(record.get("id")),
        organization_id=None if is_missing(record.get("organization_id")) else str(record.get("organization_id")),
        name=None if is_missing(record.get("name")) else str(record.get("name")),
        year=year,
        service_states=to_list(record.get("primary_states")),
        is_national=is_national,
        financing_focus=None if is_missing(record.get("predominant_financing")) else str(record.get("predominant_financing")),
        target_sectors=to_list(record.get("target_sectors")),
        min_deal_size=to_float(record.get("min_deal_size")),
        max_deal_size=to_float(record.get("max_deal_size")),
        small_deal_fund=to_bool(record.get("small_deal_fund")),
        require_severely_distressed=to_bool(record.get("require_severely_distressed")),
        min_distress_percentile=min_distress,
        minority_focus=to_bool(record.get("minority_focus")),
        uts_focus=to_bool(record.get("uts_focus")) or to_bool(record.get("underserved_states_focus")),
        nonprofit_preferred=to_bool(record.get("nonprofit_preferred")),
        forprofit_accepted=to_bool(forprofit, default=True),
        owner_occupied_preferred=to_bool(record.get("owner_occupied_preferred")),
        tribal_focus=to_bool(record.get("native_american_focus")),
        rural_focus=to_bool(record.get("rural_focus")),
        urban_focus=to_bool(record.get("urban_focus")),
        allocation_type=None if is_missing(record.get("allocation_type")) else str(record.get("allocation_type")),
        remaining_allocation=to_float(record.get("amount_remaining")) or 0,
        allocation_years=years,
    )


def load_cdes(df: pd.DataFrame, active_only: bool = True, enrich: bool = True) -> List[CdeInput]:
    """
    Convert a cdes_merged DataFrame into validated CdeInputs.

    Rows that fail validation are logged and skipped.

    Args:
        df: DataFrame keyed by canonical column names
        active_only: Keep only rows with status "active" (rows without a status are kept)
        enrich: Apply QEI enrichment before validation

    Returns:
        List of CdeInput
    """
    cdes = []
    skipped = 0

    for record in df.to_dict(orient="records"):
        status = normalize_text(record.get("status"))
        if active_only and status and status != "active":
            continue
        if enrich:
            record = enrich_cde_record(record)
        try:
            cdes.append(cde_from_record(record))
        except ValidationError as e:
            skipped += 1
            logger.warning(f"Skipping invalid CDE row {record.get('id')}: {e.error_count()} errors")

    logger.info(f"Loaded {len(cdes)} CDE rows ({skipped} skipped)")
    return cdes


def ingest_cdes(file_path: Union[str, Path], db_path: Optional[str] = None) -> pd.DataFrame:
    """
    Ingest a cdes_merged export into DuckDB table raw_cdes.

    Args:
        file_path: Path to CSV, XLSX or JSON export
        db_path: DuckDB path (defaults to settings)

    Returns:
        DataFrame with canonical columns
    """
    logger.info(f"Ingesting CDEs from {file_path}")
    df = read_data_file(file_path)

    header_map = map_headers(EXPECTED_HEADERS, list(df.columns), settings.header_match_threshold)
    missing = [c for c in ("id", "name") if c not in header_map]
    if missing:
        raise ValueError(f"CDE export is missing required columns: {missing}")

    df = df[list(header_map.values())].rename(columns={v: k for k, v in header_map.items()})
    for column in EXPECTED_HEADERS:
        if column not in df.columns:
            df[column] = None

    df = df[list(EXPECTED_HEADERS)]
    write_text_table(df, "raw_cdes", db_path)

    logger.info(f"Ingested {len(df)} CDE rows into raw_cdes")
    return df
