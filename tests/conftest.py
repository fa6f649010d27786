"""Shared fixtures: deal and CDE factories with permissive defaults."""
import pytest

from automatch.models import CdeInput, DealInput


def build_deal(**overrides) -> DealInput:
    """Deal that passes every criterion against build_cde()."""
    data = {
        "deal_id": "deal-1",
        "project_name": "Eastside Health Center",
        "state": "CA",
        "sector": "Healthcare",
        "amount": 5_000_000,
        "venture_type": "Real Estate",
        "is_owner_occupied": True,
        "is_rural": False,
        "severely_distressed": False,
        "distress_percentile": 50,
        "is_minority_owned": False,
        "is_tribal": False,
        "is_uts": False,
        "is_nonprofit": True,
        "allocation_type": "federal",
    }
    data.update(overrides)
    return DealInput(**data)


def build_cde(**overrides) -> CdeInput:
    """National real estate CDE with no special requirements."""
    data = {
        "cde_id": "cde-1",
        "organization_id": "org-1",
        "name": "Test CDE",
        "year": 2024,
        "service_states": [],
        "is_national": True,
        "financing_focus": "Real Estate",
        "target_sectors": [],
        "min_deal_size": 1_000_000,
        "max_deal_size": 20_000_000,
        "small_deal_fund": True,
        "require_severely_distressed": False,
        "min_distress_percentile": 0,
        "minority_focus": False,
        "uts_focus": False,
        "nonprofit_preferred": False,
        "forprofit_accepted": True,
        "owner_occupied_preferred": False,
        "tribal_focus": False,
        "rural_focus": False,
        "urban_focus": False,
        "allocation_type": "federal",
        "remaining_allocation": 10_000_000,
        "allocation_years": [2024],
    }
    data.update(overrides)
    return CdeInput(**data)


@pytest.fixture
def make_deal():
    return build_deal


@pytest.fixture
def make_cde():
    return build_cde


@pytest.fixture
def db_path(tmp_path):
    """Isolated DuckDB file per test."""
    return str(tmp_path / "automatch_test.duckdb")
