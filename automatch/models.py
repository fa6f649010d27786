"""Typed inputs and outputs of the AutoMatch scorer."""
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

MatchStrength = Literal["excellent", "good", "fair", "weak"]


class DealInput(BaseModel):
    """A sponsor deal as seen by the scorer."""

    model_config = ConfigDict(frozen=True)

    deal_id: Optional[str] = None
    project_name: Optional[str] = None

    state: str = ""
    sector: Optional[str] = None
    amount: float = Field(ge=0)
    venture_type: Optional[str] = None  # "Real Estate" | "Business"
    is_owner_occupied: Optional[bool] = None
    is_rural: bool = False
    severely_distressed: bool = False
    is_qct: bool = False
    distress_percentile: float = Field(default=0, ge=0, le=100)
    is_minority_owned: bool = False
    is_tribal: bool = False
    is_uts: bool = False
    is_nonprofit: bool = False
    allocation_type: Optional[str] = None  # "federal" | "state"


class CdeInput(BaseModel):
    """A CDE candidate (one allocation-year row) as seen by the scorer."""

    model_config = ConfigDict(frozen=True)

    cde_id: Optional[str] = None
    organization_id: Optional[str] = None
    name: Optional[str] = None
    year: Optional[int] = None

    service_states: List[str] = Field(default_factory=list)
    is_national: bool = False
    financing_focus: Optional[str] = None  # "Real Estate" | "Business" | "Both"
    target_sectors: List[str] = Field(default_factory=list)
    min_deal_size: Optional[float] = Field(default=None, ge=0)
    max_deal_size: Optional[float] = Field(default=None, ge=0)
    small_deal_fund: bool = False
    require_severely_distressed: bool = False
    min_distress_percentile: float = Field(default=0, ge=0, le=100)
    minority_focus: bool = False
    uts_focus: bool = False
    nonprofit_preferred: bool = False
    forprofit_accepted: bool = True
    owner_occupied_preferred: bool = False
    tribal_focus: bool = False
    rural_focus: bool = False
    urban_focus: bool = False
    allocation_type: Optional[str] = None
    remaining_allocation: float = 0
    allocation_years: List[int] = Field(default_factory=list)

    @property
    def organization_key(self) -> str:
        """Key grouping the allocation-year rows of one CDE."""
        return str(self.organization_id or self.cde_id or self.name or "")


class MatchResult(BaseModel):
    """Outcome of scoring one deal against one CDE."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    strength: MatchStrength
    breakdown: Dict[str, int]
    reason_codes: List[str] = Field(default_factory=list)
    reasons: List[str] = Field(default_factory=list)


class CdeMatch(BaseModel):
    """A MatchResult for one CDE organization (sponsor view)."""

    cde_id: Optional[str] = None
    organization_id: Optional[str] = None
    cde_name: str = "Unknown CDE"
    year: Optional[int] = None
    score: int
    strength: MatchStrength
    breakdown: Dict[str, int]
    reasons: List[str] = Field(default_factory=list)


class DealMatch(BaseModel):
    """A MatchResult for one deal (CDE scan view)."""

    deal_id: Optional[str] = None
    project_name: str = "Untitled"
    state: str = ""
    amount: float = 0
    score: int
    strength: MatchStrength
    breakdown: Dict[str, int]
    reasons: List[str] = Field(default_factory=list)
