"""Human-readable reason generation."""
from typing import Any, List, Optional

from automatch.models import CdeInput, DealInput


def format_amount(amount: Optional[float]) -> str:
    """Format a dollar amount as "$2.5M" (or "$750K" below one million)."""
    if amount is None:
        return "$0"
    if amount >= 1_000_000:
        return f"${amount / 1_000_000:.1f}M"
    if amount >= 1_000:
        return f"${amount / 1_000:.0f}K"
    return f"${amount:,.0f}"


def format_reason_code(code: str, value: Any = None) -> str:
    """
    Format a reason code into human-readable text.

    Args:
        code: Reason code (e.g., "GEO_MISMATCH", "SECTOR")
        value: Optional value to include in reason

    Returns:
        Human-readable reason string
    """
    reason_map = {
        "GEO_MISMATCH": f"Does not serve {value or 'deal state'}",
        "FIN_MISMATCH": f"Financing type mismatch{': ' + value if value else ''}",
        "RURAL": "Rural focus match",
        "URBAN": "Urban focus match",
        "SECTOR": f"Sector match{': ' + value if value else ''}",
        "DEAL_SIZE": f"Deal size fits {value or 'CDE range'}",
        "SMALL_DEAL_FUND": "Small deal fund available",
        "DISTRESSED": "Severely distressed tract",
        "DISTRESS_PCT": f"Distress percentile {value or 'meets minimum'}",
        "MINORITY": "Minority-owned focus match",
        "UTS": "Underserved target state",
        "NONPROFIT": "Nonprofit preferred match",
        "OWNER_OCC": "Owner-occupied",
        "TRIBAL": "Tribal / Native American focus match",
        "ALLOC_TYPE": f"{value or 'Federal'} allocation",
        "HAS_ALLOC": f"{value or 'Allocation'} remaining",
    }

    return reason_map.get(code, code)


def compose_reasons(reason_codes: List[str], deal: DealInput, cde: CdeInput) -> List[str]:
    """
    Compose human-readable reasons from reason codes.

    Args:
        reason_codes: List of reason codes
        deal: Deal the codes were produced for
        cde: CDE the codes were produced for

    Returns:
        List of reason strings, one per code
    """
    reasons = []

    for code in reason_codes:
        value = None

        # Extract relevant value from the inputs
        if code == "GEO_MISMATCH":
            value = deal.state or None
        elif code == "FIN_MISMATCH":
            if cde.financing_focus and deal.venture_type:
                value = f"CDE finances {cde.financing_focus}, deal is {deal.venture_type}"
        elif code == "SECTOR":
            value = deal.sector
        elif code == "DEAL_SIZE":
            low = format_amount(cde.min_deal_size or 0)
            high = format_amount(cde.max_deal_size) if cde.max_deal_size else "no max"
            value = f"{low}-{high} range"
        elif code == "DISTRESS_PCT":
            value = f"{deal.distress_percentile:g} meets minimum {cde.min_distress_percentile:g}"
        elif code == "ALLOC_TYPE":
            value = (cde.allocation_type or "").strip().capitalize() or None
        elif code == "HAS_ALLOC":
            value = format_amount(cde.remaining_allocation)

        reasons.append(format_reason_code(code, value))

    return reasons
