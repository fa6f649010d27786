"""US state code/name normalization."""
import re
from typing import Dict, List, NamedTuple, Optional

# State abbreviation -> lower-case full name
ABBREV_TO_NAME: Dict[str, str] = {
    "AL": "alabama", "AK": "alaska", "AZ": "arizona", "AR": "arkansas", "CA": "california",
    "CO": "colorado", "CT": "connecticut", "DE": "delaware", "FL": "florida", "GA": "georgia",
    "HI": "hawaii", "ID": "idaho", "IL": "illinois", "IN": "indiana", "IA": "iowa",
    "KS": "kansas", "KY": "kentucky", "LA": "louisiana", "ME": "maine", "MD": "maryland",
    "MA": "massachusetts", "MI": "michigan", "MN": "minnesota", "MS": "mississippi", "MO": "missouri",
    "MT": "montana", "NE": "nebraska", "NV": "nevada", "NH": "new hampshire", "NJ": "new jersey",
    "NM": "new mexico", "NY": "new york", "NC": "north carolina", "ND": "north dakota", "OH": "ohio",
    "OK": "oklahoma", "OR": "oregon", "PA": "pennsylvania", "RI": "rhode island", "SC": "south carolina",
    "SD": "south dakota", "TN": "tennessee", "TX": "texas", "UT": "utah", "VT": "vermont",
    "VA": "virginia", "WA": "washington", "WV": "west virginia", "WI": "wisconsin", "WY": "wyoming",
}

NAME_TO_ABBREV: Dict[str, str] = {name: abbrev for abbrev, name in ABBREV_TO_NAME.items()}

_MARKET_SPLIT = re.compile(r"[,;]+")
_STATE_CODE = re.compile(r"^[A-Z]{2}$")


class StateInfo(NamedTuple):
    abbrev: str
    name: str


def get_state_info(value: Optional[str]) -> Optional[StateInfo]:
    """
    Resolve a state abbreviation or full name to its canonical pair.

    Args:
        value: "CA", "ca", "California", " california ", ...

    Returns:
        StateInfo(abbrev, name) or None if the value is not a known state
    """
    if not value:
        return None
    upper = str(value).strip().upper()
    lower = " ".join(str(value).lower().split())
    if upper in ABBREV_TO_NAME:
        return StateInfo(upper, ABBREV_TO_NAME[upper])
    if lower in NAME_TO_ABBREV:
        return StateInfo(NAME_TO_ABBREV[lower], lower)
    return None


def state_key(value: Optional[str]) -> str:
    """
    Comparison key for a state value.

    Known states collapse to their 2-letter code; anything else (territory
    codes such as PR or GU, free text) is upper-cased and trimmed.
    """
    info = get_state_info(value)
    if info:
        return info.abbrev
    return str(value or "").strip().upper()


def parse_market_states(market: Optional[str]) -> List[str]:
    """
    Extract state codes from a CDE predominant-market string.

    Handles comma/semicolon-separated codes ("CO,FL,NC") and full state
    names inside prose ("Serving rural Texas and New Mexico"). Two-letter
    tokens are only taken from separated lists so that "AL" never matches
    inside words like "national".

    Args:
        market: Raw predominant market text

    Returns:
        Ordered, de-duplicated list of state codes
    """
    if not market:
        return []

    states = []
    for token in _MARKET_SPLIT.split(str(market)):
        code = token.strip().upper()
        if _STATE_CODE.match(code) and code not in states:
            states.append(code)

    # Longest names first so "west virginia" is consumed before "virginia"
    market_lower = str(market).lower()
    for name in sorted(NAME_TO_ABBREV, key=len, reverse=True):
        pattern = re.compile(rf"\b{name}\b")
        if not pattern.search(market_lower):
            continue
        market_lower = pattern.sub(" ", market_lower)
        abbrev = NAME_TO_ABBREV[name]
        if abbrev not in states:
            states.append(abbrev)

    return states
