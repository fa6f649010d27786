"""Coercion helpers for loosely typed export rows."""
import json
import re
from typing import Any, List, Optional

import pandas as pd

TRUE_VALUES = {"true", "t", "yes", "y", "1", "x"}
_LIST_SPLIT = re.compile(r"[,;|]+")


def is_missing(value: Any) -> bool:
    """True for None, NaN/NaT and blank strings."""
    if value is None:
        return True
    if isinstance(value, (list, tuple, set, dict)):
        return False
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def to_bool(value: Any, default: bool = False) -> bool:
    """
    Coerce an export value to bool.

    Args:
        value: bool, number, or string such as "true", "Yes", "1"
        default: Returned for missing values

    Returns:
        Parsed boolean
    """
    if is_missing(value):
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in TRUE_VALUES


def to_optional_bool(value: Any) -> Optional[bool]:
    """Like to_bool, but keeps missing values as None."""
    if is_missing(value):
        return None
    return to_bool(value)


def to_float(value: Any) -> Optional[float]:
    """
    Extract a number from an export value.

    Strips "$", "," and "%" ("$5,000,000" -> 5000000.0, "45%" -> 45.0).
    Non-numeric strings return None.
    """
    if is_missing(value):
        return None
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)

    s = str(value).replace(",", "").replace("$", "").replace("%", "").strip()
    match = re.search(r"-?\d+\.?\d*", s)
    if match:
        try:
            return float(match.group(0))
        except ValueError:
            return None
    return None


def to_int(value: Any) -> Optional[int]:
    """Integer version of to_float."""
    number = to_float(value)
    return int(number) if number is not None else None


def to_list(value: Any) -> List[str]:
    """
    Coerce a list-ish export value to a list of strings.

    Accepts Python lists, JSON arrays ('["CA","NY"]'), Postgres array
    literals ('{CA,NY}') and delimited strings ("CA, NY").
    """
    if is_missing(value):
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v).strip() for v in value if not is_missing(v)]

    text = str(value).strip()
    if text.startswith("["):
        try:
            parsed = json.loads(text)
            if isinstance(parsed, list):
                return [str(v).strip() for v in parsed if not is_missing(v)]
        except json.JSONDecodeError:
            pass
    text = text.strip("[]{}")
    return [part.strip().strip('"\'') for part in _LIST_SPLIT.split(text) if part.strip().strip('"\'')]


def to_dict(value: Any) -> dict:
    """Coerce a JSON column (dict or JSON string) to a dict."""
    if isinstance(value, dict):
        return value
    if is_missing(value):
        return {}
    try:
        parsed = json.loads(str(value))
    except json.JSONDecodeError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def to_text(value: Any) -> Optional[str]:
    """Serialize a value for a VARCHAR column; dicts and lists become JSON."""
    if is_missing(value):
        return None
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str)
    return str(value)
