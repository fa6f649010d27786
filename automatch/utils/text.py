"""Free-text normalization for comparing loosely formatted upstream values."""
import re
from typing import Any

from automatch.utils.coerce import is_missing

_SEPARATORS = re.compile(r"[_-]")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(value: Any) -> str:
    """
    Normalize a free-text value into a comparison key.

    Lower-cases, replaces underscores and hyphens with spaces, collapses
    whitespace and trims. ``None``, NaN and empty values become ``""``.

    Args:
        value: Raw value (financing type, sector, activity descriptor, ...)

    Returns:
        Normalized comparison key
    """
    if is_missing(value):
        return ""
    text = str(value)
    text = _SEPARATORS.sub(" ", text.lower())
    return _WHITESPACE.sub(" ", text).strip()


def contains_any(text: str, keywords) -> bool:
    """Return True if any keyword appears in already-normalized text."""
    return any(kw in text for kw in keywords)
