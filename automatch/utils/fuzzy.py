"""Fuzzy column-header matching for table exports."""
from typing import Dict, List, Optional
from rapidfuzz import fuzz

from automatch.utils.text import normalize_text


def find_header_match(
    target: str,
    candidate_headers: List[str],
    threshold: float = 85.0
) -> Optional[str]:
    """
    Find the best matching header using fuzzy string matching.

    Headers are compared after text normalization, so "min_deal_size",
    "Min Deal Size" and "min-deal-size" are identical.

    Args:
        target: The header name to match
        candidate_headers: List of candidate header names
        threshold: Minimum similarity score (0-100)

    Returns:
        Best matching header name or None if below threshold
    """
    if not candidate_headers:
        return None

    best_match = None
    best_score = 0.0
    target_key = normalize_text(target)

    for header in candidate_headers:
        score = fuzz.ratio(target_key, normalize_text(header))
        if score > best_score:
            best_score = score
            best_match = header

    if best_score >= threshold:
        return best_match
    return None


def map_headers(
    expected_headers: Dict[str, str],
    actual_headers: List[str],
    threshold: float = 85.0
) -> Dict[str, str]:
    """
    Map canonical column names to the headers actually present in a file.

    Args:
        expected_headers: Dict mapping canonical names to expected header names
        actual_headers: List of actual header names from file
        threshold: Minimum similarity score for fuzzy matching

    Returns:
        Dict mapping canonical names to actual header names (unmatched names omitted)
    """
    mapping = {}
    used_headers = set()

    # First pass: exact matches after normalization
    for canonical, expected in expected_headers.items():
        for actual in actual_headers:
            if normalize_text(actual) == normalize_text(expected) and actual not in used_headers:
                mapping[canonical] = actual
                used_headers.add(actual)
                break

    # Second pass: fuzzy matches for unmapped headers
    for canonical, expected in expected_headers.items():
        if canonical in mapping:
            continue
        remaining = [h for h in actual_headers if h not in used_headers]
        match = find_header_match(expected, remaining, threshold)
        if match:
            mapping[canonical] = match
            used_headers.add(match)

    return mapping
