"""
GTIN Helpers

GS1 check-digit validation and length-independent comparison for
GTIN-8, GTIN-12 (UPC-A), GTIN-13 (EAN) and GTIN-14.
"""

import re
from typing import Optional

VALID_GTIN_LENGTHS = (8, 12, 13, 14)
_NON_DIGITS = re.compile(r"\D")
_GTIN_LIKE = re.compile(r"^[\d\s-]+$")


def normalize_gtin(gtin: Optional[str]) -> Optional[str]:
    """Strip spaces and dashes. Returns None when nothing numeric remains."""
    if not gtin:
        return None
    digits = _NON_DIGITS.sub("", gtin)
    return digits or None


def looks_like_gtin(value: str) -> bool:
    """True for keys made only of digits, spaces and dashes"""
    return bool(value) and bool(_GTIN_LIKE.match(value.strip())) and any(c.isdigit() for c in value)


def gtin_check_digit(body: str) -> int:
    """
    GS1 mod-10 check digit for the digits preceding it.
    
    Weights alternate 3/1 starting from the rightmost body digit.
    """
    total = 0
    for offset, char in enumerate(reversed(body)):
        weight = 3 if offset % 2 == 0 else 1
        total += int(char) * weight
    return (10 - total % 10) % 10


def validate_gtin(gtin: Optional[str]) -> bool:
    """
    Validate length and check digit.
    
    Example:
        >>> validate_gtin("4006381333931")
        True
        >>> validate_gtin("4006381333932")
        False
    """
    normalized = normalize_gtin(gtin)
    if normalized is None or len(normalized) not in VALID_GTIN_LENGTHS:
        return False
    return gtin_check_digit(normalized[:-1]) == int(normalized[-1])


def canonical_gtin(gtin: Optional[str]) -> Optional[str]:
    """
    Comparable form of a valid GTIN, leading zeros stripped.
    
    A 13-digit and a 14-digit GTIN with the same numeric value share one
    canonical form. Invalid input returns None.
    """
    if not validate_gtin(gtin):
        return None
    return normalize_gtin(gtin).lstrip("0") or "0"


def gtins_match(left: Optional[str], right: Optional[str]) -> bool:
    """Both valid and numerically equal"""
    a, b = canonical_gtin(left), canonical_gtin(right)
    return a is not None and a == b
