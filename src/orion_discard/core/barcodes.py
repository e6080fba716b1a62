"""
Barcode helpers shared by the validator, the table and the scan flow.

Barcodes are compared trimmed and case-insensitively everywhere, so
" abc123 ", "ABC123" and "abc123" are the same barcode.
"""

import re
from typing import Any

BARCODE_PATTERN = re.compile(r"^[A-Za-z0-9\-_.]+$")
BARCODE_MIN_LENGTH = 3
BARCODE_MAX_LENGTH = 50

_SCANNER_ARTIFACTS = str.maketrans("", "", "\r\n\t")


def normalize_barcode(value: Any) -> str:
    """
    Canonical form used for matching and indexing.

    Args:
        value: Raw barcode (any type; None becomes "")

    Returns:
        Trimmed, uppercased string
    """
    if value is None:
        return ""
    return str(value).strip().upper()


def barcodes_match(left: Any, right: Any) -> bool:
    """True when both values are the same non-empty barcode."""
    normalized = normalize_barcode(left)
    return normalized != "" and normalized == normalize_barcode(right)


def clean_barcode(value: Any) -> str:
    """
    Clean raw scanner input.

    Trims, uppercases and removes carriage returns, newlines and tabs that
    hand scanners append to the code.
    """
    if value is None:
        return ""
    return str(value).translate(_SCANNER_ARTIFACTS).strip().upper()


def validate_barcode_format(value: Any) -> bool:
    """
    Check that a barcode looks like one a label printer produces.

    Valid barcodes are 3 to 50 characters of letters, digits, hyphens,
    underscores and dots after trimming.

    Args:
        value: Barcode to check

    Returns:
        True if the format is valid
    """
    if value is None:
        return False
    barcode = str(value).strip()
    if not BARCODE_MIN_LENGTH <= len(barcode) <= BARCODE_MAX_LENGTH:
        return False
    return bool(BARCODE_PATTERN.match(barcode))
