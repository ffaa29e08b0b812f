"""Shared utilities for cleaning store data.

This module provides the identity keys used to match stores across
datasets, and the small cleaning helpers used when reading spreadsheet
exports:

- Identity keys: ``normalize``, ``composite_key``, ``address_key``
- Text cleaning: strip invisible characters, neutralize formula injection
- Value parsing: phone numbers, coordinates, boolean sheet flags

Examples:
    >>> from store_locator.etl.utils import composite_key, clean_phone
    >>> composite_key("Joe's Wine & Spirits", "Austin", "TX")
    'joeswinespirits|austin|tx'
    >>> clean_phone("12125551234")
    '(212) 555-1234'
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional

import pandas as pd

KEY_SEPARATOR = "|"

# Unicode characters that should be stripped from text
NBSP = "\u00a0"  # Non-breaking space
NNBSP = "\u202f"  # Narrow non-breaking space
ZW = "".join(chr(c) for c in (0x200B, 0x200C, 0x200D, 0xFEFF))  # Zero-width characters

# Prefixes that trigger formula evaluation when a CSV is imported into a sheet.
# "-" is left alone: negative longitudes are real values.
DANGEROUS_PREFIXES = ("=", "+", "@")

_NON_KEY_RE = re.compile(r"[^a-z0-9]")
_NON_DIGIT_RE = re.compile(r"\D")
_TRAILING_ZEROS_RE = re.compile(r"0+$")

TRUE_VALUES = {"true", "yes", "y", "1", "x"}


def is_missing(x: Any) -> bool:
    """Return True for None and float NaN (how pandas marks empty cells)."""
    return x is None or (isinstance(x, float) and math.isnan(x))


def normalize(text: Any) -> str:
    """Reduce text to a matching key component.

    Lower-cases and deletes every character outside ``[a-z0-9]``. Accents
    are not folded, so non-ASCII letters are removed. Missing input yields
    the empty string.

    Examples:
        >>> normalize("Joe's Wine & Spirits")
        'joeswinespirits'
        >>> normalize(None)
        ''

    """
    if is_missing(text):
        return ""
    return _NON_KEY_RE.sub("", str(text).lower())


def composite_key(name: Any, city: Any, state: Any) -> str:
    """Cross-dataset store identity: normalized name|city|state.

    The separator cannot appear in a normalized component, so two different
    field splits can never produce the same key.
    """
    return KEY_SEPARATOR.join((normalize(name), normalize(city), normalize(state)))


def address_key(address: Any, city: Any, state: Any, zip_code: Any) -> str:
    """Intra-export store identity used when pivoting raw line items.

    Raw exports are keyed by location because the account name can vary
    between line items of the same store.
    """
    parts = ["" if is_missing(p) else str(p).strip() for p in (address, city, state, zip_code)]
    return KEY_SEPARATOR.join(parts).lower().strip()


def strip_invisibles(x: Any) -> Optional[str]:
    """Remove invisible and problematic whitespace characters from text.

    Strips carriage returns, non-breaking and zero-width characters, turns
    tabs into spaces and collapses runs of whitespace.

    Examples:
        >>> strip_invisibles("  Hello World  ")
        'Hello World'
        >>> strip_invisibles(None)

    """
    if is_missing(x):
        return None
    s = str(x)
    s = s.replace("\r", "").replace("\t", " ").replace(NBSP, " ").replace(NNBSP, " ")
    s = re.sub(r"[%s]" % re.escape(ZW), "", s)  # zero-width
    s = re.sub(r"\s+", " ", s).strip()
    return s


def clean_text(x: Any) -> str:
    """``strip_invisibles`` that never returns None."""
    return strip_invisibles(x) or ""


def neutralize(text: Any) -> Any:
    """Prevent formula injection by prefixing dangerous characters.

    Examples:
        >>> neutralize("=SUM(A1:A10)")
        "'=SUM(A1:A10)"
        >>> neutralize("Hello")
        'Hello'

    """
    if is_missing(text):
        return text
    s = str(text)
    return "'" + s if s.startswith(DANGEROUS_PREFIXES) else s


def _digits(value: Any) -> str:
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return ""
        # Spreadsheet numeric cells arrive as floats (2125551234.0)
        if value.is_integer():
            value = int(value)
    return _NON_DIGIT_RE.sub("", str(value))


def clean_phone(value: Any) -> str:
    """Normalize a phone number to "(XXX) XXX-XXXX", or "" if not valid.

    Non-digits are stripped. Numbers longer than 11 digits lose trailing
    zero padding (an artifact of numeric spreadsheet columns), a leading
    country code 1 is dropped from 11-digit numbers, and only exactly ten
    digits are accepted.

    Examples:
        >>> clean_phone("12125551234")
        '(212) 555-1234'
        >>> clean_phone("21255512340000000000")
        '(212) 555-1234'
        >>> clean_phone("5551234")
        ''

    """
    if is_missing(value) or value is True or value is False:
        return ""
    if str(value).strip() in ("", "0", "1"):
        return ""

    digits = _digits(value)

    if len(digits) > 11:
        digits = _TRAILING_ZEROS_RE.sub("", digits)

    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]

    if len(digits) != 10:
        return ""

    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


def to_coordinate(x: Any) -> Optional[float]:
    """Parse a latitude/longitude cell, returning None when blank or invalid."""
    if is_missing(x):
        return None
    s = str(x).strip()
    if not s:
        return None
    try:
        v = float(s)
    except ValueError:
        return None
    if math.isnan(v) or math.isinf(v):
        return None
    return v


def format_coordinate(value: Optional[float]) -> str:
    """Render a coordinate for CSV output without losing precision."""
    return "" if value is None else repr(float(value))


def is_truthy(x: Any) -> bool:
    """Interpret a sheet checkbox / flag cell (TRUE, Yes, 1, x)."""
    if x is True:
        return True
    if is_missing(x) or x is False:
        return False
    return str(x).strip().lower() in TRUE_VALUES


def missing_columns(df: pd.DataFrame, columns: list[str]) -> list[str]:
    """Return the subset of ``columns`` missing from ``df``."""
    return [c for c in columns if c not in df.columns]
