"""
Snapshot normalization boundary.

The remote store keeps every cell as text or loosely-typed JSON: numbers
arrive as "12", "12,5", "1.234,56" or 12.5; flags arrive as true or "TRUE".
Everything past this module works on clean floats, bools and datetimes.

Rules:
- normalize_number never raises and never returns NaN/inf (falls back to 0.0)
- normalize_bool is True only for True or the text "true" (any case)
- normalize_timestamp returns None for anything unparseable
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from decimal import Decimal
from typing import Any

from stockroom.exceptions import ValidationError, ConflictError
from stockroom.time_utils import parse_iso_datetime

__all__ = [
    "ValidationError",
    "ConflictError",
    "normalize_number",
    "normalize_bool",
    "normalize_text",
    "normalize_timestamp",
    "require_positive",
    "require_non_negative",
    "require_text",
]

# Leading numeric prefix, same tolerance as a lenient float parser ("12kg" -> 12)
_NUMBER_PREFIX = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def _canonical_decimal_text(text: str) -> str:
    """
    Rewrite locale-formatted numbers to dot-decimal.

    - both separators: the last one is the decimal mark ("1.234,56", "1,234.56")
    - only commas: a single comma is decimal ("12,5"), several are thousands
    - only dots: several dots are thousands ("1.234.567")
    """
    text = text.replace(" ", "").replace("\u00a0", "")
    has_comma = "," in text
    has_dot = "." in text

    if has_comma and has_dot:
        if text.rfind(",") > text.rfind("."):
            return text.replace(".", "").replace(",", ".")
        return text.replace(",", "")
    if has_comma:
        if text.count(",") == 1:
            return text.replace(",", ".")
        return text.replace(",", "")
    if has_dot and text.count(".") > 1:
        return text.replace(".", "")
    return text


def _finite_float(raw) -> float:
    # Huge ints overflow and signalling NaN decimals refuse conversion
    try:
        value = float(raw)
    except (OverflowError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def normalize_number(raw: Any) -> float:
    if raw is None or isinstance(raw, bool):
        return 0.0

    if isinstance(raw, (int, float, Decimal)):
        return _finite_float(raw)

    if isinstance(raw, str):
        stripped = raw.strip()
        if not stripped:
            return 0.0
        match = _NUMBER_PREFIX.match(_canonical_decimal_text(stripped))
        if not match:
            return 0.0
        return _finite_float(match.group(0))

    return 0.0


def normalize_bool(raw: Any) -> bool:
    if raw is True:
        return True
    if isinstance(raw, str):
        return raw.strip().lower() == "true"
    return False


def normalize_text(raw: Any) -> str:
    if raw is None:
        return ""
    return str(raw).strip()


def normalize_timestamp(raw: Any) -> datetime | None:
    if isinstance(raw, datetime):
        return raw
    if not isinstance(raw, str):
        return None
    try:
        return parse_iso_datetime(raw)
    except ValueError:
        return None


def _require_number(value, field: str) -> float:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        number = float(value)
    except OverflowError:
        raise ValidationError(f"{field} is out of range") from None
    if not math.isfinite(number):
        raise ValidationError(f"{field} must be a number")
    return number


def require_positive(value: float, field: str) -> float:
    number = _require_number(value, field)
    if number <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return number


def require_non_negative(value: float, field: str) -> float:
    number = _require_number(value, field)
    if number < 0:
        raise ValidationError(f"{field} must be zero or more")
    return number


def require_text(value: Any, field: str) -> str:
    text = normalize_text(value)
    if not text:
        raise ValidationError(f"{field} is required")
    return text
