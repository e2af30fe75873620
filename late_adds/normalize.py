"""Cell-level normalization helpers used by report building and keying."""

from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Sequence

_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_WHITESPACE_RE = re.compile(r"\s+")
_LEADING_MARKER_RE = re.compile(r"^[\s*]+")
# Beyond this many integer digits a chart "number" is almost certainly noise.
_MAX_CHART_DIGITS = 30


def is_missing(value: Any) -> bool:
    """Return True for None and float NaN (pandas' empty cell)."""
    return value is None or (isinstance(value, float) and math.isnan(value))


def cell_text(value: Any) -> str:
    if is_missing(value):
        return ""
    return str(value).strip()


def is_blank_cell(value: Any) -> bool:
    return is_missing(value) or value == ""


def is_blank_row(row: Optional[Sequence[Any]]) -> bool:
    if not row:
        return True
    return all(is_blank_cell(value) for value in row)


def normalize_header(value: Any) -> str:
    return cell_text(value).lower()


def normalize_chart(value: Any) -> Optional[str]:
    """
    Canonical chart number, or None when the cell is unusable.

    Spreadsheet exports frequently hand back ``163794.0`` for ``163794``;
    numeric values collapse to their truncated integer text so both forms
    compare equal.
    """
    if is_missing(value):
        return None
    cleaned = _WHITESPACE_RE.sub("", str(value).strip())
    if not cleaned:
        return None

    if _NUMBER_RE.match(cleaned):
        try:
            number = Decimal(cleaned)
        except InvalidOperation:
            number = None
        if number is not None and number.is_finite() and number.adjusted() < _MAX_CHART_DIGITS:
            return str(int(number))

    if cleaned.endswith(".0"):
        cleaned = cleaned[:-2]
    return cleaned or None


def normalize_name(value: Any) -> Optional[str]:
    """Uppercase patient name with the leading ``*`` marker and extra spaces removed."""
    if is_missing(value):
        return None
    text = str(value).strip()
    if not text:
        return None
    text = _LEADING_MARKER_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", text).strip()
    return text.upper() or None
