"""Output column selection and row projection."""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from late_adds.normalize import is_missing, normalize_header
from late_adds.report import Report
from late_adds.schema import COLUMN_RULES


def choose_headers(headers: Sequence[str], preferred: Sequence[str]) -> list[str]:
    """
    Preferred columns the report actually carries, in preferred order.

    When none of them are present every titled source column is used, left
    to right.
    """
    available = [header for header in headers if str(header).strip() != ""]
    available_set = set(available)
    picked = [header for header in preferred if header in available_set]
    if picked:
        return picked
    return available


def _schema_column(header: str) -> str | None:
    normalized = normalize_header(header)
    for rule in COLUMN_RULES:
        if normalized == rule.title:
            return rule.key
    return None


def _projected_value(value: Any) -> Any:
    if is_missing(value):
        return ""
    return value


def project_rows(report: Report, rows: Iterable[Sequence[Any]], headers: Sequence[str]) -> list[dict[str, Any]]:
    """Map each row onto exactly ``headers``; absent cells become ``""``."""
    getters = []
    for header in headers:
        column = _schema_column(header)
        if column is not None and report.columns.get(column) is not None:
            getters.append((header, lambda row, c=column: report.cell(row, c)))
        else:
            getters.append((header, lambda row, h=header: report.value(row, h)))

    return [{header: _projected_value(getter(row)) for header, getter in getters} for row in rows]
