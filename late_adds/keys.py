"""Identity keys, dedup keys and row deduplication."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence

from late_adds.normalize import normalize_chart, normalize_name
from late_adds.report import Report, safe_cell
from late_adds.schema import CHART, PATIENT

Row = Sequence[Any]


def derive_key(row: Row, columns: Mapping[str, Optional[int]], strict_chart_only: bool = False) -> Optional[str]:
    """
    Identity key for one row.

    ``C:<chart>`` whenever the chart cell is usable; otherwise ``N:<NAME>``
    unless strict chart-only matching is on. Rows with neither get None and
    take no part in any comparison.
    """
    chart = normalize_chart(safe_cell(row, columns.get(CHART)))
    if chart:
        return f"C:{chart}"

    if strict_chart_only:
        return None

    name = normalize_name(safe_cell(row, columns.get(PATIENT)))
    return f"N:{name}" if name else None


def dedupe_key(row: Row, columns: Mapping[str, Optional[int]]) -> str:
    """Name-plus-chart tag used only to collapse duplicate result rows."""
    name = normalize_name(safe_cell(row, columns.get(PATIENT))) or ""
    chart = normalize_chart(safe_cell(row, columns.get(CHART))) or ""
    return f"{name}__{chart}"


def dedupe_rows(rows: Iterable[Row], columns: Mapping[str, Optional[int]]) -> list[Row]:
    seen: set[str] = set()
    kept: list[Row] = []
    for row in rows:
        key = dedupe_key(row, columns)
        if key in seen:
            continue
        seen.add(key)
        kept.append(row)
    return kept


def key_set(report: Report, strict_chart_only: bool = False) -> set[str]:
    keys = set()
    for row in report.rows:
        key = derive_key(row, report.columns, strict_chart_only)
        if key:
            keys.add(key)
    return keys
