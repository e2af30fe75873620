"""Late-add reconciliation between schedule reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from late_adds.keys import dedupe_rows, derive_key, key_set
from late_adds.projection import choose_headers, project_rows
from late_adds.report import Report
from late_adds.schema import DISPLAY_COLUMNS

MODE_TWO_FILE = "two_file"
MODE_THREE_FILE = "three_file"


@dataclass
class Comparison:
    """Projected result rows plus the totals shown alongside them."""

    mode: str
    headers: list[str]
    late_adds: list[dict[str, Any]]
    reverse: Optional[list[dict[str, Any]]]
    totals: dict[str, int] = field(default_factory=dict)
    strict_chart_only: bool = False

    @property
    def has_late_adds(self) -> bool:
        return bool(self.late_adds)


def missing_rows(target: Report, baseline_keys: set[str], strict_chart_only: bool = False) -> list[list[Any]]:
    """Target rows, in order, whose identity key is not among ``baseline_keys``."""
    missing = []
    for row in target.rows:
        key = derive_key(row, target.columns, strict_chart_only)
        if key and key not in baseline_keys:
            missing.append(row)
    return missing


def _project(report: Report, rows: list[list[Any]], headers: list[str]) -> list[dict[str, Any]]:
    return project_rows(report, dedupe_rows(rows, report.columns), headers)


def compare_reports(
    baseline: Report,
    target: Report,
    *,
    strict_chart_only: bool = False,
    include_reverse: bool = False,
    display_columns: Sequence[str] = DISPLAY_COLUMNS,
) -> Comparison:
    """
    Late adds of ``target`` (reprint) against ``baseline`` (revised).

    The reverse direction, baseline rows missing from the target, is only
    computed when ``include_reverse`` is set. Output columns come from the
    target report, the current schedule.
    """
    baseline_keys = key_set(baseline, strict_chart_only)
    target_keys = key_set(target, strict_chart_only)

    headers = choose_headers(target.headers, display_columns)
    late_adds = _project(target, missing_rows(target, baseline_keys, strict_chart_only), headers)

    reverse = None
    if include_reverse:
        reverse = _project(baseline, missing_rows(baseline, target_keys, strict_chart_only), headers)

    totals = {
        "baseline_rows": baseline.row_count,
        "target_rows": target.row_count,
        "baseline_unique": len(baseline_keys),
        "target_unique": len(target_keys),
        "late_adds": len(late_adds),
        "reverse": len(reverse or []),
    }
    return Comparison(
        mode=MODE_TWO_FILE,
        headers=headers,
        late_adds=late_adds,
        reverse=reverse,
        totals=totals,
        strict_chart_only=strict_chart_only,
    )


def compare_against_union(
    baselines: Sequence[Report],
    target: Report,
    *,
    strict_chart_only: bool = False,
    display_columns: Sequence[str] = DISPLAY_COLUMNS,
) -> Comparison:
    """Late adds of ``target`` against the union of two baseline reports."""
    if len(baselines) != 2:
        raise ValueError(f"Three-file comparison needs exactly two baselines, got {len(baselines)}")
    first, second = baselines

    first_keys = key_set(first, strict_chart_only)
    second_keys = key_set(second, strict_chart_only)
    union_keys = first_keys | second_keys
    target_keys = key_set(target, strict_chart_only)

    headers = choose_headers(target.headers, display_columns)
    late_adds = _project(target, missing_rows(target, union_keys, strict_chart_only), headers)

    totals = {
        "baseline_rows": first.row_count,
        "second_baseline_rows": second.row_count,
        "target_rows": target.row_count,
        "baseline_unique": len(first_keys),
        "second_baseline_unique": len(second_keys),
        "baseline_union_unique": len(union_keys),
        "target_unique": len(target_keys),
        "late_adds": len(late_adds),
    }
    return Comparison(
        mode=MODE_THREE_FILE,
        headers=headers,
        late_adds=late_adds,
        reverse=None,
        totals=totals,
        strict_chart_only=strict_chart_only,
    )
