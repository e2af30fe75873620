from __future__ import annotations

import csv
import io
from datetime import date
from pathlib import Path
from typing import Any, Optional, Sequence

import openpyxl
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from late_adds.normalize import is_missing
from late_adds.reconcile import Comparison

EXPORT_PREFIXES = {
    "late_adds": "late_adds",
    "reverse": "revised_not_in_reprint",
}

TOTAL_LABELS = {
    "baseline_rows": "Revised rows",
    "second_baseline_rows": "Second baseline rows",
    "target_rows": "Reprint rows",
    "baseline_unique": "Unique patients in Revised",
    "second_baseline_unique": "Unique patients in second baseline",
    "baseline_union_unique": "Unique patients across baselines",
    "target_unique": "Unique patients in Reprint",
    "late_adds": "Late adds (Reprint not in Revised)",
    "reverse": "Revised not in Reprint (optional)",
}


def default_export_name(kind: str, today: Optional[date] = None, suffix: str = ".csv") -> str:
    stamp = (today or date.today()).strftime("%Y-%m-%d")
    return f"{EXPORT_PREFIXES[kind]}_{stamp}{suffix}"


def _csv_text(value: Any) -> str:
    if is_missing(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_csv(headers: Sequence[str], records: Sequence[dict[str, Any]]) -> str:
    """Comma-separated text; fields with commas, quotes or newlines are quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(list(headers))
    for record in records:
        row = [_csv_text(record.get(header)) for header in headers]
        if row == [""]:
            # csv.writer would emit '""' for a lone empty field
            buffer.write("\n")
        else:
            writer.writerow(row)
    return buffer.getvalue()[:-1]


# ── xlsx ────────────────────────────────────────────────────────────────────

def _style_sheet(ws, col_widths: list[int], header_color: str) -> None:
    """Apply bold header, color, frozen row, and column widths."""
    fill = PatternFill("solid", fgColor=header_color)
    font = Font(bold=True, color="FFFFFF")
    for cell in ws[1]:
        cell.font = font
        cell.fill = fill
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=False)
    ws.freeze_panes = "A2"
    for i, width in enumerate(col_widths, start=1):
        ws.column_dimensions[get_column_letter(i)].width = width


def _infer_col_widths(rows: list[list], min_width: int = 10, max_width: int = 60, sample: int = 300) -> list[int]:
    if not rows:
        return []
    widths = [max(min_width, min(max_width, len(str(v)) + 2)) for v in rows[0]]
    for row in rows[1 : sample + 1]:
        for i, val in enumerate(row):
            widths[i] = max(widths[i], min(max_width, len(str(val)) + 2))
    return widths


def _write_records(ws, headers: list[str], records: list[dict[str, Any]], header_color: str) -> None:
    table = [list(headers)] + [[record.get(header, "") for header in headers] for record in records]
    for row in table:
        ws.append(row)
    _style_sheet(ws, _infer_col_widths(table), header_color)


def write_workbook(path: Path, comparison: Comparison) -> Path:
    """Write late adds (and the reverse set, when computed) to a styled workbook."""
    wb = openpyxl.Workbook()

    ws = wb.active
    ws.title = "Late Adds"
    _write_records(ws, comparison.headers, comparison.late_adds, "4CAF50")

    if comparison.reverse is not None:
        _write_records(wb.create_sheet("Not In Reprint"), comparison.headers, comparison.reverse, "E53935")

    totals_ws = wb.create_sheet("Totals")
    totals_table = [["Total", "Count"]] + [
        [TOTAL_LABELS.get(name, name), value] for name, value in comparison.totals.items()
    ]
    for row in totals_table:
        totals_ws.append(row)
    _style_sheet(totals_ws, _infer_col_widths(totals_table), "1565C0")

    path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(path)
    return path
