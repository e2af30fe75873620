"""Header-row detection and the per-file report model."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Sequence

from late_adds.loader import ReportLoadError, load_grid
from late_adds.normalize import cell_text, is_blank_row, normalize_header
from late_adds.schema import COLUMN_RULES, HEADER_SCAN_LIMIT, PATIENT, PREFERRED_SHEET

Row = Sequence[Any]
ColumnIndex = dict[str, Optional[int]]


class HeaderNotFoundError(ReportLoadError):
    def __init__(self, source_name: str) -> None:
        super().__init__(f"Could not detect header row in {source_name}", source_name)


def _row_has_columns(normalized: list[str], roles: tuple[str, ...]) -> bool:
    for rule in COLUMN_RULES:
        if rule.header_role not in roles:
            continue
        if not any(rule.matches(cell) for cell in normalized):
            return False
    return True


def detect_header_index(grid: Sequence[Optional[Row]], limit: int = HEADER_SCAN_LIMIT) -> Optional[int]:
    """
    Return the index of the column-title row, or None.

    The first pass wants Patient, a Chart column and a Time column; exports
    that drop the Time title are picked up by a second pass that only needs
    Patient and Chart.
    """
    look = min(len(grid), limit)
    normalized_rows = [[normalize_header(value) for value in (grid[i] or [])] for i in range(look)]

    for roles in (("required", "preferred"), ("required",)):
        for index, normalized in enumerate(normalized_rows):
            if _row_has_columns(normalized, roles):
                return index
    return None


def build_column_index(headers: Sequence[str]) -> ColumnIndex:
    """Map each schema column to the first header that names it."""
    normalized = [normalize_header(header) for header in headers]
    index: ColumnIndex = {}
    for rule in COLUMN_RULES:
        position = next((i for i, cell in enumerate(normalized) if cell == rule.title), None)
        if position is None and rule.match == "substring":
            position = next((i for i, cell in enumerate(normalized) if rule.matches(cell)), None)
        index[rule.key] = position
    return index


def build_header_positions(headers: Sequence[str]) -> dict[str, int]:
    positions: dict[str, int] = {}
    for i, header in enumerate(headers):
        if header and header not in positions:
            positions[header] = i
    return positions


def safe_cell(row: Row, index: Optional[int]) -> Any:
    if index is None or index >= len(row):
        return None
    return row[index]


@dataclass(frozen=True)
class Report:
    """One parsed schedule export: positional headers plus the data rows under them."""

    source_name: str
    header_index: int
    headers: list[str]
    rows: list[list[Any]]
    columns: ColumnIndex
    positions: dict[str, int]
    sheet_name: Optional[str] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def cell(self, row: Row, column: str) -> Any:
        """Value of a schema column (``"patient"``, ``"chart"``, ``"time"``)."""
        return safe_cell(row, self.columns.get(column))

    def value(self, row: Row, header: str) -> Any:
        """Value under an exact header title (first occurrence)."""
        return safe_cell(row, self.positions.get(header))


def build_report(
    grid: Sequence[Optional[Row]],
    source_name: str,
    sheet_name: Optional[str] = None,
    warnings: Optional[list[str]] = None,
) -> Report:
    header_index = detect_header_index(grid)
    if header_index is None:
        raise HeaderNotFoundError(source_name)

    headers = [cell_text(value) for value in (grid[header_index] or [])]
    columns = build_column_index(headers)
    patient_index = columns[PATIENT]

    rows: list[list[Any]] = []
    for raw_row in grid[header_index + 1:]:
        if is_blank_row(raw_row):
            continue
        if not cell_text(safe_cell(raw_row, patient_index)):
            continue
        rows.append(list(raw_row))

    return Report(
        source_name=source_name,
        header_index=header_index,
        headers=headers,
        rows=rows,
        columns=columns,
        positions=build_header_positions(headers),
        sheet_name=sheet_name,
        warnings=list(warnings or []),
    )


def read_report(path: "str | Path", preferred_sheet: Optional[str] = PREFERRED_SHEET) -> Report:
    path = Path(path)
    loaded = load_grid(path, preferred_sheet=preferred_sheet)
    return build_report(
        loaded["grid"],
        source_name=path.name,
        sheet_name=loaded["sheet_name"],
        warnings=loaded["warnings"],
    )
