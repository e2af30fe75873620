"""
loader.py: turn a schedule export into a grid of raw cell values

Supports: .csv .tsv .txt .xlsx .xlsm .xls .ods

Public API:
    result = load_grid("path/to/reprint.xlsx")
    grid   = result["grid"]

Result dict keys:
    grid                list of rows, each a list of cell values (None = empty)
    detected_format     "csv", "xlsx", "ods", etc.
    detected_encoding   encoding name for text files; None for workbooks
    delimiter           delimiter char for text files; None otherwise
    sheet_name          sheet the grid came from; None for text files
    sheet_names         all sheets in the workbook; None for text files
    original_rows       number of grid rows (blank rows included)
    original_columns    widest row
    warnings            list of warning strings

Blank rows are NOT filtered here; header detection and report building
decide what to keep.
"""

from __future__ import annotations

import csv
import io
from collections import Counter
from pathlib import Path
from typing import Any, Optional

import chardet
import pandas as pd

from late_adds.normalize import is_missing
from late_adds.schema import PREFERRED_SHEET

# ── Format groups ──────────────────────────────────────────────────────────────
TEXT_FORMATS  = {".csv", ".tsv", ".txt"}
EXCEL_FORMATS = {".xlsx", ".xls", ".xlsm"}
ODS_FORMATS   = {".ods"}
ALL_FORMATS   = TEXT_FORMATS | EXCEL_FORMATS | ODS_FORMATS


class ReportLoadError(ValueError):
    """A schedule export that cannot be turned into a report."""

    def __init__(self, message: str, source_name: str) -> None:
        super().__init__(message)
        self.source_name = source_name


class NoSheetError(ReportLoadError):
    def __init__(self, source_name: str) -> None:
        super().__init__(f"No sheets found in {source_name}", source_name)


# ══════════════════════════════════════════════════════════════════════════════
# TEXT EXPORTS
# ══════════════════════════════════════════════════════════════════════════════

def _detect_encoding(raw: bytes) -> str:
    result = chardet.detect(raw)
    return result.get("encoding") or "utf-8"


def _read_text_safely(raw: bytes, preferred_encoding: str) -> str:
    """
    Decode raw bytes line-by-line.

    Strategy per line:
      1. Try UTF-8
      2. Try preferred_encoding (chardet result)
      3. Try latin-1
      4. CP1252 with replace (never crashes)

    Embedded null bytes are dropped.
    """
    decoded_lines: list[str] = []
    for raw_line in raw.split(b"\n"):
        decoded: str | None = None
        for enc in ("utf-8", preferred_encoding, "latin-1"):
            if not enc:
                continue
            try:
                decoded = raw_line.decode(enc)
                break
            except (LookupError, UnicodeDecodeError):
                continue
        if decoded is None:
            decoded = raw_line.decode("cp1252", errors="replace")
        decoded_lines.append(decoded.replace("\x00", ""))
    text = "\n".join(decoded_lines)
    return text[1:] if text.startswith("\ufeff") else text


def _detect_delimiter(text: str) -> str:
    """
    Infer the delimiter from sample lines.

    Uses csv.Sniffer first; falls back to the candidate whose most common
    row width is largest and most consistent.
    """
    sample_lines = [line for line in text.splitlines() if line.strip()][:50]
    sample = "\n".join(sample_lines[:25])

    if sample:
        try:
            return csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
        except csv.Error:
            pass

    best_delim = ","
    best_score = float("-inf")
    for delim in (",", ";", "\t", "|"):
        rows = [
            row
            for row in csv.reader(io.StringIO("\n".join(sample_lines)), delimiter=delim)
            if any(cell.strip() for cell in row)
        ]
        if not rows:
            continue
        mode_width, mode_count = Counter(len(row) for row in rows).most_common(1)[0]
        score = mode_width * 2.0 + (mode_count / len(rows)) * mode_width
        if mode_width == 1:
            score -= 10.0
        if score > best_score:
            best_score = score
            best_delim = delim
    return best_delim


def _load_text(path: Path, suffix: str) -> dict:
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ReportLoadError(f"Could not read {path.name}: {exc.strerror or exc}", path.name) from exc
    encoding = _detect_encoding(raw)
    text = _read_text_safely(raw, encoding)

    grid: list[list[Any]] = []
    try:
        delimiter = "\t" if suffix == ".tsv" else _detect_delimiter(text)
        for row in csv.reader(io.StringIO(text), delimiter=delimiter):
            grid.append([cell if cell != "" else None for cell in row])
    except csv.Error as exc:
        raise ReportLoadError(f"Could not read {path.name}: {exc}", path.name) from exc

    return {
        "grid":              grid,
        "detected_format":   suffix.lstrip("."),
        "detected_encoding": encoding,
        "delimiter":         delimiter,
        "sheet_name":        None,
        "sheet_names":       None,
        "original_rows":     len(grid),
        "original_columns":  max((len(row) for row in grid), default=0),
        "warnings":          [],
    }


# ══════════════════════════════════════════════════════════════════════════════
# WORKBOOKS
# ══════════════════════════════════════════════════════════════════════════════

def choose_sheet(sheet_names: list[str], preferred_sheet: Optional[str], source_name: str) -> str:
    """Preferred sheet when the workbook has it, else the first sheet."""
    if preferred_sheet and preferred_sheet in sheet_names:
        return preferred_sheet
    if not sheet_names:
        raise NoSheetError(source_name)
    return sheet_names[0]


def _frame_to_grid(df: pd.DataFrame) -> list[list[Any]]:
    return [
        [None if is_missing(value) or value is pd.NaT else value for value in row]
        for row in df.itertuples(index=False, name=None)
    ]


def _load_workbook(
    path: Path,
    suffix: str,
    preferred_sheet: Optional[str],
    engine: Optional[str] = None,
) -> dict:
    warnings: list[str] = []

    try:
        with pd.ExcelFile(path, engine=engine) as xf:
            all_sheets = [str(name) for name in xf.sheet_names]
            chosen_name = choose_sheet(all_sheets, preferred_sheet, path.name)
            df = pd.read_excel(xf, sheet_name=chosen_name, header=None, dtype=object)
    except ReportLoadError:
        raise
    except Exception as exc:
        raise ValueError(f"Could not read workbook {path.name}: {exc}") from exc

    if len(all_sheets) > 1:
        others = [name for name in all_sheets if name != chosen_name]
        warnings.append(
            f"Multiple sheets found ({len(all_sheets)} total); "
            f"used '{chosen_name}'. Ignored: {others}"
        )

    grid = _frame_to_grid(df)
    return {
        "grid":              grid,
        "detected_format":   suffix.lstrip("."),
        "detected_encoding": None,
        "delimiter":         None,
        "sheet_name":        chosen_name,
        "sheet_names":       all_sheets,
        "original_rows":     len(grid),
        "original_columns":  len(df.columns),
        "warnings":          warnings,
    }


def _load_excel(path: Path, suffix: str, preferred_sheet: Optional[str]) -> dict:
    # .xls requires xlrd; give a clear error if missing.
    if suffix == ".xls":
        try:
            import xlrd  # noqa: F401
        except ImportError:
            raise ImportError(".xls files require xlrd. Run: pip install xlrd")
    return _load_workbook(path, suffix, preferred_sheet)


def _load_ods(path: Path, preferred_sheet: Optional[str]) -> dict:
    try:
        import odf  # noqa: F401
    except ImportError:
        raise ImportError(".ods files require odfpy. Run: pip install odfpy")
    return _load_workbook(path, ".ods", preferred_sheet, engine="odf")


# ══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════════════════════

def load_grid(path: "str | Path", preferred_sheet: Optional[str] = PREFERRED_SHEET) -> dict:
    """
    Load a schedule export into a raw grid.

    Args:
        path:            Path to the export (str or Path).
        preferred_sheet: Sheet to read when the workbook has it; otherwise
                         the first sheet is used.

    Raises:
        FileNotFoundError  if the file does not exist.
        ValueError         if the format is unsupported or unreadable.
        ReportLoadError    if a text export cannot be read or parsed.
        NoSheetError       if the workbook has no sheets at all.
        ImportError        if a required optional dependency is missing.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    if suffix not in ALL_FORMATS:
        supported = ", ".join(sorted(ALL_FORMATS))
        raise ValueError(f"Unsupported format '{suffix}'. Supported: {supported}")

    if suffix in TEXT_FORMATS:
        return _load_text(path, suffix)
    if suffix in ODS_FORMATS:
        return _load_ods(path, preferred_sheet)
    return _load_excel(path, suffix, preferred_sheet)
