from __future__ import annotations

import argparse
import json
import os
import sys
from datetime import date
from pathlib import Path
from typing import Any

from late_adds import __version__ as TOOL_VERSION
from late_adds.config import DEFAULT_CONFIG_NAME, CompareOptions, load_config, starter_config_text
from late_adds.contracts import comparison_payload
from late_adds.export import TOTAL_LABELS, default_export_name, to_csv, write_workbook
from late_adds.loader import ReportLoadError
from late_adds.reconcile import Comparison, compare_against_union, compare_reports
from late_adds.report import Report, read_report

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_LOAD_FAILED = 2
EXIT_LATE_ADDS_FOUND = 3


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class LateAddsArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def write_text(path: Path, payload: str) -> None:
    ensure_parent(path)
    path.write_text(payload, encoding="utf-8")


def export_date() -> date:
    override = os.environ.get("LATE_ADDS_EXPORT_DATE")
    if override:
        return date.fromisoformat(override)
    return date.today()


def classify_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, FileNotFoundError):
        return EXIT_COMMAND_ERROR
    if isinstance(exc, (ReportLoadError, ImportError, UnicodeDecodeError, ValueError)):
        return EXIT_LOAD_FAILED
    return EXIT_COMMAND_ERROR


def render_compare_text(comparison: Comparison) -> str:
    lines = ["late-adds compare", f"Mode: {comparison.mode}"]
    if comparison.strict_chart_only:
        lines.append("Matching: chart number only")
    for name, value in comparison.totals.items():
        lines.append(f"{TOTAL_LABELS.get(name, name)}: {value}")
    lines.append("")
    lines.append("Late adds:")
    lines.append(to_csv(comparison.headers, comparison.late_adds) if comparison.late_adds else "No rows found.")
    if comparison.reverse is not None:
        lines.append("")
        lines.append("Revised not in Reprint:")
        lines.append(to_csv(comparison.headers, comparison.reverse) if comparison.reverse else "No rows found.")
    return "\n".join(lines) + "\n"


def build_parser() -> argparse.ArgumentParser:
    parser = LateAddsArgumentParser(prog="late-adds", description="Find appointments added after a schedule was printed.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    compare = subparsers.add_parser("compare", help="Compare a revised print against a reprint.")
    compare.add_argument("revised", help="Earlier (baseline) schedule export")
    compare.add_argument("reprint", help="Newer (current) schedule export")
    compare.add_argument("--second-baseline", dest="second_baseline", help="Another earlier export; late adds are checked against both")
    compare.add_argument("--strict-chart-only", dest="strict_chart_only", action="store_true", help="Match on chart number only; no patient-name fallback")
    compare.add_argument("--reverse", action="store_true", help="Also list revised rows missing from the reprint (two-file mode only)")
    compare.add_argument("--sheet", dest="sheet_name", help="Preferred sheet name (first sheet when absent)")
    compare.add_argument("--config", help=f"JSON config file (see 'config init', default name {DEFAULT_CONFIG_NAME})")
    compare.add_argument("-o", "--out", dest="out_dir", help="Directory for exported results")
    compare.add_argument("--format", choices=["csv", "xlsx"], default="csv", help="Export format used with --out")
    compare.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    compare.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")

    config = subparsers.add_parser("config", help="Generate configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter config file.")
    config_init.add_argument("--path", default=DEFAULT_CONFIG_NAME, help="Config output path")

    subparsers.add_parser("version", help="Print version")
    return parser


def resolve_options(args: argparse.Namespace) -> CompareOptions:
    try:
        options = load_config(Path(args.config) if args.config else None)
    except (OSError, ValueError) as exc:
        raise CliError(str(exc), EXIT_COMMAND_ERROR) from exc
    options = options.with_overrides(
        strict_chart_only=args.strict_chart_only,
        include_reverse=args.reverse,
        preferred_sheet=args.sheet_name,
    )
    if args.second_baseline and options.include_reverse:
        raise CliError("--reverse is only available when comparing two files.", EXIT_COMMAND_ERROR)
    return options


def write_exports(comparison: Comparison, out_dir: Path, fmt: str) -> list[Path]:
    today = export_date()
    if fmt == "xlsx":
        return [write_workbook(out_dir / default_export_name("late_adds", today, suffix=".xlsx"), comparison)]

    written = []
    late_adds_path = out_dir / default_export_name("late_adds", today)
    write_text(late_adds_path, to_csv(comparison.headers, comparison.late_adds) + "\n")
    written.append(late_adds_path)
    if comparison.reverse is not None:
        reverse_path = out_dir / default_export_name("reverse", today)
        write_text(reverse_path, to_csv(comparison.headers, comparison.reverse) + "\n")
        written.append(reverse_path)
    return written


def run_compare(args: argparse.Namespace) -> int:
    quiet = args.quiet or args.json
    input_paths = [Path(args.revised), Path(args.reprint)]
    if args.second_baseline:
        input_paths.append(Path(args.second_baseline))
    for path in input_paths:
        if not path.exists():
            eprint(f"File not found: {path}")
            return EXIT_COMMAND_ERROR

    try:
        options = resolve_options(args)
        emit_human("Reading spreadsheets...", quiet=quiet)
        reports: list[Report] = [read_report(path, preferred_sheet=options.preferred_sheet) for path in input_paths]
        revised, reprint = reports[0], reports[1]

        emit_human("Comparing...", quiet=quiet)
        if args.second_baseline:
            comparison = compare_against_union(
                (revised, reports[2]),
                reprint,
                strict_chart_only=options.strict_chart_only,
                display_columns=options.display_columns,
            )
        else:
            comparison = compare_reports(
                revised,
                reprint,
                strict_chart_only=options.strict_chart_only,
                include_reverse=options.include_reverse,
                display_columns=options.display_columns,
            )

        warnings = [f"{report.source_name}: {warning}" for report in reports for warning in report.warnings]
        for warning in warnings:
            emit_human(f"Warning: {warning}", quiet=quiet)

        written: list[Path] = []
        if args.out_dir:
            written = write_exports(comparison, Path(args.out_dir), args.format)
            for path in written:
                emit_human(f"Export written: {path}", quiet=quiet)

        if args.json:
            payload = comparison_payload(comparison, input_paths=input_paths, output_paths=written, warnings=warnings)
            print(json_dumps(payload))
        else:
            print(render_compare_text(comparison), end="")

        emit_human(f"Done. Late adds found: {len(comparison.late_adds)}", quiet=quiet)
        return EXIT_LATE_ADDS_FOUND if comparison.has_late_adds else EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_config_init(args: argparse.Namespace) -> int:
    config_path = Path(args.path)
    if config_path.exists():
        eprint(f"Refusing to overwrite existing config: {config_path}")
        return EXIT_COMMAND_ERROR
    write_text(config_path, starter_config_text())
    emit_human(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command == "compare":
            return run_compare(args)
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
