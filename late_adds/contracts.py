"""Shared versioned contracts for late-adds outputs."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Any

from late_adds import __version__ as TOOL_VERSION
from late_adds.reconcile import Comparison

CONTRACT_VERSIONS = {
    "late_adds.compare": "1.0.0",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def build_contract(name: str) -> dict[str, str]:
    version = CONTRACT_VERSIONS[name]
    return {"name": name, "version": version}


def build_run_summary(
    *,
    tool: str,
    command: str,
    input_paths: list[Path],
    status: str = "ok",
    output_paths: list[Path] | None = None,
    metrics: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "tool": tool,
        "command": command,
        "status": status,
        "generated_at": utc_now_iso(),
        "input_files": [str(path) for path in input_paths],
        "output_files": [str(path) for path in output_paths or []],
        "warnings_count": len(warnings or []),
        "warnings": list(warnings or []),
        "metrics": metrics or {},
    }


def json_ready(value: Any) -> Any:
    """Cell values as JSON scalars; times and dates become ISO strings."""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def _records_payload(records: list[dict[str, Any]] | None) -> list[dict[str, Any]] | None:
    if records is None:
        return None
    return [{header: json_ready(value) for header, value in record.items()} for record in records]


def comparison_payload(
    comparison: Comparison,
    *,
    input_paths: list[Path],
    output_paths: list[Path] | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    contract = build_contract("late_adds.compare")
    return {
        "contract": contract,
        "schema_version": contract["version"],
        "tool_version": TOOL_VERSION,
        "mode": comparison.mode,
        "strict_chart_only": comparison.strict_chart_only,
        "headers": list(comparison.headers),
        "totals": dict(comparison.totals),
        "late_adds": _records_payload(comparison.late_adds),
        "reverse": _records_payload(comparison.reverse),
        "run_summary": build_run_summary(
            tool="late-adds",
            command="compare",
            input_paths=input_paths,
            status="late_adds_found" if comparison.has_late_adds else "ok",
            output_paths=output_paths,
            metrics=dict(comparison.totals),
            warnings=warnings,
        ),
    }
