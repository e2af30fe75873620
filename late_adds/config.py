"""Comparison options and the JSON config file that can preset them."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

from late_adds.schema import DISPLAY_COLUMNS, PREFERRED_SHEET

DEFAULT_CONFIG_NAME = "late-adds.json"


@dataclass(frozen=True)
class CompareOptions:
    strict_chart_only: bool = False
    include_reverse: bool = False
    preferred_sheet: str = PREFERRED_SHEET
    display_columns: list[str] = field(default_factory=lambda: list(DISPLAY_COLUMNS))

    def with_overrides(self, **overrides: Any) -> "CompareOptions":
        """Apply CLI values; ``None`` and ``False`` leave the configured value alone."""
        changes = {name: value for name, value in overrides.items() if value not in (None, False)}
        return replace(self, **changes)


def _expect(payload: dict[str, Any], key: str, kind: type, label: str) -> None:
    if key in payload and not isinstance(payload[key], kind):
        raise ValueError(f"Config '{key}' must be {label}.")


def options_from_dict(payload: dict[str, Any]) -> CompareOptions:
    known = set(CompareOptions.__dataclass_fields__)
    unknown = sorted(set(payload) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

    _expect(payload, "strict_chart_only", bool, "true or false")
    _expect(payload, "include_reverse", bool, "true or false")
    _expect(payload, "preferred_sheet", str, "a sheet name")
    _expect(payload, "display_columns", list, "a list of column titles")
    if "display_columns" in payload and not all(isinstance(item, str) for item in payload["display_columns"]):
        raise ValueError("Config 'display_columns' must be a list of column titles.")

    return CompareOptions(**payload)


def load_config(path: Optional[Path]) -> CompareOptions:
    if path is None:
        return CompareOptions()
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    if path.suffix.lower() in {".yml", ".yaml"}:
        raise ValueError("YAML configs are not supported. Use JSON.")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Could not read config: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Config root must be a JSON object.")
    return options_from_dict(payload)


def starter_config_text() -> str:
    return json.dumps(asdict(CompareOptions()), indent=2) + "\n"
