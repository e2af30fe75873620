"""Column schema shared by header detection, report building and keying."""

from __future__ import annotations

from dataclasses import dataclass

PREFERRED_SHEET = "MasterAppointmentsWithInsurance"

# Columns shown (in this order) when the report carries them.
DISPLAY_COLUMNS = [
    "Time",
    "Patient",
    "Chart #",
    "Provider Profile",
    "Appt Type",
    "Carrier",
    "CoPay",
    "Pat Bal",
]

HEADER_SCAN_LIMIT = 120

PATIENT = "patient"
CHART = "chart"
TIME = "time"


@dataclass(frozen=True)
class ColumnRule:
    key: str
    name: str
    match: str  # "exact" | "substring"
    header_role: str  # "required" | "preferred"

    @property
    def title(self) -> str:
        return self.name.strip().lower()

    def matches(self, normalized_cell: str) -> bool:
        if self.match == "exact":
            return normalized_cell == self.key
        return self.key in normalized_cell


COLUMN_RULES = (
    ColumnRule(key=PATIENT, name="Patient", match="exact", header_role="required"),
    ColumnRule(key=CHART, name="Chart #", match="substring", header_role="required"),
    ColumnRule(key=TIME, name="Time", match="substring", header_role="preferred"),
)
