#!/usr/bin/env python3
from __future__ import annotations

import tempfile
from datetime import date
from pathlib import Path
from typing import Optional

import pandas as pd
import streamlit as st

from late_adds.export import TOTAL_LABELS, default_export_name, to_csv, write_workbook
from late_adds.loader import ALL_FORMATS
from late_adds.reconcile import Comparison, compare_against_union, compare_reports
from late_adds.report import Report, read_report
from late_adds.schema import PREFERRED_SHEET

UPLOAD_TYPES = [ext.lstrip(".") for ext in sorted(ALL_FORMATS)]
UPLOAD_KEYS = ("revised_upload", "reprint_upload", "second_baseline_upload")


def ensure_state() -> None:
    st.session_state.setdefault("processing", False)
    st.session_state.setdefault("job", None)
    st.session_state.setdefault("comparison", None)
    st.session_state.setdefault("status", ("info", "Upload Revised and Reprint."))
    st.session_state.setdefault("upload_generation", 0)


def upload_key(name: str) -> str:
    # Bumping the generation gives the uploaders fresh keys, which clears them.
    return f"{name}_{st.session_state['upload_generation']}"


def set_status(message: str, tone: str = "info") -> None:
    st.session_state["status"] = (tone, message)


def render_status() -> None:
    tone, message = st.session_state["status"]
    if tone == "error":
        st.error(message)
    elif tone == "ok":
        st.success(message)
    else:
        st.caption(message)


def build_job(revised_upload, reprint_upload, second_upload, *, strict_chart_only: bool, include_reverse: bool) -> dict:
    uploads = {"revised": revised_upload, "reprint": reprint_upload, "second": second_upload}
    return {
        "files": {
            role: (upload.name, upload.getvalue())
            for role, upload in uploads.items()
            if upload is not None
        },
        "strict_chart_only": strict_chart_only,
        "include_reverse": include_reverse and second_upload is None,
    }


def read_upload(name: str, data: bytes, folder: Path, preferred_sheet: str = PREFERRED_SHEET) -> Report:
    folder.mkdir(parents=True, exist_ok=True)
    source_path = folder / name
    source_path.write_bytes(data)
    return read_report(source_path, preferred_sheet=preferred_sheet)


def run_comparison(job: dict) -> Comparison:
    files = job["files"]
    with tempfile.TemporaryDirectory(prefix="late_adds_ui_") as tmpdir:
        folder = Path(tmpdir)
        revised = read_upload(*files["revised"], folder / "revised")
        reprint = read_upload(*files["reprint"], folder / "reprint")
        if "second" in files:
            second = read_upload(*files["second"], folder / "second")
            return compare_against_union((revised, second), reprint, strict_chart_only=job["strict_chart_only"])
        return compare_reports(
            revised,
            reprint,
            strict_chart_only=job["strict_chart_only"],
            include_reverse=job["include_reverse"],
        )


def process_job(job: Optional[dict]) -> None:
    st.session_state["comparison"] = None
    if not job:
        set_status("Upload Revised and Reprint.")
        return
    try:
        comparison = run_comparison(job)
    except (ValueError, ImportError) as exc:
        set_status(str(exc) or "Something went wrong.", "error")
    else:
        st.session_state["comparison"] = comparison
        set_status(f"Done. Late adds found: {len(comparison.late_adds)}", "ok")


def workbook_bytes(comparison: Comparison) -> bytes:
    with tempfile.TemporaryDirectory(prefix="late_adds_export_") as tmpdir:
        path = write_workbook(Path(tmpdir) / "late_adds.xlsx", comparison)
        return path.read_bytes()


def render_totals(comparison: Comparison) -> None:
    items = list(comparison.totals.items())
    for start in range(0, len(items), 3):
        columns = st.columns(3)
        for column, (name, value) in zip(columns, items[start : start + 3]):
            column.metric(TOTAL_LABELS.get(name, name), value)


def render_table(title: str, comparison: Comparison, records: list[dict], kind: str) -> None:
    st.subheader(title)
    if not records:
        st.info("No rows found.")
    else:
        frame = pd.DataFrame(records, columns=comparison.headers).astype(str)
        st.dataframe(frame, width="stretch", hide_index=True)
    st.download_button(
        "Download CSV",
        data=to_csv(comparison.headers, records).encode("utf-8"),
        file_name=default_export_name(kind, date.today()),
        mime="text/csv",
        disabled=not records,
        key=f"download_{kind}_csv",
    )


def render_results(comparison: Optional[Comparison]) -> None:
    if comparison is None:
        return
    render_totals(comparison)
    render_table("Late adds (Reprint not in Revised)", comparison, comparison.late_adds, "late_adds")
    if comparison.reverse is not None:
        render_table("Revised not in Reprint", comparison, comparison.reverse, "reverse")
    st.download_button(
        "Download workbook",
        data=workbook_bytes(comparison),
        file_name=default_export_name("late_adds", date.today(), suffix=".xlsx"),
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        key="download_workbook",
    )


def clear() -> None:
    st.session_state["comparison"] = None
    st.session_state["upload_generation"] += 1
    set_status("Cleared.")


def main() -> None:
    st.set_page_config(page_title="late-adds", page_icon="🗓️", layout="wide", initial_sidebar_state="collapsed")
    ensure_state()

    st.title("Late adds")
    st.caption("Upload the Revised print and the Reprint of the appointment report to list appointments added in between.")

    processing = st.session_state["processing"]
    columns = st.columns(3)
    revised_upload = columns[0].file_uploader("Revised (earlier print)", type=UPLOAD_TYPES, key=upload_key(UPLOAD_KEYS[0]), disabled=processing)
    reprint_upload = columns[1].file_uploader("Reprint (current schedule)", type=UPLOAD_TYPES, key=upload_key(UPLOAD_KEYS[1]), disabled=processing)
    second_upload = columns[2].file_uploader("Second baseline (optional)", type=UPLOAD_TYPES, key=upload_key(UPLOAD_KEYS[2]), disabled=processing)

    strict_chart_only = st.checkbox("Strict chart-only matching", value=False, disabled=processing)
    include_reverse = st.checkbox(
        "Also show Revised not in Reprint",
        value=False,
        disabled=processing or second_upload is not None,
        help="Only available when comparing two files.",
    )

    ready = revised_upload is not None and reprint_upload is not None
    buttons = st.columns(2)
    submit = buttons[0].button("Compare", type="primary", width="stretch", disabled=processing or not ready)
    buttons[1].button(
        "Clear",
        width="stretch",
        disabled=processing or (not ready and st.session_state["comparison"] is None),
        on_click=clear,
    )

    if submit and ready:
        st.session_state["job"] = build_job(
            revised_upload,
            reprint_upload,
            second_upload,
            strict_chart_only=strict_chart_only,
            include_reverse=include_reverse,
        )
        st.session_state["comparison"] = None
        st.session_state["processing"] = True
        set_status("Reading spreadsheets...")
        st.rerun()

    if st.session_state["processing"]:
        st.info("Comparing the uploaded schedules...")
        try:
            process_job(st.session_state["job"])
        finally:
            st.session_state["processing"] = False
            st.session_state["job"] = None
        st.rerun()

    render_status()
    render_results(st.session_state["comparison"])


if __name__ == "__main__":
    main()
