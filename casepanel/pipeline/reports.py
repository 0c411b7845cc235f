"""Run report aggregation."""

from __future__ import annotations

from pathlib import Path

from casepanel.common.fs import write_json


def write_run_summary(data_dir: Path, run_id: str, run_date: str, stage_stats: dict[str, dict]) -> Path:
    ingest = stage_stats.get("ingest", {})
    normalise = stage_stats.get("normalise", {})
    reconcile = stage_stats.get("reconcile", {})

    totals = {
        "snapshots": int(ingest.get("snapshots", 0)),
        "raw_rows": int(ingest.get("rows", 0)),
        "malformed_numbers": int(ingest.get("malformed_numbers", 0)),
        "dropped_unparseable_timestamp": int(normalise.get("dropped_unparseable_timestamp", 0)),
        "dropped_county_detail": int(normalise.get("dropped_county_detail", 0)),
        "duplicates_dropped": int(reconcile.get("duplicates_dropped", 0)),
        "rows_filled": int(reconcile.get("rows_filled", 0)),
        "rows_dropped_granularity": int(reconcile.get("rows_dropped_granularity", 0)),
        "locations": int(reconcile.get("locations", 0)),
        "panel_rows": int(reconcile.get("rows_out", 0)),
    }

    warnings: list[str] = []
    if totals["snapshots"] == 0:
        warnings.append("NO_SNAPSHOTS")
    if totals["dropped_unparseable_timestamp"] > 0:
        warnings.append("ROWS_DROPPED_UNPARSEABLE_TIMESTAMP")
    if totals["malformed_numbers"] > 0:
        warnings.append("MALFORMED_NUMBERS_TREATED_AS_MISSING")

    summary_path = data_dir / "out" / "reports" / "run_summary.json"
    payload = {
        "run_id": run_id,
        "run_date": run_date,
        "status": "partial" if warnings else "success",
        "totals": totals,
        "warnings": warnings,
        "stages": stage_stats,
    }
    write_json(summary_path, payload)
    return summary_path
