"""Panel and bucket CSV export."""

from __future__ import annotations

from pathlib import Path

from casepanel.common.fs import write_csv
from casepanel.common.models import AggregateBucketRow, PanelRow

PANEL_HEADERS = [
    "location_key",
    "report_date",
    "subregion",
    "region",
    "confirmed",
    "deaths",
    "recovered",
]
AGGREGATE_HEADERS = [
    "bucket_label",
    "report_date",
    "confirmed",
    "deaths",
    "recovered",
]


def _serialize_row(row: dict, headers: list[str]) -> dict:
    out = {}
    for key in headers:
        value = row.get(key)
        if value is None:
            out[key] = ""
        elif hasattr(value, "isoformat"):
            out[key] = value.isoformat()
        else:
            out[key] = value
    return out


def write_panel_csv(output_config: dict, data_dir: Path, panel: list[PanelRow]) -> Path:
    out_path = data_dir / "out" / output_config["panel_filename"]
    sorted_rows = sorted(panel, key=lambda row: row.key)
    write_csv(out_path, PANEL_HEADERS, [_serialize_row(row.to_dict(), PANEL_HEADERS) for row in sorted_rows])
    return out_path


def write_aggregate_csv(path: Path, rows: list[AggregateBucketRow]) -> Path:
    sorted_rows = sorted(rows, key=lambda row: (row.bucket_label, row.report_date))
    write_csv(path, AGGREGATE_HEADERS, [_serialize_row(row.to_dict(), AGGREGATE_HEADERS) for row in sorted_rows])
    return path
