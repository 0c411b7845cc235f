"""Parse daily snapshot CSVs into raw records."""

from __future__ import annotations

import csv
import io
import math
from typing import Iterable

from casepanel.common.errors import IngestionError
from casepanel.common.models import RawRecord
from casepanel.common.time_utils import parse_report_timestamp

# Daily reports renamed their columns mid-outbreak; both spellings map to one field.
HEADER_ALIASES = {
    "admin2": "county",
    "province/state": "subregion",
    "province_state": "subregion",
    "country/region": "region",
    "country_region": "region",
    "last update": "reported_at",
    "last_update": "reported_at",
    "confirmed": "confirmed",
    "deaths": "deaths",
    "recovered": "recovered",
}


def _canonical_header(name: str | None) -> str | None:
    if name is None:
        return None
    return HEADER_ALIASES.get(name.replace("\ufeff", "").strip().lower())


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    text = value.strip()
    return text or None


def _parse_count(value: str | None) -> tuple[int | None, bool]:
    """Return the parsed count and whether the cell was malformed."""
    text = _clean_text(value)
    if text is None:
        return None, False
    try:
        number = float(text.replace(",", ""))
    except ValueError:
        return None, True
    if not math.isfinite(number) or number < 0:
        return None, True
    return int(number), False


def _column_map(fieldnames: Iterable[str | None]) -> dict[str, str]:
    columns: dict[str, str] = {}
    for name in fieldnames:
        field = _canonical_header(name)
        if field is not None and field not in columns:
            columns[field] = name
    return columns


def parse_snapshot(source_name: str, text: str) -> tuple[list[RawRecord], dict]:
    try:
        reader = csv.DictReader(io.StringIO(text))
        fieldnames = reader.fieldnames
        rows = list(reader)
    except csv.Error as exc:
        raise IngestionError(f"Unreadable snapshot {source_name}: {exc}") from exc
    if not fieldnames:
        raise IngestionError(f"Snapshot {source_name} has no header row")

    columns = _column_map(fieldnames)
    stats = {"rows": 0, "unparseable_timestamps": 0, "malformed_numbers": 0}
    records: list[RawRecord] = []

    def cell(row: dict, field: str) -> str | None:
        column = columns.get(field)
        if column is None:
            return None
        return row.get(column)

    for row in rows:
        counts: dict[str, int | None] = {}
        for field in ("confirmed", "deaths", "recovered"):
            value, malformed = _parse_count(cell(row, field))
            if malformed:
                stats["malformed_numbers"] += 1
            counts[field] = value

        raw_timestamp = _clean_text(cell(row, "reported_at"))
        reported_at = parse_report_timestamp(raw_timestamp)
        if reported_at is None:
            stats["unparseable_timestamps"] += 1

        records.append(
            RawRecord(
                source_name=source_name,
                subregion=_clean_text(cell(row, "subregion")),
                region=_clean_text(cell(row, "region")),
                reported_at=reported_at,
                **counts,
                county=_clean_text(cell(row, "county")),
            )
        )
        stats["rows"] += 1

    return records, stats


def ingest_snapshots(snapshots: Iterable[tuple[str, str]]) -> tuple[list[RawRecord], dict]:
    """Union every snapshot into one record list, keeping input order."""
    records: list[RawRecord] = []
    totals = {"snapshots": 0, "rows": 0, "unparseable_timestamps": 0, "malformed_numbers": 0}
    for source_name, text in snapshots:
        parsed, stats = parse_snapshot(source_name, text)
        records.extend(parsed)
        totals["snapshots"] += 1
        for key, value in stats.items():
            totals[key] += value
    return records, totals
