"""Date and timestamp helpers."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Iterator

from casepanel.common.constants import SNAPSHOT_NAME_FORMAT, TIMESTAMP_FORMATS


def utc_today_iso() -> str:
    return datetime.now(tz=timezone.utc).date().isoformat()


def parse_run_date(value: str | None) -> str:
    if not value:
        return utc_today_iso()
    parsed = date.fromisoformat(value)
    return parsed.isoformat()


def utc_timestamp_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="milliseconds")


def parse_report_timestamp(value: str | None) -> datetime | None:
    """Parse a "Last Update" cell, returning None when no known layout matches."""
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def snapshot_date(name: str) -> date | None:
    """Date encoded in a daily report filename such as ``02-14-2020.csv``."""
    stem = name.rsplit("/", 1)[-1]
    if stem.lower().endswith(".csv"):
        stem = stem[:-4]
    try:
        return datetime.strptime(stem, SNAPSHOT_NAME_FORMAT).date()
    except ValueError:
        return None


def daily_range(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
