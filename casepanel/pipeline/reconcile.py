"""Deduplicate, gap-fill and zero-fill normalised records into the panel.

The panel holds exactly one row per (location_key, report_date). Every location
covers each day from its first observation through the run date, with metrics
carried forward from the latest earlier observation when a day has no report.

Reconciliation is idempotent: feeding a panel back in through
``PanelRow.as_record`` yields the same panel.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from casepanel.common.constants import METRIC_FIELDS
from casepanel.common.models import NormalizedRecord, PanelRow
from casepanel.common.time_utils import daily_range

DEFAULT_DROP_COUNTRIES = frozenset({"US", "Canada"})
DEFAULT_CUTOVER = date(2020, 2, 1)


@dataclass(frozen=True)
class DropRule:
    """Removes state-only rows once a country switched to "City, ST" reporting."""

    countries: frozenset[str] = DEFAULT_DROP_COUNTRIES
    cutover: date = DEFAULT_CUTOVER

    def is_coarse(self, subregion: str | None, region: str) -> bool:
        return region in self.countries and "," not in (subregion or "")

    def drops(self, row: PanelRow) -> bool:
        return row.report_date > self.cutover and self.is_coarse(row.subregion, row.region)


NO_DROP = DropRule(countries=frozenset())


def dedupe_same_day(records: Iterable[NormalizedRecord]) -> tuple[dict[tuple[str, date], NormalizedRecord], int]:
    """Keep the latest intra-day report per (location, date).

    Exactly equal ``reported_at`` values keep the first record seen.
    """
    latest: dict[tuple[str, date], NormalizedRecord] = {}
    duplicates = 0
    for record in records:
        key = (record.location_key, record.report_date)
        current = latest.get(key)
        if current is None:
            latest[key] = record
            continue
        duplicates += 1
        if record.reported_at > current.reported_at:
            latest[key] = record
    return latest, duplicates


def fill_location(
    location_key: str,
    observed: dict[date, NormalizedRecord],
    end: date,
) -> tuple[list[PanelRow], int]:
    """Materialise one row per day for a location, carrying metrics forward."""
    first_date = min(observed)
    anchor = observed[first_date]
    carried: dict[str, int | None] = {metric: None for metric in METRIC_FIELDS}
    rows: list[PanelRow] = []
    filled = 0

    for day in daily_range(first_date, max(end, max(observed))):
        record = observed.get(day)
        if record is None:
            filled += 1
        else:
            for metric in METRIC_FIELDS:
                value = getattr(record, metric)
                if value is not None:
                    carried[metric] = value
        rows.append(
            PanelRow(
                location_key=location_key,
                report_date=day,
                subregion=anchor.subregion,
                region=anchor.region,
                confirmed=carried["confirmed"] or 0,
                deaths=carried["deaths"] or 0,
                recovered=carried["recovered"] or 0,
            )
        )
    return rows, filled


def reconcile(
    records: Iterable[NormalizedRecord],
    *,
    run_date: date,
    drop_rule: DropRule | None = None,
) -> tuple[list[PanelRow], dict]:
    drop_rule = drop_rule or DropRule()
    records = list(records)
    latest, duplicates = dedupe_same_day(records)

    by_location: dict[str, dict[date, NormalizedRecord]] = defaultdict(dict)
    for (key, day), record in latest.items():
        by_location[key][day] = record

    panel: list[PanelRow] = []
    filled_total = 0
    dropped = 0
    for key in sorted(by_location):
        rows, filled = fill_location(key, by_location[key], run_date)
        filled_total += filled
        for row in rows:
            if drop_rule.drops(row):
                dropped += 1
                continue
            panel.append(row)

    stats = {
        "records_in": len(records),
        "duplicates_dropped": duplicates,
        "rows_observed": len(latest),
        "rows_filled": filled_total,
        "rows_dropped_granularity": dropped,
        "locations": len({row.location_key for row in panel}),
        "rows_out": len(panel),
    }
    return panel, stats
