"""Repair location fields and derive canonical location keys."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from casepanel.common.models import NormalizedRecord, RawRecord

# Later daily reports renamed some regions; map them back to the earlier name.
REGION_ALIASES = {
    "China": "Mainland China",
}
DEFAULT_SUBREGIONS = {
    "Hong Kong": "Hong Kong",
    "Macau": "Macau",
}
SPECIAL_SUBREGIONS = frozenset({"Hong Kong", "Macau", "Taiwan"})
US_STATE_SENTINELS = frozenset({"Washington"})
SENTINEL_REGION = "US"
FALLBACK_REGION = "Others"


@dataclass(frozen=True)
class NormalisationRules:
    """Lookup tables for known reporting quirks of the daily snapshots."""

    region_aliases: dict[str, str] = field(default_factory=lambda: dict(REGION_ALIASES))
    default_subregions: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_SUBREGIONS))
    special_subregions: frozenset[str] = SPECIAL_SUBREGIONS
    us_state_sentinels: frozenset[str] = US_STATE_SENTINELS
    sentinel_region: str = SENTINEL_REGION
    fallback_region: str = FALLBACK_REGION


def canonical_region(region: str | None, rules: NormalisationRules) -> str | None:
    if region is None:
        return None
    return rules.region_aliases.get(region, region)


def impute_subregion(subregion: str | None, region: str | None, rules: NormalisationRules) -> str | None:
    if subregion is None and region is not None:
        return rules.default_subregions.get(region)
    return subregion


def resolve_region(subregion: str | None, region: str | None, rules: NormalisationRules) -> str:
    if subregion is not None and subregion in rules.special_subregions:
        return subregion
    if subregion is not None and subregion in rules.us_state_sentinels:
        return rules.sentinel_region
    if region is None:
        return rules.fallback_region
    return region


def location_key(subregion: str | None, region: str) -> str:
    if subregion is not None:
        return f"{subregion}, {region}"
    return region


def normalise_record(record: RawRecord, rules: NormalisationRules) -> NormalizedRecord | None:
    """Return the repaired record, or None when it cannot be placed in time."""
    if record.reported_at is None:
        return None
    raw_region = canonical_region(record.region, rules)
    subregion = impute_subregion(record.subregion, raw_region, rules)
    region = resolve_region(subregion, raw_region, rules)
    return NormalizedRecord(
        source_name=record.source_name,
        subregion=subregion,
        region=region,
        reported_at=record.reported_at,
        location_key=location_key(subregion, region),
        report_date=record.reported_at.date(),
        confirmed=record.confirmed,
        deaths=record.deaths,
        recovered=record.recovered,
    )


def normalise_records(
    records: Iterable[RawRecord],
    rules: NormalisationRules | None = None,
) -> tuple[list[NormalizedRecord], dict]:
    rules = rules or NormalisationRules()
    out: list[NormalizedRecord] = []
    stats = {"records_in": 0, "dropped_unparseable_timestamp": 0, "dropped_county_detail": 0, "records_out": 0}
    for record in records:
        stats["records_in"] += 1
        # County rows share their state's key and timestamp, so any one of them would stand in for the whole state.
        if record.county is not None:
            stats["dropped_county_detail"] += 1
            continue
        normalised = normalise_record(record, rules)
        if normalised is None:
            stats["dropped_unparseable_timestamp"] += 1
            continue
        out.append(normalised)
    stats["records_out"] = len(out)
    return out, stats
