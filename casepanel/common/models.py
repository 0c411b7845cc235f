"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime, time
from typing import Any


@dataclass(frozen=True)
class RawRecord:
    source_name: str
    subregion: str | None
    region: str | None
    reported_at: datetime | None
    confirmed: int | None
    deaths: int | None
    recovered: int | None
    county: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class NormalizedRecord:
    source_name: str
    subregion: str | None
    region: str
    reported_at: datetime
    location_key: str
    report_date: date
    confirmed: int | None
    deaths: int | None
    recovered: int | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PanelRow:
    location_key: str
    report_date: date
    subregion: str | None
    region: str
    confirmed: int
    deaths: int
    recovered: int

    @property
    def key(self) -> tuple[str, date]:
        return (self.location_key, self.report_date)

    def as_record(self) -> NormalizedRecord:
        """Re-enter a reconciled row into reconciliation."""
        return NormalizedRecord(
            source_name="panel",
            subregion=self.subregion,
            region=self.region,
            reported_at=datetime.combine(self.report_date, time.min),
            location_key=self.location_key,
            report_date=self.report_date,
            confirmed=self.confirmed,
            deaths=self.deaths,
            recovered=self.recovered,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AggregateBucketRow:
    bucket_label: str
    report_date: date
    confirmed: int
    deaths: int
    recovered: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
