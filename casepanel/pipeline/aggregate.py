"""Bucketed comparison views over the panel."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from functools import partial
from typing import Callable, Iterable

from casepanel.common.errors import ContractError
from casepanel.common.models import AggregateBucketRow, PanelRow

BucketFn = Callable[[str], str]


@dataclass(frozen=True)
class BucketScheme:
    epicenter_key: str = "Hubei, Mainland China"
    epicenter_region: str = "Mainland China"
    epicenter_label: str = "Hubei"
    country_rest_label: str = "Rest of Mainland China"
    country_label: str = "Mainland China"
    rest_label: str = "Rest of World"

    def in_country(self, location_key: str) -> bool:
        return location_key == self.epicenter_region or location_key.endswith(f", {self.epicenter_region}")


def detailed_bucket(scheme: BucketScheme, location_key: str) -> str:
    if location_key == scheme.epicenter_key:
        return scheme.epicenter_label
    if scheme.in_country(location_key):
        return scheme.country_rest_label
    return scheme.rest_label


def coarse_bucket(scheme: BucketScheme, location_key: str) -> str:
    if location_key == scheme.epicenter_key or scheme.in_country(location_key):
        return scheme.country_label
    return scheme.rest_label


def bucket_functions(scheme: BucketScheme) -> dict[str, BucketFn]:
    return {
        "detailed": partial(detailed_bucket, scheme),
        "coarse": partial(coarse_bucket, scheme),
    }


def aggregate_panel(panel: Iterable[PanelRow], bucket_fn: BucketFn) -> list[AggregateBucketRow]:
    sums: dict[tuple[str, date], list[int]] = defaultdict(lambda: [0, 0, 0])
    for row in panel:
        label = bucket_fn(row.location_key)
        if label is None:
            raise ContractError(f"No bucket assigned to location {row.location_key!r}")
        totals = sums[(label, row.report_date)]
        totals[0] += row.confirmed
        totals[1] += row.deaths
        totals[2] += row.recovered

    return [
        AggregateBucketRow(
            bucket_label=label,
            report_date=day,
            confirmed=confirmed,
            deaths=deaths,
            recovered=recovered,
        )
        for (label, day), (confirmed, deaths, recovered) in sorted(sums.items())
    ]
