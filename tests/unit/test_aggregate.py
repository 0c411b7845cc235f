from datetime import date

import pytest

from casepanel.common.errors import ContractError
from casepanel.common.models import PanelRow
from casepanel.pipeline.aggregate import BucketScheme, aggregate_panel, bucket_functions, coarse_bucket, detailed_bucket

SCHEME = BucketScheme()
D1 = date(2020, 2, 1)
D2 = date(2020, 2, 2)


def _row(key, day, confirmed, deaths=0, recovered=0):
    subregion, _, region = key.rpartition(", ")
    return PanelRow(
        location_key=key,
        report_date=day,
        subregion=subregion or None,
        region=region,
        confirmed=confirmed,
        deaths=deaths,
        recovered=recovered,
    )


PANEL = [
    _row("Hubei, Mainland China", D1, 100, 5, 1),
    _row("Hubei, Mainland China", D2, 150, 7, 2),
    _row("Zhejiang, Mainland China", D1, 20),
    _row("Zhejiang, Mainland China", D2, 30, 1),
    _row("Mainland China", D2, 4),
    _row("Thailand", D1, 3),
    _row("Thailand", D2, 5),
    _row("Hong Kong, Hong Kong", D2, 2),
]


def test_detailed_bucket_assignment():
    assert detailed_bucket(SCHEME, "Hubei, Mainland China") == "Hubei"
    assert detailed_bucket(SCHEME, "Zhejiang, Mainland China") == "Rest of Mainland China"
    assert detailed_bucket(SCHEME, "Mainland China") == "Rest of Mainland China"
    assert detailed_bucket(SCHEME, "Hong Kong, Hong Kong") == "Rest of World"
    assert detailed_bucket(SCHEME, "Thailand") == "Rest of World"


def test_coarse_bucket_merges_epicenter_and_rest_of_country():
    assert coarse_bucket(SCHEME, "Hubei, Mainland China") == "Mainland China"
    assert coarse_bucket(SCHEME, "Zhejiang, Mainland China") == "Mainland China"
    assert coarse_bucket(SCHEME, "Thailand") == "Rest of World"


def test_aggregate_sums_metrics_per_bucket_and_date():
    rows = aggregate_panel(PANEL, bucket_functions(SCHEME)["detailed"])
    by_key = {(row.bucket_label, row.report_date): row for row in rows}

    assert by_key[("Hubei", D2)].confirmed == 150
    assert by_key[("Rest of Mainland China", D1)].confirmed == 20
    assert by_key[("Rest of Mainland China", D2)].confirmed == 34
    assert by_key[("Rest of Mainland China", D2)].deaths == 1
    assert by_key[("Rest of World", D2)].confirmed == 7
    assert [(row.bucket_label, row.report_date) for row in rows] == sorted(by_key)


def test_aggregate_matches_panel_sums_for_every_bucket():
    for bucket_fn in bucket_functions(SCHEME).values():
        rows = aggregate_panel(PANEL, bucket_fn)
        for agg in rows:
            members = [r for r in PANEL if bucket_fn(r.location_key) == agg.bucket_label and r.report_date == agg.report_date]
            assert agg.confirmed == sum(r.confirmed for r in members)
            assert agg.deaths == sum(r.deaths for r in members)
            assert agg.recovered == sum(r.recovered for r in members)


def test_coarse_totals_equal_detailed_totals():
    fns = bucket_functions(SCHEME)
    coarse = {(r.bucket_label, r.report_date): r.confirmed for r in aggregate_panel(PANEL, fns["coarse"])}

    assert coarse[("Mainland China", D2)] == 150 + 34
    assert coarse[("Rest of World", D1)] == 3


def test_empty_panel_aggregates_to_nothing():
    assert aggregate_panel([], bucket_functions(SCHEME)["coarse"]) == []


def test_bucket_function_must_be_total():
    with pytest.raises(ContractError):
        aggregate_panel(PANEL, lambda _key: None)
