from datetime import datetime

import pytest

from casepanel.common.errors import IngestionError
from casepanel.pipeline.ingest import ingest_snapshots, parse_snapshot


def test_parse_snapshot_maps_both_header_generations():
    early = "Province/State,Country/Region,Last Update,Confirmed,Deaths,Recovered\nHubei,Mainland China,1/22/2020 17:00,444,17,28\n"
    late = "FIPS,Admin2,Province_State,Country_Region,Last_Update,Lat,Long_,Confirmed,Deaths,Recovered\n,,Hubei,China,2020-03-23 23:19:34,30.9,112.2,67800,3160,59433\n"

    (first,), _ = parse_snapshot("01-22-2020.csv", early)
    (second,), _ = parse_snapshot("03-23-2020.csv", late)

    assert first.subregion == "Hubei"
    assert first.region == "Mainland China"
    assert first.reported_at == datetime(2020, 1, 22, 17, 0)
    assert (first.confirmed, first.deaths, first.recovered) == (444, 17, 28)
    assert second.region == "China"
    assert second.reported_at == datetime(2020, 3, 23, 23, 19, 34)
    assert second.confirmed == 67800


def test_parse_snapshot_keeps_absent_columns_and_blank_cells_missing():
    text = "\ufeffProvince/State,Country/Region,Last Update,Confirmed\n,US,1/23/20 17:00,\n"

    (record,), stats = parse_snapshot("01-23-2020.csv", text)

    assert record.subregion is None
    assert record.region == "US"
    assert record.reported_at == datetime(2020, 1, 23, 17, 0)
    assert record.confirmed is None
    assert record.deaths is None
    assert record.recovered is None
    assert stats["malformed_numbers"] == 0


def test_parse_snapshot_treats_malformed_numbers_as_missing():
    text = "Province/State,Country/Region,Last Update,Confirmed,Deaths,Recovered\nZhejiang,Mainland China,1/31/2020 23:59,\"1,092\",n/a,-3\n"

    (record,), stats = parse_snapshot("01-31-2020.csv", text)

    assert record.confirmed == 1092
    assert record.deaths is None
    assert record.recovered is None
    assert stats["malformed_numbers"] == 2


def test_parse_snapshot_keeps_rows_with_unparseable_timestamps():
    text = "Province/State,Country/Region,Last Update,Confirmed\nHubei,Mainland China,yesterday,5\n"

    (record,), stats = parse_snapshot("01-24-2020.csv", text)

    assert record.reported_at is None
    assert record.confirmed == 5
    assert stats["unparseable_timestamps"] == 1


def test_parse_snapshot_without_header_fails():
    with pytest.raises(IngestionError):
        parse_snapshot("01-25-2020.csv", "")


def test_ingest_snapshots_unions_records_and_totals_stats():
    day1 = "Province/State,Country/Region,Last Update,Confirmed\nHubei,Mainland China,1/22/2020 12:00 PM,100\n"
    day2 = "Province/State,Country/Region,Last Update,Confirmed\nHubei,Mainland China,1/23/2020 12:00 PM,150\n,US,bad,3\n"

    records, stats = ingest_snapshots([("01-22-2020.csv", day1), ("01-23-2020.csv", day2)])

    assert [r.source_name for r in records] == ["01-22-2020.csv", "01-23-2020.csv", "01-23-2020.csv"]
    assert stats == {"snapshots": 2, "rows": 3, "unparseable_timestamps": 1, "malformed_numbers": 0}


def test_ingest_snapshots_empty_input():
    assert ingest_snapshots([]) == ([], {"snapshots": 0, "rows": 0, "unparseable_timestamps": 0, "malformed_numbers": 0})


def test_parse_snapshot_reads_county_column():
    text = "FIPS,Admin2,Province_State,Country_Region,Last_Update,Confirmed\n53033,King,Washington,US,2020-03-23 23:19:34,1170\n,,Hubei,China,2020-03-23 23:19:34,67800\n"

    (king, hubei), _ = parse_snapshot("03-23-2020.csv", text)

    assert king.county == "King"
    assert hubei.county is None
