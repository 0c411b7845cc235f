from __future__ import annotations

from datetime import date, timedelta
from pathlib import Path

import pytest

from casepanel.common.errors import IngestionError
from casepanel.common.fs import read_json, write_json
from casepanel.common.http import HttpRequestError
from casepanel.harvest.daily_reports import (
    fetch_snapshots,
    list_remote_snapshots,
    load_local_snapshots,
)

SOURCE = {
    "listing_url": "https://api.example.test/contents/daily",
    "raw_base_url": "https://raw.example.test/daily/",
    "max_workers": 2,
}


class FakeClient:
    def __init__(self, listing=None, texts=None, failing=()):
        self.listing = listing or []
        self.texts = texts or {}
        self.failing = set(failing)
        self.requested: list[str] = []

    def get_json(self, url, **_kwargs):
        self.requested.append(url)
        return self.listing

    def get_text(self, url, **_kwargs):
        self.requested.append(url)
        name = url.rsplit("/", 1)[-1]
        if name in self.failing:
            raise HttpRequestError(f"HTTP status: 404 for {name}")
        return self.texts[name]


@pytest.mark.integration
def test_list_remote_snapshots_orders_by_report_day():
    client = FakeClient(
        listing=[
            {"name": "02-01-2020.csv", "type": "file"},
            {"name": ".gitignore", "type": "file"},
            {"name": "01-31-2020.csv", "type": "file"},
            {"name": "README.md", "type": "file"},
            {"name": "archive", "type": "dir"},
            {"name": "01-22-2020.csv", "type": "file"},
        ]
    )

    assert list_remote_snapshots(client, SOURCE) == ["01-22-2020.csv", "01-31-2020.csv", "02-01-2020.csv"]
    assert client.requested == [SOURCE["listing_url"]]


@pytest.mark.integration
def test_list_remote_snapshots_rejects_unexpected_payload():
    client = FakeClient(listing={"message": "API rate limit exceeded"})

    with pytest.raises(IngestionError):
        list_remote_snapshots(client, SOURCE)


@pytest.mark.integration
def test_fetch_snapshots_writes_files_and_manifest(tmp_path: Path):
    texts = {"01-22-2020.csv": "a\n", "01-23-2020.csv": "b\n"}
    client = FakeClient(texts=texts)

    result = fetch_snapshots(client, list(texts), SOURCE, tmp_path, max_workers=2)

    assert result == {"snapshots": 2, "failed": 0}
    assert (tmp_path / "01-22-2020.csv").read_text(encoding="utf-8") == "a\n"
    assert read_json(tmp_path / "manifest.json") == {"snapshots": ["01-22-2020.csv", "01-23-2020.csv"]}
    assert "https://raw.example.test/daily/01-23-2020.csv" in client.requested


@pytest.mark.integration
def test_fetch_snapshots_fails_whole_run_on_any_download_failure(tmp_path: Path):
    texts = {"01-22-2020.csv": "a\n", "01-23-2020.csv": "b\n"}
    client = FakeClient(texts=texts, failing={"01-23-2020.csv"})

    with pytest.raises(IngestionError, match="01-23-2020.csv"):
        fetch_snapshots(client, list(texts), SOURCE, tmp_path, max_workers=2)

    assert not (tmp_path / "manifest.json").exists()
    assert not (tmp_path / "01-22-2020.csv").exists()


@pytest.mark.integration
def test_load_local_snapshots_requires_every_manifest_entry(tmp_path: Path):
    (tmp_path / "01-22-2020.csv").write_text("a\n", encoding="utf-8")
    write_json(tmp_path / "manifest.json", {"snapshots": ["01-22-2020.csv", "01-23-2020.csv"]})

    with pytest.raises(IngestionError, match="01-23-2020.csv"):
        load_local_snapshots(tmp_path)


@pytest.mark.integration
def test_load_local_snapshots_without_manifest_reads_dated_csvs_in_order(tmp_path: Path):
    (tmp_path / "02-01-2020.csv").write_text("later\n", encoding="utf-8")
    (tmp_path / "01-31-2020.csv").write_text("earlier\n", encoding="utf-8")
    (tmp_path / "notes.csv").write_text("skip\n", encoding="utf-8")

    assert load_local_snapshots(tmp_path) == [("01-31-2020.csv", "earlier\n"), ("02-01-2020.csv", "later\n")]
    assert load_local_snapshots(tmp_path / "absent") == []


@pytest.mark.integration
def test_list_remote_snapshots_reads_git_tree_listing():
    client = FakeClient(
        listing={
            "truncated": False,
            "tree": [
                {"path": "03-10-2020.csv", "type": "blob"},
                {"path": "README.md", "type": "blob"},
                {"path": "01-22-2020.csv", "type": "blob"},
                {"path": "archive", "type": "tree"},
            ],
        }
    )

    assert list_remote_snapshots(client, SOURCE) == ["01-22-2020.csv", "03-10-2020.csv"]


@pytest.mark.integration
def test_list_remote_snapshots_rejects_truncated_tree():
    client = FakeClient(listing={"truncated": True, "tree": [{"path": "01-22-2020.csv", "type": "blob"}]})

    with pytest.raises(IngestionError, match="Truncated"):
        list_remote_snapshots(client, SOURCE)


@pytest.mark.integration
def test_list_remote_snapshots_rejects_capped_contents_listing():
    start = date(2020, 1, 22)
    listing = [
        {"name": f"{start + timedelta(days=offset):%m-%d-%Y}.csv", "type": "file"}
        for offset in range(1000)
    ]
    client = FakeClient(listing=listing)

    with pytest.raises(IngestionError, match="1000"):
        list_remote_snapshots(client, SOURCE)
    assert len(list_remote_snapshots(FakeClient(listing=listing[:999]), SOURCE)) == 999
