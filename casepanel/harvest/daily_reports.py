"""Daily report retrieval and loading.

Every snapshot must be present before the build stage runs: gap filling cannot
tell "no report that day" apart from "file never retrieved", so any failed
download fails the whole fetch.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from casepanel.common.constants import MANIFEST_FILENAME
from casepanel.common.errors import IngestionError
from casepanel.common.fs import read_json, read_text, write_json, write_text
from casepanel.common.http import HttpClient, HttpRequestError
from casepanel.common.time_utils import snapshot_date

CONTENTS_LISTING_CAP = 1000


def sort_snapshot_names(names) -> list[str]:
    """Order snapshot filenames by the date they encode, skipping anything else."""
    dated = [(snapshot_date(name), name) for name in names]
    return [name for day, name in sorted(item for item in dated if item[0] is not None)]


def _tree_names(payload: dict, url: str) -> list[str]:
    if payload.get("truncated"):
        raise IngestionError(f"Truncated tree listing from {url}")
    return [entry.get("path", "") for entry in payload.get("tree", []) if entry.get("type") == "blob"]


def _contents_names(payload: list, url: str) -> list[str]:
    # The contents API silently stops at this many entries.
    if len(payload) >= CONTENTS_LISTING_CAP:
        raise IngestionError(f"Contents listing from {url} hit the {CONTENTS_LISTING_CAP} entry cap")
    return [entry.get("name", "") for entry in payload if entry.get("type", "file") == "file"]


def list_remote_snapshots(client: HttpClient, source_config: dict) -> list[str]:
    """List snapshot names from a git trees or contents API response."""
    url = source_config["listing_url"]
    payload = client.get_json(url)
    if isinstance(payload, dict) and "tree" in payload:
        names = _tree_names(payload, url)
    elif isinstance(payload, list):
        names = _contents_names(payload, url)
    else:
        raise IngestionError(f"Unexpected listing payload from {url}")
    return sort_snapshot_names(names)


def _fetch_one(client: HttpClient, base_url: str, name: str) -> str:
    return client.get_text(f"{base_url.rstrip('/')}/{name}")


def fetch_snapshots(
    client: HttpClient,
    names: list[str],
    source_config: dict,
    raw_dir: Path,
    *,
    max_workers: int = 8,
) -> dict:
    base_url = source_config["raw_base_url"]
    texts: dict[str, str] = {}
    failures: dict[str, str] = {}

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {name: pool.submit(_fetch_one, client, base_url, name) for name in names}
        for name, future in futures.items():
            try:
                texts[name] = future.result()
            except HttpRequestError as exc:
                failures[name] = str(exc)

    if failures:
        failed = ", ".join(sorted(failures))
        raise IngestionError(f"Failed to retrieve {len(failures)} snapshot(s): {failed}")

    for name in names:
        write_text(raw_dir / name, texts[name])
    manifest = {"snapshots": list(names)}
    write_json(raw_dir / MANIFEST_FILENAME, manifest)
    return {"snapshots": len(names), "failed": 0}


def load_local_snapshots(raw_dir: Path) -> list[tuple[str, str]]:
    """Read every snapshot for the build stage in reporting-day order."""
    if not raw_dir.exists():
        return []

    manifest_path = raw_dir / MANIFEST_FILENAME
    if manifest_path.exists():
        names = sort_snapshot_names(read_json(manifest_path).get("snapshots", []))
        missing = [name for name in names if not (raw_dir / name).exists()]
        if missing:
            raise IngestionError(f"Snapshots listed in manifest are missing: {', '.join(missing)}")
    else:
        names = sort_snapshot_names(path.name for path in raw_dir.glob("*.csv"))

    return [(name, read_text(raw_dir / name)) for name in names]
