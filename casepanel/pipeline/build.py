"""Build stage: raw snapshots to panel, bucket views and run summary."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

from casepanel.common.config_loader import ConfigBundle
from casepanel.common.constants import RAW_SNAPSHOT_DIR
from casepanel.common.logging import log_event, log_warning
from casepanel.common.models import AggregateBucketRow, PanelRow
from casepanel.harvest.daily_reports import load_local_snapshots
from casepanel.pipeline.aggregate import aggregate_panel, bucket_functions
from casepanel.pipeline.export import write_aggregate_csv, write_panel_csv
from casepanel.pipeline.ingest import ingest_snapshots
from casepanel.pipeline.normalise import normalise_records
from casepanel.pipeline.reconcile import reconcile
from casepanel.pipeline.reports import write_run_summary
from casepanel.pipeline.validate import check_panel_contract


@dataclass
class BuildResult:
    panel: list[PanelRow]
    aggregates: dict[str, list[AggregateBucketRow]]
    stats: dict[str, dict] = field(default_factory=dict)
    outputs: dict[str, Path] = field(default_factory=dict)


def build_panel(
    snapshots: list[tuple[str, str]],
    bundle: ConfigBundle,
    run_date: date,
) -> BuildResult:
    """Run ingestion through aggregation entirely in memory."""
    raw_records, ingest_stats = ingest_snapshots(snapshots)
    normalised, normalise_stats = normalise_records(raw_records, bundle.normalisation)
    panel, reconcile_stats = reconcile(normalised, run_date=run_date, drop_rule=bundle.drop_rule)
    contract_stats = check_panel_contract(panel, run_date, bundle.drop_rule)

    aggregates = {
        name: aggregate_panel(panel, bucket_fn)
        for name, bucket_fn in bucket_functions(bundle.buckets).items()
    }
    return BuildResult(
        panel=panel,
        aggregates=aggregates,
        stats={
            "ingest": ingest_stats,
            "normalise": normalise_stats,
            "reconcile": reconcile_stats,
            "contract": contract_stats,
        },
    )


def run_build(
    bundle: ConfigBundle,
    data_dir: Path,
    run_id: str,
    run_date: str,
    logger: logging.Logger,
) -> BuildResult:
    snapshots = load_local_snapshots(data_dir / RAW_SNAPSHOT_DIR)
    result = build_panel(snapshots, bundle, date.fromisoformat(run_date))

    for step in ("ingest", "normalise", "reconcile"):
        step_stats = result.stats[step]
        log_event(
            logger,
            f"{step} complete",
            run_id=run_id,
            stage="build",
            event=f"{step.upper()}_DONE",
            status="ok",
            rows_in=step_stats.get("records_in", step_stats.get("rows")),
            rows_out=step_stats.get("records_out", step_stats.get("rows_out", step_stats.get("rows"))),
        )

    dropped = result.stats["normalise"]["dropped_unparseable_timestamp"]
    if dropped:
        log_warning(
            logger,
            f"dropped {dropped} row(s) with unparseable timestamps",
            run_id=run_id,
            stage="build",
            event="ROWS_DROPPED",
            status="warning",
            rows_in=result.stats["normalise"]["records_in"],
            rows_out=result.stats["normalise"]["records_out"],
        )

    result.outputs["panel"] = write_panel_csv(bundle.output, data_dir, result.panel)
    result.outputs["detailed"] = write_aggregate_csv(
        data_dir / "out" / bundle.output["detailed_filename"], result.aggregates["detailed"]
    )
    result.outputs["coarse"] = write_aggregate_csv(
        data_dir / "out" / bundle.output["coarse_filename"], result.aggregates["coarse"]
    )
    result.outputs["summary"] = write_run_summary(data_dir, run_id=run_id, run_date=run_date, stage_stats=result.stats)
    return result
