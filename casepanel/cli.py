"""CLI entrypoint for the outbreak case panel pipeline."""

from __future__ import annotations

import argparse
import csv
import sys
from datetime import date
from pathlib import Path

from casepanel.common.config_loader import ConfigBundle, load_config
from casepanel.common.constants import EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS, RAW_SNAPSHOT_DIR, STAGES
from casepanel.common.errors import PipelineError
from casepanel.common.http import HttpClient
from casepanel.common.ids import generate_run_id
from casepanel.common.logging import build_logger, close_logger, log_event
from casepanel.common.models import AggregateBucketRow
from casepanel.common.time_utils import parse_run_date
from casepanel.harvest.daily_reports import fetch_snapshots, list_remote_snapshots
from casepanel.pipeline.build import run_build


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=[*STAGES, "all"])
    parser.add_argument("--run-date", default=None)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    parser.add_argument("--max-workers", type=int, default=None)
    parser.add_argument("--strict", action="store_true")
    return parser.parse_args(argv)


def _read_aggregate_csv(path: Path) -> list[AggregateBucketRow]:
    with path.open("r", encoding="utf-8", newline="") as f:
        return [
            AggregateBucketRow(
                bucket_label=row["bucket_label"],
                report_date=date.fromisoformat(row["report_date"]),
                confirmed=int(row["confirmed"]),
                deaths=int(row["deaths"]),
                recovered=int(row["recovered"]),
            )
            for row in csv.DictReader(f)
        ]


def run_plot(bundle: ConfigBundle, data_dir: Path) -> list[Path]:
    from casepanel.render.charts import render_bucket_charts

    written: list[Path] = []
    chart_dir = data_dir / "out" / "charts"
    for name, title in (("detailed_filename", "Epicenter vs rest"), ("coarse_filename", "Country vs rest")):
        path = data_dir / "out" / bundle.output[name]
        if not path.exists():
            continue
        written.extend(render_bucket_charts(_read_aggregate_csv(path), chart_dir, title))
    return written


def execute_stage(stage: str, bundle: ConfigBundle, args: argparse.Namespace, data_dir: Path, run_id: str, run_date: str, logger):
    if stage == "fetch":
        max_workers = args.max_workers or bundle.source["max_workers"]
        with HttpClient() as client:
            names = list_remote_snapshots(client, bundle.source)
            return fetch_snapshots(client, names, bundle.source, data_dir / RAW_SNAPSHOT_DIR, max_workers=max_workers)
    if stage == "build":
        result = run_build(bundle, data_dir, run_id, run_date, logger)
        return result.stats["reconcile"]
    if stage == "plot":
        return {"charts": len(run_plot(bundle, data_dir))}
    raise ValueError(f"Unknown stage: {stage}")


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    run_date = parse_run_date(args.run_date)
    config_dir = Path(args.config_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
    data_dir = Path(args.data_dir)

    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)
    try:
        bundle = load_config(config_dir, overlay_config_dir=overlay_config_dir)
        stages = STAGES if args.command == "all" else (args.command,)

        had_partial_failure = False
        for stage in stages:
            log_event(logger, "stage start", run_id=run_id, stage=stage, event="STAGE_START", status="ok")
            try:
                execute_stage(stage, bundle, args, data_dir, run_id, run_date, logger)
            except PipelineError as exc:
                log_event(
                    logger,
                    f"stage {stage} failed: {exc}",
                    run_id=run_id,
                    stage=stage,
                    event="STAGE_FAIL",
                    status="error",
                    error_code=exc.error_code,
                )
                # Later stages would run on incomplete inputs.
                return EXIT_HARD_FAIL
            except Exception as exc:
                had_partial_failure = True
                log_event(
                    logger,
                    f"unexpected failure in stage {stage}: {exc}",
                    run_id=run_id,
                    stage=stage,
                    event="STAGE_FAIL",
                    status="error",
                    error_code="UNEXPECTED_ERROR",
                )
                if args.strict or stage != "plot":
                    return EXIT_HARD_FAIL
                continue
            log_event(logger, "stage end", run_id=run_id, stage=stage, event="STAGE_END", status="ok")

        if had_partial_failure:
            return EXIT_PARTIAL
        return EXIT_SUCCESS
    finally:
        close_logger(logger)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError:
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
