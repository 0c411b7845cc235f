"""Comparative line charts over bucketed aggregates."""

from __future__ import annotations

from collections import defaultdict
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.dates as mdates  # noqa: E402
import matplotlib.pyplot as plt  # noqa: E402

from casepanel.common.constants import METRIC_FIELDS  # noqa: E402
from casepanel.common.fs import ensure_dir  # noqa: E402
from casepanel.common.models import AggregateBucketRow  # noqa: E402

FIGSIZE = (12, 6)
DPI = 120


def _slug(text: str) -> str:
    return "_".join(text.lower().split())


def render_bucket_charts(rows: list[AggregateBucketRow], out_dir: Path, title_prefix: str) -> list[Path]:
    if not rows:
        return []

    series: dict[str, list[AggregateBucketRow]] = defaultdict(list)
    for row in sorted(rows, key=lambda r: (r.bucket_label, r.report_date)):
        series[row.bucket_label].append(row)

    ensure_dir(out_dir)
    written: list[Path] = []
    for metric in METRIC_FIELDS:
        fig, ax = plt.subplots(figsize=FIGSIZE)
        try:
            for label, points in series.items():
                ax.plot(
                    [point.report_date for point in points],
                    [getattr(point, metric) for point in points],
                    marker="o",
                    markersize=3,
                    linewidth=1.5,
                    label=label,
                )
            ax.set_title(f"{title_prefix}: {metric}")
            ax.set_ylabel(metric)
            ax.xaxis.set_major_formatter(mdates.DateFormatter("%Y-%m-%d"))
            ax.legend(loc="upper left")
            ax.grid(True, alpha=0.3)
            fig.autofmt_xdate()
            fig.tight_layout()

            path = out_dir / f"{_slug(title_prefix)}_{metric}.png"
            fig.savefig(path, dpi=DPI)
            written.append(path)
        finally:
            plt.close(fig)
    return written
