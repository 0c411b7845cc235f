"""Panel contract checks run before anything is exported."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta

from casepanel.common.constants import METRIC_FIELDS
from casepanel.common.errors import ContractError
from casepanel.common.models import PanelRow
from casepanel.pipeline.reconcile import DropRule


def check_panel_contract(panel: list[PanelRow], run_date: date, drop_rule: DropRule) -> dict:
    errors: list[str] = []
    dates_by_location: dict[str, list[date]] = defaultdict(list)
    coarse_locations: set[str] = set()
    seen: set[tuple[str, date]] = set()

    for row in panel:
        if row.key in seen:
            errors.append(f"DUPLICATE_KEY:{row.location_key}:{row.report_date.isoformat()}")
        seen.add(row.key)
        for metric in METRIC_FIELDS:
            value = getattr(row, metric)
            if not isinstance(value, int) or value < 0:
                errors.append(f"INVALID_METRIC:{row.location_key}:{metric}")
        dates_by_location[row.location_key].append(row.report_date)
        if drop_rule.is_coarse(row.subregion, row.region):
            coarse_locations.add(row.location_key)

    for key, dates in dates_by_location.items():
        ordered = sorted(set(dates))
        gaps = any(later - earlier != timedelta(days=1) for earlier, later in zip(ordered, ordered[1:]))
        if gaps:
            errors.append(f"DATE_GAP:{key}")
        # Coarse rows stop at the cutover, everything else runs through the run date.
        expected_end = min(run_date, drop_rule.cutover) if key in coarse_locations else run_date
        if ordered[-1] < expected_end:
            errors.append(f"SHORT_RANGE:{key}")

    if errors:
        raise ContractError(";".join(errors[:20]))

    return {"locations": len(dates_by_location), "rows": len(panel)}
