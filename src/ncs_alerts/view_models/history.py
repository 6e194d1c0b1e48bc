"""Historical index view-model builder."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from ..date_utils import format_timestamp
from ..models import IndexEntry, IndexMonth


def group_by_month(runs: list[IndexEntry]) -> list[IndexMonth]:
    """Partition runs by calendar month; months and runs both most recent first."""
    months: dict[str, IndexMonth] = {}
    for run in sorted(runs, key=lambda r: (r.generated_at, r.name), reverse=True):
        key = run.generated_at.strftime("%Y-%m")
        if key not in months:
            months[key] = IndexMonth(key=key, label=run.generated_at.strftime("%B %Y"), runs=[])
        months[key].runs.append(run)
    return sorted(months.values(), key=lambda m: m.key, reverse=True)


def build_index_view(runs: list[IndexEntry], generated_at: datetime) -> dict[str, Any]:
    months = group_by_month(runs)
    return {
        "last_updated": format_timestamp(generated_at),
        "run_count": len(runs),
        "latest": months[0].runs[0].href if months else None,
        "months": [
            {
                "key": m.key,
                "label": m.label,
                "anchor": f"month-{m.key}",
                "runs": [{"name": r.name, "href": r.href, "when": format_timestamp(r.generated_at)} for r in m.runs],
            }
            for m in months
        ],
    }
