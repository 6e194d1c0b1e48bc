"""Render grouped alerts into the per-run HTML report and its CSV companion."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from ._report_context import render_template
from .csv_export import ALERT_CSV_HEADERS, render_csv
from .models import ClusterGroup
from .view_models.run import build_run_view

RUN_TEMPLATE = "alert_run_report.html.j2"


def render_run_report(
    groups: list[ClusterGroup],
    generated_at: datetime,
    *,
    now: datetime | None = None,
    grouping: str = "endpoint",
    report_id: str | None = None,
    run_stamp: str | None = None,
    index_href: str | None = None,
) -> bytes:
    """Render one self-contained HTML document; identical inputs give identical bytes."""
    view = build_run_view(
        groups,
        generated_at,
        now=now,
        grouping=grouping,
        report_id=report_id,
        run_stamp=run_stamp,
        index_href=index_href,
    )
    return render_template(RUN_TEMPLATE, run_view=view)


def alert_csv_rows(
    groups: list[ClusterGroup], generated_at: datetime, now: datetime | None = None
) -> list[dict[str, Any]]:
    view = build_run_view(groups, generated_at, now=now)
    rows: list[dict[str, Any]] = []
    for group in view["groups"]:
        if group["error"]:
            rows.append(
                {
                    "group": group["key"],
                    "endpoint": ", ".join(group["endpoints"]),
                    "severity": "ERROR",
                    "message": group["error"],
                }
            )
            continue
        for alert in group["alerts"]:
            rows.append({**alert, "group": group["key"], "severity": alert["badge"]["label"]})
    return rows


def render_alerts_csv(groups: list[ClusterGroup], generated_at: datetime, *, now: datetime | None = None) -> bytes:
    """One CSV row per alert; failed groups contribute a single ERROR row."""
    rows = alert_csv_rows(groups, generated_at, now=now)
    return render_csv(rows, ALERT_CSV_HEADERS).encode("utf-8")
