"""Per-run alert report view-model builder."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from ..date_utils import AGE_CSS_CLASSES, age_bucket, format_timestamp
from ..models import Alert, ClusterGroup
from ..summary import total_counts
from .common import build_meta, counts_dict, severity_badge_meta


def _alert_row(alert: Alert, now: datetime) -> dict[str, Any]:
    age = age_bucket(alert.created_at, now)
    return {
        "id": alert.id or "",
        "endpoint": alert.endpoint,
        "cluster": alert.cluster_name or "",
        "severity": alert.severity,
        "badge": severity_badge_meta(alert.severity),
        "title": alert.title,
        "message": alert.message,
        "category": alert.category or "",
        "entities": list(alert.entities),
        "created": format_timestamp(alert.created_at),
        "last_updated": format_timestamp(alert.last_updated_at),
        "age": age,
        "age_class": AGE_CSS_CLASSES.get(age, "") if age else "",
    }


def _status(group: ClusterGroup) -> dict[str, str]:
    if group.failed:
        return {"label": "Error", "css_class": "status-fail"}
    if group.counts.critical:
        return {"label": "Critical", "css_class": "status-fail"}
    if group.counts.warning:
        return {"label": "Warning", "css_class": "status-warn"}
    return {"label": "OK", "css_class": "status-ok"}


def build_group_view(group: ClusterGroup, now: datetime) -> dict[str, Any]:
    return {
        "key": group.key,
        "anchor": group.anchor,
        "endpoints": list(group.endpoints),
        "error": group.error,
        "status": _status(group),
        "counts": counts_dict(group.counts),
        "is_empty": group.counts.is_empty,
        "alerts": [_alert_row(a, now) for a in group.alerts],
        "title_groups": [
            {
                "title": tg.title,
                "count": tg.count,
                "badge": severity_badge_meta(tg.severity),
                "alerts": [_alert_row(a, now) for a in tg.alerts],
            }
            for tg in group.title_groups
        ],
    }


def build_run_view(
    groups: list[ClusterGroup],
    generated_at: datetime,
    *,
    now: datetime | None = None,
    grouping: str = "endpoint",
    report_id: str | None = None,
    run_stamp: str | None = None,
    index_href: str | None = None,
) -> dict[str, Any]:
    """Build the template context for one run's alert report.

    *now* is the reference point for alert age buckets; it defaults to
    *generated_at* so a rendered artifact depends only on its inputs.
    """
    reference = now or generated_at
    group_views = [build_group_view(g, reference) for g in groups]
    return {
        "meta": build_meta(format_timestamp(generated_at), report_id, run_stamp),
        "grouping": grouping,
        "group_label": "Cluster" if grouping == "cluster" else "Endpoint",
        "totals": counts_dict(total_counts(groups)),
        "failed_count": sum(1 for g in groups if g.failed),
        "groups": group_views,
        "nav": {"index": index_href},
    }
