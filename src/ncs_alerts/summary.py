"""Grouping and severity summaries over fetched endpoint results."""

from __future__ import annotations

from typing import Literal

from .models import Alert, ClusterGroup, EndpointResult, SeverityCounts, TitleGroup
from .primitives import severity_rank, slugify

GroupingStrategy = Literal["endpoint", "cluster"]


def sort_by_severity(alerts: list[Alert]) -> list[Alert]:
    """Critical first, then Warning, Info, Other; ties keep their original order."""
    return sorted(alerts, key=lambda a: severity_rank(a.severity))


def group_by_title(alerts: list[Alert]) -> list[TitleGroup]:
    """Group alerts by exact title, worst severity first, then title."""
    buckets: dict[str, list[Alert]] = {}
    for alert in sort_by_severity(alerts):
        buckets.setdefault(alert.title, []).append(alert)

    groups = [
        TitleGroup(title=title, severity=members[0].severity, alerts=members) for title, members in buckets.items()
    ]
    groups.sort(key=lambda g: (severity_rank(g.severity), g.title.lower(), g.title))
    return groups


def dedupe_alerts(alerts: list[Alert]) -> list[Alert]:
    """Drop repeats of the same alert id (first seen wins); id-less alerts are kept."""
    seen: set[str] = set()
    out: list[Alert] = []
    for alert in alerts:
        if alert.id:
            if alert.id in seen:
                continue
            seen.add(alert.id)
        out.append(alert)
    return out


def build_group(key: str, alerts: list[Alert], endpoints: list[str], error: str | None = None) -> ClusterGroup:
    ordered = sort_by_severity(alerts)
    return ClusterGroup(
        key=key,
        anchor=slugify(key),
        endpoints=endpoints,
        error=error,
        alerts=ordered,
        counts=SeverityCounts.tally(ordered),
        title_groups=group_by_title(ordered),
    )


def _group_sort_key(group: ClusterGroup) -> tuple[str, str]:
    return group.key.lower(), group.key


def _assign_unique_anchors(groups: list[ClusterGroup]) -> list[ClusterGroup]:
    used: dict[str, int] = {}
    for group in groups:
        n = used.get(group.anchor, 0)
        used[group.anchor] = n + 1
        if n:
            group.anchor = f"{group.anchor}-{n + 1}"
    return groups


def _by_endpoint(results: list[EndpointResult]) -> list[ClusterGroup]:
    return [build_group(r.endpoint, r.alerts, [r.endpoint], r.error) for r in results]


def _by_cluster(results: list[EndpointResult]) -> list[ClusterGroup]:
    members: dict[str, list[Alert]] = {}
    sources: dict[str, list[str]] = {}
    groups: list[ClusterGroup] = []

    for result in results:
        # Failed or empty targets keep their own row so no target disappears.
        if result.failed or not result.alerts:
            groups.append(build_group(result.endpoint, [], [result.endpoint], result.error))
            continue
        for alert in result.alerts:
            key = alert.cluster_name or alert.endpoint
            members.setdefault(key, []).append(alert)
            if result.endpoint not in sources.setdefault(key, []):
                sources[key].append(result.endpoint)

    for key, alerts in members.items():
        groups.append(build_group(key, dedupe_alerts(alerts), sources[key]))
    return groups


def summarize(results: list[EndpointResult], strategy: GroupingStrategy = "endpoint") -> list[ClusterGroup]:
    """
    Group endpoint results for presentation, sorted alphabetically by key.

    ``endpoint`` yields exactly one group per target. ``cluster`` groups
    alerts by resolved cluster name (falling back to the endpoint) and
    deduplicates alerts reported by more than one management plane.
    """
    if strategy == "cluster":
        groups = _by_cluster(results)
    elif strategy == "endpoint":
        groups = _by_endpoint(results)
    else:
        raise ValueError(f"Unknown grouping strategy: {strategy!r}")
    groups.sort(key=_group_sort_key)
    return _assign_unique_anchors(groups)


def total_counts(groups: list[ClusterGroup]) -> SeverityCounts:
    totals = SeverityCounts()
    for group in groups:
        totals.critical += group.counts.critical
        totals.warning += group.counts.warning
        totals.info += group.counts.info
        totals.other += group.counts.other
    return totals
