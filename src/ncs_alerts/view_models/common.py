"""Shared helpers for template-facing view-model builders."""

from typing import Any

from ..models import SeverityCounts
from ..primitives import SEVERITY_LABELS

_BADGE_CLASSES = {
    "CRITICAL": "sev-critical",
    "WARNING": "sev-warning",
    "INFO": "sev-info",
    "OTHER": "sev-other",
}


def severity_badge_meta(severity: Any) -> dict[str, str]:
    """
    Normalize a canonical severity into badge presentation metadata.
    Returns a dict with:
      - css_class: one of sev-critical/sev-warning/sev-info/sev-other
      - label: display text (Critical, Warning, Info or Other)
    """
    raw = str(severity or "OTHER").strip().upper()
    if raw not in _BADGE_CLASSES:
        raw = "OTHER"
    return {"css_class": _BADGE_CLASSES[raw], "label": SEVERITY_LABELS[raw]}


def counts_dict(counts: SeverityCounts) -> dict[str, int]:
    return {
        "critical": counts.critical,
        "warning": counts.warning,
        "info": counts.info,
        "other": counts.other,
        "total": counts.total,
    }


def build_meta(
    report_date: str | None = None,
    report_id: str | None = None,
    run_stamp: str | None = None,
) -> dict[str, str | None]:
    """Standard meta block shared across all view-model builders."""
    return {
        "report_date": report_date,
        "report_id": report_id,
        "run_stamp": run_stamp,
    }
