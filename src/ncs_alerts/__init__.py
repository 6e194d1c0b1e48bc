"""Unresolved-alert aggregation and reporting for Prism cluster management endpoints."""

from ncs_alerts.aggregation import aggregate
from ncs_alerts.client import fetch_alerts
from ncs_alerts.history import rebuild_index
from ncs_alerts.normalization import normalize
from ncs_alerts.pipeline import run_pipeline
from ncs_alerts.rendering import render_run_report
from ncs_alerts.summary import group_by_title, summarize

__version__ = "0.3.0"

__all__ = [
    "aggregate",
    "fetch_alerts",
    "group_by_title",
    "normalize",
    "rebuild_index",
    "render_run_report",
    "run_pipeline",
    "summarize",
]
