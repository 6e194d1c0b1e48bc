"""Tests for the per-run HTML report, its view model and the CSV companion."""

from __future__ import annotations

import csv
import io
from datetime import datetime, timedelta, timezone

import pytest

from ncs_alerts.date_utils import AGE_MONTH, AGE_OLDER, AGE_UNDER_DAY, age_bucket
from ncs_alerts.models import Alert, EndpointResult
from ncs_alerts.rendering import render_alerts_csv, render_run_report
from ncs_alerts.summary import summarize
from ncs_alerts.view_models.run import build_run_view

GENERATED = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


def _alert(title, severity="WARNING", endpoint="pc1", created=None, **kw):
    return Alert(endpoint=endpoint, title=title, severity=severity, created_at=created, **kw)


@pytest.fixture
def groups():
    results = [
        EndpointResult(
            endpoint="pc1",
            alerts=[
                _alert("Disk offline", "CRITICAL", created=GENERATED - timedelta(hours=2), message="Disk 3 gone"),
                _alert("Fan slow", "WARNING", created=GENERATED - timedelta(days=3), entities=["node-a", "node-b"]),
                _alert("Fan slow", "WARNING", created=GENERATED - timedelta(days=45)),
            ],
        ),
        EndpointResult(endpoint="pc2"),
        EndpointResult(endpoint="pc3", error="v1 [resolved==false]: HTTP 503"),
    ]
    return summarize(results)


class TestAgeBucket:
    @pytest.mark.parametrize(
        ("age", "expected"),
        [
            (timedelta(0), AGE_UNDER_DAY),
            (timedelta(hours=23, minutes=59, seconds=59), AGE_UNDER_DAY),
            (timedelta(hours=24), AGE_MONTH),
            (timedelta(days=30), AGE_MONTH),
            (timedelta(days=30, seconds=1), AGE_OLDER),
            (timedelta(hours=-5), AGE_UNDER_DAY),
        ],
    )
    def test_boundaries(self, age, expected):
        assert age_bucket(GENERATED - age, GENERATED) == expected

    def test_missing_timestamp_has_no_bucket(self):
        assert age_bucket(None, GENERATED) is None


class TestRunView:
    def test_totals_and_status(self, groups):
        view = build_run_view(groups, GENERATED)
        assert view["totals"] == {"critical": 1, "warning": 2, "info": 0, "other": 0, "total": 3}
        assert view["failed_count"] == 1
        assert [g["status"]["label"] for g in view["groups"]] == ["Critical", "OK", "Error"]

    def test_age_is_relative_to_generation_time(self, groups):
        view = build_run_view(groups, GENERATED)
        ages = [a["age"] for a in view["groups"][0]["alerts"]]
        assert ages == [AGE_UNDER_DAY, AGE_MONTH, AGE_OLDER]

    def test_explicit_now_overrides_reference(self, groups):
        view = build_run_view(groups, GENERATED, now=GENERATED + timedelta(days=60))
        assert {a["age"] for a in view["groups"][0]["alerts"]} == {AGE_OLDER}

    def test_group_label_follows_strategy(self, groups):
        assert build_run_view(groups, GENERATED, grouping="cluster")["group_label"] == "Cluster"
        assert build_run_view(groups, GENERATED)["group_label"] == "Endpoint"


class TestRunReportHtml:
    def test_structure(self, groups):
        html = render_run_report(groups, GENERATED, report_id="20261019T120000Z", index_href="../index.html").decode()

        assert html.startswith("<!DOCTYPE html>")
        assert "Generated at 2026-10-19 12:00:00 UTC" in html
        assert 'href="../index.html"' in html
        for group in groups:
            assert f'id="{group.anchor}"' in html
            assert f'href="#{group.anchor}"' in html
        assert "No alerts found." in html
        assert "HTTP 503" in html
        assert html.count("<details") == 2
        assert "<details open>" in html

    def test_self_contained(self, groups):
        html = render_run_report(groups, GENERATED).decode()
        assert "<style>" in html
        assert "<script" not in html
        assert 'rel="stylesheet"' not in html

    def test_alert_text_is_escaped(self):
        groups = summarize(
            [EndpointResult(endpoint="pc1", alerts=[_alert("<script>alert(1)</script>", message="a & b <i>")])]
        )
        html = render_run_report(groups, GENERATED).decode()
        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
        assert "a &amp; b &lt;i&gt;" in html

    def test_error_message_is_escaped(self):
        groups = summarize([EndpointResult(endpoint="pc1", error="<b>bad gateway</b>")])
        html = render_run_report(groups, GENERATED).decode()
        assert "<b>bad gateway</b>" not in html
        assert "&lt;b&gt;bad gateway&lt;/b&gt;" in html

    def test_rendering_is_deterministic(self, groups):
        first = render_run_report(groups, GENERATED, report_id="r", run_stamp="s", index_href="../index.html")
        second = render_run_report(groups, GENERATED, report_id="r", run_stamp="s", index_href="../index.html")
        assert first == second

    def test_no_groups_still_renders(self):
        html = render_run_report([], GENERATED).decode()
        assert "Summary" in html
        assert "Total (0)" in html


class TestAlertsCsv:
    def test_rows(self, groups):
        text = render_alerts_csv(groups, GENERATED).decode()
        rows = list(csv.DictReader(io.StringIO(text)))

        assert list(rows[0].keys())[:4] == ["Group", "Endpoint", "Cluster", "Severity"]
        assert [r["Severity"] for r in rows] == ["Critical", "Warning", "Warning", "ERROR"]
        assert rows[1]["Entities"] == "node-a; node-b"
        assert rows[0]["Age"] == AGE_UNDER_DAY
        assert rows[3]["Group"] == "pc3"
        assert "HTTP 503" in rows[3]["Message"]

    def test_multiline_message_flattened(self):
        groups = summarize([EndpointResult(endpoint="pc1", alerts=[_alert("t", message="line one\nline two")])])
        text = render_alerts_csv(groups, GENERATED).decode()
        assert "line one line two" in text
