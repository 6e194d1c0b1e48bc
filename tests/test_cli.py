"""Tests for the ncs-alerts command line."""

from __future__ import annotations

import functools

import httpx
import pytest
import yaml
from click.testing import CliRunner

from fixtures.api_payloads import V4_ALERT, routed_transport
from ncs_alerts import cli, pipeline
from ncs_alerts.config import PASSWORD_ENV, USERNAME_ENV


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv(USERNAME_ENV, raising=False)
    monkeypatch.delenv(PASSWORD_ENV, raising=False)


@pytest.fixture
def mocked_pipeline(monkeypatch):
    transport = routed_transport(
        {
            "pc1": lambda request: httpx.Response(200, json={"data": [V4_ALERT], "metadata": {"totalCount": 1}}),
            "pc2": lambda request: httpx.Response(401),
        }
    )
    monkeypatch.setattr(cli, "run_pipeline", functools.partial(pipeline.run_pipeline, transport=transport))


class TestRunCommand:
    def test_run_publishes_report(self, runner, tmp_path, mocked_pipeline):
        result = runner.invoke(
            cli.main,
            ["run", "-t", "pc1", "-t", "pc2", "-o", str(tmp_path), "-u", "admin", "-p", "secret"],
        )
        assert result.exit_code == 0, result.output
        assert "Alerts: 1 critical, 0 warning, 0 info, 0 other across 2 group(s)" in result.output
        assert "Failed: pc2" in result.output
        assert "Report: " in result.output
        assert (tmp_path / "index.html").is_file()
        runs = [p for p in tmp_path.iterdir() if p.is_dir()]
        assert len(runs) == 1
        assert (runs[0] / "alert_report.html").is_file()

    def test_credentials_from_environment(self, runner, tmp_path, mocked_pipeline, monkeypatch):
        monkeypatch.setenv(USERNAME_ENV, "admin")
        monkeypatch.setenv(PASSWORD_ENV, "secret")
        result = runner.invoke(cli.main, ["run", "-t", "pc1", "-o", str(tmp_path)])
        assert result.exit_code == 0, result.output

    def test_config_file_targets(self, runner, tmp_path, mocked_pipeline):
        cfg = tmp_path / "config.yaml"
        cfg.write_text(
            yaml.safe_dump({"targets": ["pc1"], "output_root": str(tmp_path / "out"), "artifact_prefix": "nightly"}),
            encoding="utf-8",
        )
        result = runner.invoke(cli.main, ["run", "-c", str(cfg), "-u", "admin", "-p", "secret"])
        assert result.exit_code == 0, result.output
        runs = [p.name for p in (tmp_path / "out").iterdir() if p.is_dir()]
        assert len(runs) == 1
        assert runs[0].startswith("nightly_")

    def test_no_targets_is_usage_error(self, runner, tmp_path):
        result = runner.invoke(cli.main, ["run", "-o", str(tmp_path), "-u", "admin", "-p", "secret"])
        assert result.exit_code != 0
        assert "No targets configured" in result.output

    def test_missing_credentials(self, runner, tmp_path):
        result = runner.invoke(cli.main, ["run", "-t", "pc1", "-o", str(tmp_path)])
        assert result.exit_code != 0
        assert "No credential supplied" in result.output

    def test_invalid_config_file(self, runner, tmp_path):
        cfg = tmp_path / "config.yaml"
        cfg.write_text("grouping: datacenter\n", encoding="utf-8")
        result = runner.invoke(cli.main, ["run", "-c", str(cfg), "-u", "a", "-p", "b"])
        assert result.exit_code != 0
        assert "Invalid configuration" in result.output


class TestIndexCommand:
    def test_rebuilds_index(self, runner, tmp_path):
        run_dir = tmp_path / "alerts_2026_10_01__08_00_00"
        run_dir.mkdir()
        (run_dir / "alert_report.html").write_text("<html></html>", encoding="utf-8")

        result = runner.invoke(cli.main, ["index", "-o", str(tmp_path)])

        assert result.exit_code == 0, result.output
        assert "Index: " in result.output
        index = (tmp_path / "index.html").read_text(encoding="utf-8")
        assert "alerts_2026_10_01__08_00_00/alert_report.html" in index

    def test_missing_output_root(self, runner, tmp_path):
        result = runner.invoke(cli.main, ["index", "-o", str(tmp_path / "absent")])
        assert result.exit_code != 0
        assert "Output root not found" in result.output


class TestParseTableCommand:
    def test_prints_normalized_alerts(self, runner, tmp_path):
        table = tmp_path / "alerts.txt"
        table.write_text(
            "| Severity  | Title        | Cluster |\n| kCritical | Disk offline | c1      |\n",
            encoding="utf-8",
        )
        result = runner.invoke(cli.main, ["parse-table", str(table), "-e", "cvm-1"])

        assert result.exit_code == 0, result.output
        alerts = yaml.safe_load(result.output)
        assert len(alerts) == 1
        assert alerts[0]["severity"] == "CRITICAL"
        assert alerts[0]["endpoint"] == "cvm-1"
        assert alerts[0]["cluster_name"] == "c1"
        assert "raw" not in alerts[0]


def test_show_config_prints_defaults(runner):
    result = runner.invoke(cli.main, ["show-config"])
    assert result.exit_code == 0, result.output
    data = yaml.safe_load(result.output)
    assert data["grouping"] == "endpoint"
    assert data["api_variants"][0]["name"] == "v4.0"


def test_verbose_flag_accepted(runner):
    result = runner.invoke(cli.main, ["-v", "show-config"])
    assert result.exit_code == 0
