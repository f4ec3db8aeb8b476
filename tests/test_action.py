"""Tests for GitHub Action entry point."""

from __future__ import annotations

import json
import os
from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import pytest

from org_metrics.action import _apply_inputs, _set_output, main, run_action
from org_metrics.config import OrgMetricsConfig, ThresholdConfig, TimeWindow
from org_metrics.exceptions import ConfigError, RateLimitExhaustedError
from org_metrics.pipeline import OrgReport, analyze_snapshots
from tests.conftest import D0


@pytest.fixture
def org_event_file(tmp_path):
    """Create a temporary workflow_dispatch event file."""
    event = {"organization": {"login": "event-org"}, "repository": {"full_name": "acme/metrics"}}
    event_file = tmp_path / "event.json"
    event_file.write_text(json.dumps(event))
    return str(event_file)


@pytest.fixture
def mock_env(org_event_file, tmp_path):
    """Set up environment variables for action."""
    output_file = tmp_path / "output.txt"
    output_file.touch()
    return {
        "GITHUB_TOKEN": "ghp_testtoken123",
        "GITHUB_EVENT_PATH": org_event_file,
        "GITHUB_REPOSITORY": "acme/metrics",
        "GITHUB_OUTPUT": str(output_file),
        "INPUT_ORG": "acme",
        "INPUT_DAYS": "30",
        "INPUT_STALE": "10",
        "INPUT_OLD": "90",
        "INPUT_DIFF-REPORT": "true",
    }


def _make_report(snapshot) -> OrgReport:
    window = TimeWindow.last_days(30, D0)
    thresholds = ThresholdConfig(stale_days=10, old_days=90)
    rows, total = analyze_snapshots([snapshot], window, thresholds, D0)
    return OrgReport(org="acme", rows=rows, total=total, window=window, thresholds=thresholds)


def _mock_client() -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.get_file_sha = AsyncMock(return_value=None)
    mock_client.put_file_contents = AsyncMock(return_value={})
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


def _read_outputs(path: str) -> dict[str, str]:
    with open(path) as f:
        return dict(line.strip().split("=", 1) for line in f if line.strip())


class TestRunAction:
    @pytest.mark.asyncio
    async def test_publishes_csv(self, mock_env, sample_snapshot):
        mock_client = _mock_client()

        with patch.dict(os.environ, mock_env, clear=False), \
             patch("org_metrics.action.GitHubClient", return_value=mock_client), \
             patch("org_metrics.action.generate_report", new_callable=AsyncMock) as mock_generate:
            mock_generate.return_value = _make_report(sample_snapshot)
            await run_action()

        config = mock_generate.await_args.kwargs["config"]
        assert config.org == "acme"
        assert config.thresholds.stale_days == 10
        assert config.thresholds.old_days == 90

        mock_client.put_file_contents.assert_awaited_once()
        args = mock_client.put_file_contents.await_args
        assert args.args[:3] == ("acme", "metrics", "reports/acme-repo-metrics-report-30-days.csv")
        assert args.args[3].startswith("Repo Name,")
        assert args.kwargs["message"].endswith("Organization metrics report")

        outputs = _read_outputs(mock_env["GITHUB_OUTPUT"])
        assert outputs["csv-path"] == "reports/acme-repo-metrics-report-30-days.csv"
        assert outputs["repositories"] == "1"
        assert "json-path" not in outputs

    @pytest.mark.asyncio
    async def test_publishes_json_when_requested(self, mock_env, sample_snapshot):
        mock_env["INPUT_JSON"] = "true"
        mock_client = _mock_client()

        with patch.dict(os.environ, mock_env, clear=False), \
             patch("org_metrics.action.GitHubClient", return_value=mock_client), \
             patch("org_metrics.action.generate_report", new_callable=AsyncMock) as mock_generate:
            mock_generate.return_value = _make_report(sample_snapshot)
            await run_action()

        assert mock_client.put_file_contents.await_count == 2
        json_call = mock_client.put_file_contents.await_args_list[1]
        assert json.loads(json_call.args[3])[-1]["repo"] == "TOTAL"
        outputs = _read_outputs(mock_env["GITHUB_OUTPUT"])
        assert outputs["json-path"].endswith(".json")

    @pytest.mark.asyncio
    async def test_org_falls_back_to_event(self, mock_env, sample_snapshot):
        del mock_env["INPUT_ORG"]
        mock_client = _mock_client()

        with patch.dict(os.environ, mock_env, clear=False), \
             patch.dict(os.environ, {"INPUT_ORG": "", "ORG_METRICS_ORG": ""}), \
             patch("org_metrics.action.GitHubClient", return_value=mock_client), \
             patch("org_metrics.action.generate_report", new_callable=AsyncMock) as mock_generate:
            mock_generate.return_value = _make_report(sample_snapshot)
            await run_action()

        assert mock_generate.await_args.kwargs["config"].org == "event-org"

    @pytest.mark.asyncio
    async def test_missing_token(self, mock_env):
        mock_env["GITHUB_TOKEN"] = ""
        with patch.dict(os.environ, mock_env, clear=False), \
             patch.dict(os.environ, {"INPUT_TOKEN": ""}), \
             pytest.raises(SystemExit) as exc_info:
            await run_action()
        assert exc_info.value.code == 1

    @pytest.mark.asyncio
    async def test_invalid_repository(self, mock_env):
        mock_env["GITHUB_REPOSITORY"] = "not-a-repo"
        with patch.dict(os.environ, mock_env, clear=False), \
             pytest.raises(SystemExit) as exc_info:
            await run_action()
        assert exc_info.value.code == 1


class TestApplyInputs:
    def test_window_and_threshold_inputs_are_independent(self):
        env = {
            "INPUT_FROMDATE": "2024-01-01",
            "INPUT_TODATE": "2024-02-01",
            "INPUT_STALE": "5",
            "INPUT_OLD": "60",
        }
        with patch.dict(os.environ, env):
            config = _apply_inputs(OrgMetricsConfig(), "acme")
        assert config.window.from_date == "2024-01-01"
        assert config.window.to_date == "2024-02-01"
        assert config.thresholds.stale_days == 5
        assert config.thresholds.old_days == 60

    def test_sort_inputs(self):
        with patch.dict(os.environ, {"INPUT_SORT": "stars", "INPUT_SORT-ORDER": "ASC"}):
            config = _apply_inputs(OrgMetricsConfig(), "acme")
        assert config.report.sort_column == "stars"
        assert config.report.sort_order == "asc"

    def test_non_numeric_threshold(self):
        with patch.dict(os.environ, {"INPUT_STALE": "soon"}), \
             pytest.raises(ConfigError, match="stale"):
            _apply_inputs(OrgMetricsConfig(), "acme")


class TestMain:
    def test_config_error_exits(self, mock_env, capsys):
        mock_env["INPUT_OLD"] = "ancient"
        with patch.dict(os.environ, mock_env, clear=False), \
             pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1
        assert "::error::Input 'old' must be a number" in capsys.readouterr().out

    def test_rate_limit_exits(self, mock_env, capsys):
        error = RateLimitExhaustedError(reset_at=datetime(2024, 1, 1, tzinfo=UTC))
        with patch.dict(os.environ, mock_env, clear=False), \
             patch("org_metrics.action.generate_report", new_callable=AsyncMock,
                   side_effect=error), \
             pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1
        assert "Rate limit exhausted" in capsys.readouterr().out


class TestSetOutput:
    def test_set_output(self, tmp_path):
        output_file = tmp_path / "output.txt"
        output_file.touch()
        with patch.dict(os.environ, {"GITHUB_OUTPUT": str(output_file)}):
            _set_output("csv-path", "reports/a.csv")
        assert output_file.read_text() == "csv-path=reports/a.csv\n"

    def test_set_output_no_file(self):
        with patch.dict(os.environ, {}, clear=True):
            _set_output("csv-path", "reports/a.csv")
