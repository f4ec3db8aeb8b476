"""Tests for report sinks."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import AsyncMock

from org_metrics.publisher import publish_report, report_path, write_report


class TestReportPath:
    def test_stable_name_for_diff_reports(self) -> None:
        assert report_path("acme", "30-days", "csv", diff_report=True) == (
            "reports/acme-repo-metrics-report-30-days.csv"
        )

    def test_timestamped_name(self) -> None:
        now = datetime(2024, 3, 5, 6, 7, 8, tzinfo=UTC)
        path = report_path("acme", "2024-01-01-to-2024-02-01", "json", now=now)
        assert path == "reports/acme-2024-03-05T06:07:08Z-2024-01-01-to-2024-02-01.json"

    def test_custom_directory(self) -> None:
        path = report_path("acme", "7-days", "csv", diff_report=True, report_dir="out")
        assert path.startswith("out/")


class TestPublishReport:
    async def test_updates_existing_file(self) -> None:
        client = AsyncMock()
        client.get_file_sha.return_value = "abc"

        await publish_report(
            client, "acme", "metrics", "reports/a.csv", "data",
            message="msg", committer={"name": "n", "email": "e"},
        )

        client.get_file_sha.assert_awaited_once_with("acme", "metrics", "reports/a.csv")
        client.put_file_contents.assert_awaited_once_with(
            "acme", "metrics", "reports/a.csv", "data",
            message="msg", committer={"name": "n", "email": "e"}, sha="abc",
        )

    async def test_creates_new_file(self) -> None:
        client = AsyncMock()
        client.get_file_sha.return_value = None

        await publish_report(client, "acme", "metrics", "a.csv", "data", "msg", {})

        assert client.put_file_contents.await_args.kwargs["sha"] is None


class TestWriteReport:
    def test_writes_basename_into_directory(self, tmp_path: Path) -> None:
        target = write_report(tmp_path / "out", "reports/acme-7-days.csv", "a,b\n")
        assert target == tmp_path / "out" / "acme-7-days.csv"
        assert target.read_text() == "a,b\n"
