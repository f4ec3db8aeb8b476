"""Tests for report assembly."""

from __future__ import annotations

import pytest

from org_metrics.config import ThresholdConfig
from org_metrics.exceptions import ConfigError
from org_metrics.models import RepositoryMetrics
from org_metrics.report import (
    build_report,
    column_labels,
    natural_key,
    report_rows,
    sort_repositories,
)


def _row(name: str, **kwargs) -> RepositoryMetrics:
    return RepositoryMetrics(repo=name, **kwargs)


class TestColumnLabels:
    def test_period_and_threshold_labels(self) -> None:
        labels = column_labels("<30 days", ThresholdConfig(stale_days=7, old_days=90))
        assert labels["repo"] == "Repo Name"
        assert labels["opened_pull_requests"] == "PRs Opened (<30 days)"
        assert labels["average_pull_request_merge_time_interval"] == "PR turnaround time (<30 days)"
        assert labels["stale_issues"] == "Stale Issues (>7)"
        assert labels["old_issues"] == "Old Issues (>90)"
        assert labels["stars"] == "Stars (all time)"

    def test_repo_is_first_column(self) -> None:
        labels = column_labels("x", ThresholdConfig())
        assert next(iter(labels)) == "repo"

    def test_every_label_is_a_serialized_field(self) -> None:
        labels = column_labels("x", ThresholdConfig())
        serialized = RepositoryMetrics(repo="r").model_dump()
        assert set(labels) <= set(serialized)


class TestNaturalKey:
    def test_numeric_runs(self) -> None:
        values = ["10%", "9%", "100%"]
        assert sorted(values, key=natural_key) == ["9%", "10%", "100%"]

    def test_case_insensitive(self) -> None:
        assert natural_key("Alpha") == natural_key("alpha")

    def test_numbers_before_text(self) -> None:
        assert sorted(["N/A", 3, 12], key=natural_key) == [3, 12, "N/A"]


class TestSortRepositories:
    def test_descending(self) -> None:
        rows = [_row("a", stars=2), _row("b", stars=10), _row("c", stars=5)]
        ordered = sort_repositories(rows, "stars", "desc")
        assert [r.repo for r in ordered] == ["b", "c", "a"]

    def test_ascending_names_natural(self) -> None:
        rows = [_row("repo10"), _row("Repo2"), _row("repo1")]
        ordered = sort_repositories(rows, "repo", "asc")
        assert [r.repo for r in ordered] == ["repo1", "Repo2", "repo10"]

    def test_stable_for_ties(self) -> None:
        rows = [_row("first", forks=1), _row("second", forks=1), _row("third", forks=1)]
        assert [r.repo for r in sort_repositories(rows, "forks", "desc")] == [
            "first", "second", "third",
        ]

    def test_percentages_sort_numerically(self) -> None:
        rows = [
            _row("a", percent_stale_issues="9%"),
            _row("b", percent_stale_issues="50%"),
            _row("c", percent_stale_issues="100%"),
        ]
        ordered = sort_repositories(rows, "percent_stale_issues", "desc")
        assert [r.repo for r in ordered] == ["c", "b", "a"]

    def test_na_placement_follows_order(self) -> None:
        rows = [
            _row("a", average_issue_open_time=3),
            _row("b", average_issue_open_time="N/A"),
            _row("c", average_issue_open_time=7),
        ]
        assert [r.repo for r in sort_repositories(rows, "average_issue_open_time", "asc")] == [
            "a", "c", "b",
        ]
        assert [r.repo for r in sort_repositories(rows, "average_issue_open_time", "desc")] == [
            "b", "c", "a",
        ]

    def test_unknown_column(self) -> None:
        with pytest.raises(ConfigError, match="Unknown sort column"):
            sort_repositories([], "nope")

    def test_retained_field_is_not_sortable(self) -> None:
        with pytest.raises(ConfigError):
            sort_repositories([], "contributors_list_all_time")

    def test_bad_order(self) -> None:
        with pytest.raises(ConfigError):
            sort_repositories([], "stars", "sideways")


class TestBuildReport:
    def test_total_is_last_and_unsorted(self) -> None:
        rows = [_row("a", stars=1), _row("b", stars=3)]
        total = _row("TOTAL", stars=4)
        report = build_report(rows, total, "stars", "asc")
        assert [r.repo for r in report] == ["a", "b", "TOTAL"]

    def test_report_rows_drop_retained_fields(self) -> None:
        rows = report_rows([_row("a", issue_open_times=(1.0,))])
        assert rows[0]["repo"] == "a"
        assert "issue_open_times" not in rows[0]
