"""Report assembly: ordering rows and labelling columns."""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from org_metrics.config import ThresholdConfig
from org_metrics.exceptions import ConfigError
from org_metrics.models import RepositoryMetrics

_DIGITS_RE = re.compile(r"(\d+)")


def column_labels(window_label: str, thresholds: ThresholdConfig) -> dict[str, str]:
    """Field key -> human readable column header, in report order."""
    period = f"({window_label})"
    return {
        "repo": "Repo Name",

        "opened_pull_requests": f"PRs Opened {period}",
        "opened_pull_requests_internal": f"PRs Opened Int {period}",
        "opened_pull_requests_external": f"PRs Opened Ext {period}",
        "opened_pull_requests_first_time_contributor": f"PRs Opened FTC {period}",
        "merged_pull_requests": f"PRs Merged {period}",
        "average_pull_request_merge_time_interval": f"PR turnaround time {period}",
        "closed_pull_requests": f"PRs Closed {period}",

        "open_pull_requests": "PRs Open (all time)",
        "average_pull_request_merge_time": "PR turnaround time (all time)",
        "pull_requests": "Total PRs (all time)",
        "internal_pull_requests": "Total PRs Int (all time)",
        "external_pull_requests": "Total PRs Ext (all time)",
        "merged_pull_requests_total": "PRs Merged (all time)",
        "closed_pull_requests_total": "PRs Closed (all time)",

        "opened_issues": f"Issues Opened {period}",
        "opened_issues_internal": f"Issues Opened Int {period}",
        "opened_issues_external": f"Issues Opened Ext {period}",
        "opened_issues_first_time_contributor": f"Issues Opened FTC {period}",
        "closed_issues": f"Issues Closed {period}",

        "issues": "Total Issues (all time)",
        "internal_issues": "Total Issues Int (all time)",
        "external_issues": "Total Issues Ext (all time)",
        "open_issues": "Open Issues (all time)",
        "stale_issues": f"Stale Issues (>{thresholds.stale_days})",
        "percent_stale_issues": "% Stale Issues (all time)",
        "old_issues": f"Old Issues (>{thresholds.old_days})",
        "percent_old_issues": "% Old Issues (all time)",
        "percent_issues_closed_by_pull_request": "% Issues Closed by PR (all time)",
        "average_issue_open_time": "Average Issue open days (all time)",

        "contributors_this_period": f"Contributors {period}",
        "contributors_this_period_internal": f"Contributors Int {period}",
        "contributors_this_period_external": f"Contributors Ext {period}",
        "contributors_this_period_first_time_contributor": f"Contributors FTC {period}",

        "contributors_all_time": "Contributors (all time)",
        "contributors_all_time_internal": "Contributors Int (all time)",
        "contributors_all_time_external": "Contributors Ext (all time)",

        "stars": "Stars (all time)",
        "watches": "Watches (all time)",
        "forks": "Forks (all time)",
    }


def natural_key(value: object) -> tuple[tuple[int, int | str], ...]:
    """Sort key comparing digit runs numerically and text case-insensitively.

    ``"9%"`` sorts before ``"10%"``; numbers sort before text such as ``"N/A"``.
    """
    parts: list[tuple[int, int | str]] = []
    for chunk in _DIGITS_RE.split(str(value)):
        if not chunk:
            continue
        if chunk.isdigit():
            parts.append((0, int(chunk)))
        else:
            parts.append((1, chunk.casefold()))
    return tuple(parts)


def sort_repositories(
    rows: Sequence[RepositoryMetrics],
    column: str,
    order: str = "desc",
) -> list[RepositoryMetrics]:
    """Stable sort of *rows* by *column* in *order* (``asc`` or ``desc``).

    Raises:
        ConfigError: If *column* is not a report field or *order* is invalid.
    """
    field = RepositoryMetrics.model_fields.get(column)
    if field is None or field.exclude:
        raise ConfigError(f"Unknown sort column: {column}")
    if order not in ("asc", "desc"):
        raise ConfigError(f"Sort order must be 'asc' or 'desc', got: {order}")
    return sorted(
        rows,
        key=lambda row: natural_key(getattr(row, column)),
        reverse=order == "desc",
    )


def build_report(
    rows: Sequence[RepositoryMetrics],
    total: RepositoryMetrics,
    column: str,
    order: str = "desc",
) -> list[RepositoryMetrics]:
    """Sorted repository rows followed by the total row."""
    return [*sort_repositories(rows, column, order), total]


def report_rows(report: Sequence[RepositoryMetrics]) -> list[dict[str, Any]]:
    """Plain mappings for serialization; retained raw fields are dropped."""
    return [row.model_dump(mode="json") for row in report]
