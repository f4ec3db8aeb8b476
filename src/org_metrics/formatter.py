"""Output formatting for organization metrics reports."""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Mapping, Sequence
from typing import Any

import click

from org_metrics.models import NA, RepositoryMetrics


def format_csv(rows: Sequence[Mapping[str, Any]], columns: Mapping[str, str]) -> str:
    """Render row mappings as CSV with a header row of column labels.

    Only keys present in *columns* are written, in its order.
    """
    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer,
        fieldnames=list(columns),
        extrasaction="ignore",
        lineterminator="\n",
    )
    writer.writerow(dict(columns))
    writer.writerows(rows)
    return buffer.getvalue()


def format_json(rows: Sequence[Mapping[str, Any]]) -> str:
    """Render row mappings as an indented JSON list."""
    return json.dumps(list(rows), indent=2)


def _value_style(value: object) -> str:
    if value == NA:
        return click.style(str(value), dim=True)
    return click.style(str(value), bold=True)


def format_cli_summary(
    report: Sequence[RepositoryMetrics], window_label: str, verbose: bool = False
) -> str:
    """Format a short terminal summary of a report.

    *report* is the assembled report: repository rows followed by the total.
    """
    if not report:
        return "No repositories found."

    *repos, total = report
    header = click.style("Organization metrics", fg="green", bold=True)
    lines: list[str] = [
        f"{header} ({window_label})",
        f"Repositories: {len(repos)}",
        "",
        f"PRs opened: {_value_style(total.opened_pull_requests)} | "
        f"merged: {_value_style(total.merged_pull_requests)} | "
        f"closed: {_value_style(total.closed_pull_requests)}",
        f"Issues opened: {_value_style(total.opened_issues)} | "
        f"closed: {_value_style(total.closed_issues)}",
        f"Contributors: {_value_style(total.contributors_this_period)} "
        f"(FTC {_value_style(total.contributors_this_period_first_time_contributor)})",
        f"Open issues: {_value_style(total.open_issues)} | "
        f"stale: {_value_style(total.percent_stale_issues)} | "
        f"old: {_value_style(total.percent_old_issues)}",
        f"PR turnaround: {_value_style(total.average_pull_request_merge_time_interval)} days",
    ]

    if verbose and repos:
        lines.append("")
        lines.append("Repositories:")
        for repo in repos:
            lines.append(
                f"  {repo.repo}: {repo.opened_pull_requests} PRs opened, "
                f"{repo.merged_pull_requests} merged, "
                f"{repo.opened_issues} issues opened, "
                f"{repo.contributors_this_period} contributors"
            )

    return "\n".join(lines)
