"""Per-repository and organization-wide metric aggregation."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from itertools import chain

from org_metrics.config import ThresholdConfig, TimeWindow
from org_metrics.metrics import (
    average,
    extract_issue_metrics,
    extract_pull_request_metrics,
    ratio_or_na,
    union_sets,
)
from org_metrics.models import TOTAL_REPO_NAME, RepositoryMetrics, RepositorySnapshot

# Contributor set name on the extractor results -> suffix on RepositoryMetrics
_CONTRIBUTOR_SETS = (
    "all_time",
    "all_time_internal",
    "all_time_external",
    "this_period",
    "this_period_internal",
    "this_period_external",
    "this_period_first_time_contributor",
)

# Counters that are plain sums across repositories
_ADDITIVE_FIELDS = (
    "opened_pull_requests",
    "opened_pull_requests_internal",
    "opened_pull_requests_external",
    "opened_pull_requests_first_time_contributor",
    "merged_pull_requests",
    "closed_pull_requests",
    "open_pull_requests",
    "pull_requests",
    "internal_pull_requests",
    "external_pull_requests",
    "merged_pull_requests_total",
    "closed_pull_requests_total",
    "opened_issues",
    "opened_issues_internal",
    "opened_issues_external",
    "opened_issues_first_time_contributor",
    "closed_issues",
    "issues",
    "internal_issues",
    "external_issues",
    "open_issues",
    "stale_issues",
    "old_issues",
    "stars",
    "watches",
    "forks",
    "closed_by_pull_request_issues",
    "closed_issues_total",
)


def _derived_fields(
    *,
    open_issues: int,
    stale_issues: int,
    old_issues: int,
    closed_by_pull_request_issues: int,
    closed_issues_total: int,
    issue_open_times: Sequence[float],
    pull_request_open_times: Sequence[float],
    pull_request_open_times_interval: Sequence[float],
    contributor_sets: dict[str, frozenset[str]],
) -> dict[str, object]:
    """Percentages, averages and contributor counts from raw components."""
    fields: dict[str, object] = {
        "percent_stale_issues": ratio_or_na(stale_issues, open_issues),
        "percent_old_issues": ratio_or_na(old_issues, open_issues),
        "percent_issues_closed_by_pull_request": ratio_or_na(
            closed_by_pull_request_issues, closed_issues_total
        ),
        "average_issue_open_time": average(issue_open_times),
        "average_pull_request_merge_time": average(pull_request_open_times),
        "average_pull_request_merge_time_interval": average(
            pull_request_open_times_interval
        ),
        "issue_open_times": tuple(issue_open_times),
        "pull_request_open_times": tuple(pull_request_open_times),
        "pull_request_open_times_interval": tuple(pull_request_open_times_interval),
    }
    for suffix, contributors in contributor_sets.items():
        fields[f"contributors_{suffix}"] = len(contributors)
        fields[f"contributors_list_{suffix}"] = contributors
    return fields


def build_repository_metrics(
    snapshot: RepositorySnapshot,
    window: TimeWindow,
    thresholds: ThresholdConfig,
    now: datetime,
) -> RepositoryMetrics:
    """Run both extractors on *snapshot* and merge them into one report row."""
    issue_metrics = extract_issue_metrics(snapshot.issues, window, thresholds, now)
    pr_metrics = extract_pull_request_metrics(snapshot.pull_requests, window)

    contributor_sets = {
        suffix: union_sets([
            getattr(issue_metrics, f"contributors_{suffix}"),
            getattr(pr_metrics, f"contributors_{suffix}"),
        ])
        for suffix in _CONTRIBUTOR_SETS
    }

    return RepositoryMetrics(
        repo=snapshot.name,
        stars=snapshot.stars,
        watches=snapshot.watchers,
        forks=snapshot.forks,
        issues=snapshot.total_issues,
        pull_requests=snapshot.total_pull_requests,
        internal_issues=issue_metrics.internal_issues,
        external_issues=issue_metrics.external_issues,
        open_issues=issue_metrics.open_issues,
        stale_issues=issue_metrics.stale_issues,
        old_issues=issue_metrics.old_issues,
        closed_by_pull_request_issues=issue_metrics.closed_by_pull_request_issues,
        closed_issues_total=issue_metrics.closed_issues_total,
        opened_issues=issue_metrics.opened_issues,
        opened_issues_internal=issue_metrics.opened_issues_internal,
        opened_issues_external=issue_metrics.opened_issues_external,
        opened_issues_first_time_contributor=issue_metrics.opened_issues_first_time_contributor,
        closed_issues=issue_metrics.closed_issues,
        internal_pull_requests=pr_metrics.internal_pull_requests,
        external_pull_requests=pr_metrics.external_pull_requests,
        open_pull_requests=pr_metrics.open_pull_requests,
        opened_pull_requests=pr_metrics.opened_pull_requests,
        opened_pull_requests_internal=pr_metrics.opened_pull_requests_internal,
        opened_pull_requests_external=pr_metrics.opened_pull_requests_external,
        opened_pull_requests_first_time_contributor=(
            pr_metrics.opened_pull_requests_first_time_contributor
        ),
        merged_pull_requests=pr_metrics.merged_pull_requests,
        closed_pull_requests=pr_metrics.closed_pull_requests,
        merged_pull_requests_total=pr_metrics.merged_total,
        closed_pull_requests_total=pr_metrics.closed_total,
        **_derived_fields(
            open_issues=issue_metrics.open_issues,
            stale_issues=issue_metrics.stale_issues,
            old_issues=issue_metrics.old_issues,
            closed_by_pull_request_issues=issue_metrics.closed_by_pull_request_issues,
            closed_issues_total=issue_metrics.closed_issues_total,
            issue_open_times=issue_metrics.open_times,
            pull_request_open_times=pr_metrics.open_times,
            pull_request_open_times_interval=pr_metrics.open_times_interval,
            contributor_sets=contributor_sets,
        ),
    )


def aggregate_repositories(repos: Sequence[RepositoryMetrics]) -> RepositoryMetrics:
    """Fold per-repository rows into the organization ``TOTAL`` row.

    Counters are summed and contributor sets unioned. Percentages and
    averages are recomputed from the summed components, never averaged
    from the per-repository values.
    """
    sums = {name: sum(getattr(repo, name) for repo in repos) for name in _ADDITIVE_FIELDS}
    contributor_sets = {
        suffix: union_sets(getattr(repo, f"contributors_list_{suffix}") for repo in repos)
        for suffix in _CONTRIBUTOR_SETS
    }

    return RepositoryMetrics(
        repo=TOTAL_REPO_NAME,
        **sums,
        **_derived_fields(
            open_issues=sums["open_issues"],
            stale_issues=sums["stale_issues"],
            old_issues=sums["old_issues"],
            closed_by_pull_request_issues=sums["closed_by_pull_request_issues"],
            closed_issues_total=sums["closed_issues_total"],
            issue_open_times=list(chain.from_iterable(r.issue_open_times for r in repos)),
            pull_request_open_times=list(
                chain.from_iterable(r.pull_request_open_times for r in repos)
            ),
            pull_request_open_times_interval=list(
                chain.from_iterable(r.pull_request_open_times_interval for r in repos)
            ),
            contributor_sets=contributor_sets,
        ),
    )
