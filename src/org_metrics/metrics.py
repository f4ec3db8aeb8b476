"""Issue and pull request metric extraction.

Everything here is pure: the reporting window, thresholds and the current
time arrive as parameters so results are deterministic for a given input.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any, NamedTuple, TypeVar

from pydantic import BaseModel

from org_metrics.config import ThresholdConfig, TimeWindow
from org_metrics.models import (
    NA,
    AuthorAssociation,
    IssueMetrics,
    IssueRecord,
    IssueState,
    PullRequestMetrics,
    PullRequestRecord,
    PullRequestState,
    as_utc,
)

_SECONDS_PER_DAY = 24 * 60 * 60

_INTERNAL = frozenset(a.value for a in (
    AuthorAssociation.CONTRIBUTOR,
    AuthorAssociation.OWNER,
    AuthorAssociation.MEMBER,
    AuthorAssociation.FIRST_TIMER,
    AuthorAssociation.FIRST_TIME_CONTRIBUTOR,
))
_EXTERNAL = frozenset(a.value for a in (AuthorAssociation.COLLABORATOR, AuthorAssociation.NONE))
_FIRST_TIME = frozenset(a.value for a in (
    AuthorAssociation.FIRST_TIMER,
    AuthorAssociation.FIRST_TIME_CONTRIBUTOR,
))


class RoleFlags(NamedTuple):
    internal: bool
    external: bool
    first_time_contributor: bool


def classify_role(association: str | None) -> RoleFlags:
    """Classify an author association. Unknown values set no flag."""
    if association is not None:
        association = str(association)
    return RoleFlags(
        internal=association in _INTERNAL,
        external=association in _EXTERNAL,
        first_time_contributor=association in _FIRST_TIME,
    )


def days_between(start: datetime, end: datetime) -> float:
    """Fractional days from *start* to *end*; negative if end is earlier.

    Naive datetimes are read as UTC.
    """
    return (as_utc(end) - as_utc(start)).total_seconds() / _SECONDS_PER_DAY


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def percentage(numerator: float, denominator: float) -> str:
    """Format ``numerator / denominator`` as a whole percent, e.g. ``"42%"``.

    The denominator must be non-zero; use :func:`ratio_or_na` when it may not be.
    """
    return f"{_round_half_up(100 * numerator / denominator)}%"


def ratio_or_na(numerator: float, denominator: float) -> str:
    if denominator == 0:
        return NA
    return percentage(numerator, denominator)


def average(samples: Sequence[float]) -> int | str:
    """Rounded arithmetic mean, or ``"N/A"`` for no samples."""
    if not samples:
        return NA
    return _round_half_up(sum(samples) / len(samples))


def union_sets(sets: Iterable[Iterable[str]]) -> frozenset[str]:
    """Union of identity sets; its size is a distinct contributor count."""
    union: set[str] = set()
    for identities in sets:
        union.update(identities)
    return frozenset(union)


M = TypeVar("M", bound=BaseModel)


def _fold(model: type[M], contributions: Iterable[dict[str, Any]]) -> M:
    """Sum per-item field contributions into a single *model* instance.

    Counters add, samples extend and contributor sets union. The model is
    built once from the accumulated values.
    """
    totals: dict[str, Any] = {}
    for name, value in model():
        if isinstance(value, frozenset):
            totals[name] = set()
        elif isinstance(value, tuple):
            totals[name] = []
        else:
            totals[name] = value

    for fields in contributions:
        for name, value in fields.items():
            accumulated = totals[name]
            if isinstance(accumulated, set):
                accumulated.update(value)
            elif isinstance(accumulated, list):
                accumulated.extend(value)
            else:
                totals[name] = accumulated + value

    return model(**{
        name: frozenset(value) if isinstance(value, set)
        else tuple(value) if isinstance(value, list)
        else value
        for name, value in totals.items()
    })


# ----------------------------------------------------------------------
# Issues
# ----------------------------------------------------------------------


def _issue_contribution(
    issue: IssueRecord,
    window: TimeWindow,
    thresholds: ThresholdConfig,
    now: datetime,
) -> dict[str, Any]:
    """Fields contributed by a single issue."""
    fields: dict[str, Any] = {}
    role = classify_role(issue.author_association)
    author = frozenset({issue.author}) if issue.author is not None else frozenset()

    if issue.author is not None:
        fields["contributors_all_time"] = author
        if role.internal:
            fields["contributors_all_time_internal"] = author
            fields["internal_issues"] = 1
        if role.external:
            fields["contributors_all_time_external"] = author
            fields["external_issues"] = 1

    if issue.state == IssueState.OPEN:
        fields["open_issues"] = 1
        if days_between(issue.last_activity_at, now) > thresholds.stale_days:
            fields["stale_issues"] = 1
        if days_between(issue.created_at, now) > thresholds.old_days:
            fields["old_issues"] = 1

    if window.contains(issue.created_at):
        fields["opened_issues"] = 1
        fields["contributors_this_period"] = author
        if role.internal:
            fields["opened_issues_internal"] = 1
            fields["contributors_this_period_internal"] = author
        if role.external:
            fields["opened_issues_external"] = 1
            fields["contributors_this_period_external"] = author
        if role.first_time_contributor:
            fields["opened_issues_first_time_contributor"] = 1
            fields["contributors_this_period_first_time_contributor"] = author

    if issue.closed_at is not None:
        fields["closed_issues_total"] = 1
        if window.contains(issue.closed_at):
            fields["closed_issues"] = 1
        fields["open_times"] = (days_between(issue.created_at, issue.closed_at),)
        if issue.closed_by_pull_request:
            fields["closed_by_pull_request_issues"] = 1

    return fields


def extract_issue_metrics(
    issues: Iterable[IssueRecord],
    window: TimeWindow,
    thresholds: ThresholdConfig,
    now: datetime,
) -> IssueMetrics:
    """Fold a repository's issues into :class:`IssueMetrics`."""
    return _fold(
        IssueMetrics,
        (_issue_contribution(issue, window, thresholds, now) for issue in issues),
    )


# ----------------------------------------------------------------------
# Pull requests
# ----------------------------------------------------------------------


def _pull_request_contribution(
    pull_request: PullRequestRecord, window: TimeWindow
) -> dict[str, Any]:
    """Fields contributed by a single pull request."""
    fields: dict[str, Any] = {}
    role = classify_role(pull_request.author_association)
    author = (
        frozenset({pull_request.author})
        if pull_request.author is not None
        else frozenset()
    )

    if pull_request.author is not None:
        fields["contributors_all_time"] = author
        if role.internal:
            fields["contributors_all_time_internal"] = author
            fields["internal_pull_requests"] = 1
        if role.external:
            fields["contributors_all_time_external"] = author
            fields["external_pull_requests"] = 1

    if pull_request.state == PullRequestState.OPEN:
        fields["open_pull_requests"] = 1

    if window.contains(pull_request.created_at):
        fields["opened_pull_requests"] = 1
        fields["contributors_this_period"] = author
        if role.internal:
            fields["opened_pull_requests_internal"] = 1
            fields["contributors_this_period_internal"] = author
        if role.external:
            fields["opened_pull_requests_external"] = 1
            fields["contributors_this_period_external"] = author
        if role.first_time_contributor:
            fields["opened_pull_requests_first_time_contributor"] = 1
            fields["contributors_this_period_first_time_contributor"] = author

    merged_at = pull_request.merged_at
    if merged_at is not None and pull_request.state == PullRequestState.MERGED:
        fields["merged_total"] = 1
        fields["open_times"] = (days_between(pull_request.created_at, merged_at),)
        if window.contains(merged_at):
            fields["merged_pull_requests"] = 1
            # Turnaround is measured from the window start, not creation
            fields["open_times_interval"] = (days_between(window.start, merged_at),)

    closed_at = pull_request.closed_at
    if closed_at is not None and pull_request.state == PullRequestState.CLOSED:
        fields["closed_total"] = 1
        if window.contains(closed_at):
            fields["closed_pull_requests"] = 1

    return fields


def extract_pull_request_metrics(
    pull_requests: Iterable[PullRequestRecord],
    window: TimeWindow,
) -> PullRequestMetrics:
    """Fold a repository's pull requests into :class:`PullRequestMetrics`."""
    return _fold(
        PullRequestMetrics,
        (_pull_request_contribution(pr, window) for pr in pull_requests),
    )
