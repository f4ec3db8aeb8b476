"""Shared test fixtures for org-metrics tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from org_metrics.config import ThresholdConfig, TimeWindow
from org_metrics.models import (
    ClosedEvent,
    CloserType,
    IssueRecord,
    IssueState,
    PullRequestRecord,
    PullRequestState,
    RepositorySnapshot,
    TimelineEvent,
)

D0 = datetime(2024, 3, 1, tzinfo=UTC)


def days(n: float) -> timedelta:
    return timedelta(days=n)


@pytest.fixture
def now() -> datetime:
    return D0 + days(15)


@pytest.fixture
def window() -> TimeWindow:
    return TimeWindow(start=D0 - days(1), end=D0 + days(10), column_label="<11 days")


@pytest.fixture
def thresholds() -> ThresholdConfig:
    return ThresholdConfig(stale_days=14, old_days=120)


@pytest.fixture
def sample_snapshot() -> RepositorySnapshot:
    """A small repository with a mix of issue and PR lifecycles."""
    return RepositorySnapshot(
        name="widgets",
        stars=40,
        watchers=7,
        forks=3,
        total_issues=3,
        total_pull_requests=3,
        issues=(
            IssueRecord(
                created_at=D0,
                state=IssueState.OPEN,
                author="alice",
                author_association="MEMBER",
            ),
            IssueRecord(
                created_at=D0 - days(200),
                state=IssueState.OPEN,
                author="bob",
                author_association="NONE",
                timeline=(TimelineEvent(event_type="IssueComment", created_at=D0 + days(14)),),
            ),
            IssueRecord(
                created_at=D0 + days(1),
                state=IssueState.CLOSED,
                closed_at=D0 + days(3),
                author="carol",
                author_association="FIRST_TIME_CONTRIBUTOR",
                timeline=(
                    ClosedEvent(created_at=D0 + days(3), closer=CloserType.PULL_REQUEST),
                ),
            ),
        ),
        pull_requests=(
            PullRequestRecord(
                created_at=D0,
                state=PullRequestState.MERGED,
                merged_at=D0 + days(5),
                closed_at=D0 + days(5),
                author="alice",
                author_association="MEMBER",
            ),
            PullRequestRecord(
                created_at=D0 + days(2),
                state=PullRequestState.OPEN,
                author="dave",
                author_association="COLLABORATOR",
            ),
            PullRequestRecord(
                created_at=D0 - days(30),
                state=PullRequestState.CLOSED,
                closed_at=D0 + days(4),
                author="erin",
                author_association="CONTRIBUTOR",
            ),
        ),
    )
