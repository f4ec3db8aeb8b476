"""Data models for organization repository metrics."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

NA = "N/A"
TOTAL_REPO_NAME = "TOTAL"


def as_utc(moment: datetime) -> datetime:
    """Read a naive datetime as UTC; aware values pass through."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class AuthorAssociation(StrEnum):
    """Relationship between an issue/PR author and the repository."""
    OWNER = "OWNER"
    MEMBER = "MEMBER"
    COLLABORATOR = "COLLABORATOR"
    CONTRIBUTOR = "CONTRIBUTOR"
    FIRST_TIMER = "FIRST_TIMER"
    FIRST_TIME_CONTRIBUTOR = "FIRST_TIME_CONTRIBUTOR"
    MANNEQUIN = "MANNEQUIN"
    NONE = "NONE"


class IssueState(StrEnum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class PullRequestState(StrEnum):
    OPEN = "OPEN"
    MERGED = "MERGED"
    CLOSED = "CLOSED"


class CloserType(StrEnum):
    """What closed an issue, as reported on a ``ClosedEvent``."""
    PULL_REQUEST = "PullRequest"
    COMMIT = "Commit"


class TimelineEvent(BaseModel):
    """A single issue timeline item. Only the timestamp matters."""
    model_config = ConfigDict(frozen=True)

    event_type: str
    created_at: UtcDatetime | None = None


class ClosedEvent(TimelineEvent):
    """Timeline item recording an issue being closed."""
    event_type: Literal["ClosedEvent"] = "ClosedEvent"
    closer: CloserType | None = None


class IssueRecord(BaseModel):
    """An issue with its author and timeline."""
    model_config = ConfigDict(frozen=True)

    created_at: UtcDatetime
    state: IssueState
    closed_at: UtcDatetime | None = None
    author: str | None = None
    # Kept as a plain string so unknown associations survive parsing.
    author_association: str = AuthorAssociation.NONE
    timeline: tuple[ClosedEvent | TimelineEvent, ...] = ()

    @property
    def last_activity_at(self) -> datetime:
        """Timestamp of the newest timeline item, or creation time."""
        if self.timeline and self.timeline[-1].created_at is not None:
            return self.timeline[-1].created_at
        return self.created_at

    @property
    def closed_by_pull_request(self) -> bool:
        """Whether the last close event was performed by a pull request."""
        for event in reversed(self.timeline):
            if isinstance(event, ClosedEvent):
                return event.closer == CloserType.PULL_REQUEST
        return False


class PullRequestRecord(BaseModel):
    """A pull request with its lifecycle timestamps."""
    model_config = ConfigDict(frozen=True)

    created_at: UtcDatetime
    state: PullRequestState
    merged_at: UtcDatetime | None = None
    closed_at: UtcDatetime | None = None
    author: str | None = None
    author_association: str = AuthorAssociation.NONE


class RepositorySnapshot(BaseModel):
    """Fully paginated data for one repository."""
    model_config = ConfigDict(frozen=True)

    name: str
    stars: int = 0
    watchers: int = 0
    forks: int = 0
    total_issues: int = 0
    total_pull_requests: int = 0
    issues: tuple[IssueRecord, ...] = ()
    pull_requests: tuple[PullRequestRecord, ...] = ()


class IssueMetrics(BaseModel):
    """Issue statistics for one repository.

    Instances add together: counters are summed, open-time samples are
    concatenated and contributor sets are unioned.
    """
    model_config = ConfigDict(frozen=True)

    internal_issues: int = 0
    external_issues: int = 0
    open_issues: int = 0
    stale_issues: int = 0
    old_issues: int = 0
    closed_by_pull_request_issues: int = 0
    closed_issues_total: int = 0
    opened_issues: int = 0
    opened_issues_internal: int = 0
    opened_issues_external: int = 0
    opened_issues_first_time_contributor: int = 0
    closed_issues: int = 0
    open_times: tuple[float, ...] = ()
    contributors_all_time: frozenset[str] = frozenset()
    contributors_all_time_internal: frozenset[str] = frozenset()
    contributors_all_time_external: frozenset[str] = frozenset()
    contributors_this_period: frozenset[str] = frozenset()
    contributors_this_period_internal: frozenset[str] = frozenset()
    contributors_this_period_external: frozenset[str] = frozenset()
    contributors_this_period_first_time_contributor: frozenset[str] = frozenset()

    def __add__(self, other: IssueMetrics) -> IssueMetrics:
        return IssueMetrics(**_combine(self, other))


class PullRequestMetrics(BaseModel):
    """Pull request statistics for one repository. Adds like IssueMetrics."""
    model_config = ConfigDict(frozen=True)

    internal_pull_requests: int = 0
    external_pull_requests: int = 0
    open_pull_requests: int = 0
    opened_pull_requests: int = 0
    opened_pull_requests_internal: int = 0
    opened_pull_requests_external: int = 0
    opened_pull_requests_first_time_contributor: int = 0
    merged_pull_requests: int = 0
    closed_pull_requests: int = 0
    merged_total: int = 0
    closed_total: int = 0
    open_times: tuple[float, ...] = ()
    open_times_interval: tuple[float, ...] = ()
    contributors_all_time: frozenset[str] = frozenset()
    contributors_all_time_internal: frozenset[str] = frozenset()
    contributors_all_time_external: frozenset[str] = frozenset()
    contributors_this_period: frozenset[str] = frozenset()
    contributors_this_period_internal: frozenset[str] = frozenset()
    contributors_this_period_external: frozenset[str] = frozenset()
    contributors_this_period_first_time_contributor: frozenset[str] = frozenset()

    def __add__(self, other: PullRequestMetrics) -> PullRequestMetrics:
        return PullRequestMetrics(**_combine(self, other))


def _combine(left: BaseModel, right: BaseModel) -> dict[str, object]:
    """Field-wise merge of two metric records of the same type."""
    merged: dict[str, object] = {}
    for name in type(left).model_fields:
        a = getattr(left, name)
        b = getattr(right, name)
        if isinstance(a, frozenset):
            merged[name] = a | b
        else:
            # ints add, tuples concatenate
            merged[name] = a + b
    return merged


class RepositoryMetrics(BaseModel):
    """One report row: a repository, or the organization total."""
    repo: str

    # Time period metrics
    opened_pull_requests: int = 0
    opened_pull_requests_internal: int = 0
    opened_pull_requests_external: int = 0
    opened_pull_requests_first_time_contributor: int = 0
    merged_pull_requests: int = 0
    average_pull_request_merge_time_interval: int | str = NA
    closed_pull_requests: int = 0

    # All time metrics
    open_pull_requests: int = 0
    average_pull_request_merge_time: int | str = NA
    pull_requests: int = 0
    internal_pull_requests: int = 0
    external_pull_requests: int = 0
    merged_pull_requests_total: int = 0
    closed_pull_requests_total: int = 0

    opened_issues: int = 0
    opened_issues_internal: int = 0
    opened_issues_external: int = 0
    opened_issues_first_time_contributor: int = 0
    closed_issues: int = 0

    issues: int = 0
    internal_issues: int = 0
    external_issues: int = 0
    open_issues: int = 0
    stale_issues: int = 0
    percent_stale_issues: str = NA
    old_issues: int = 0
    percent_old_issues: str = NA
    percent_issues_closed_by_pull_request: str = NA
    average_issue_open_time: int | str = NA

    contributors_this_period: int = 0
    contributors_this_period_internal: int = 0
    contributors_this_period_external: int = 0
    contributors_this_period_first_time_contributor: int = 0

    contributors_all_time: int = 0
    contributors_all_time_internal: int = 0
    contributors_all_time_external: int = 0

    stars: int = 0
    watches: int = 0
    forks: int = 0

    closed_by_pull_request_issues: int = 0
    closed_issues_total: int = 0

    # Raw components kept only for cross-repository aggregation
    issue_open_times: tuple[float, ...] = Field(default=(), exclude=True)
    pull_request_open_times: tuple[float, ...] = Field(default=(), exclude=True)
    pull_request_open_times_interval: tuple[float, ...] = Field(default=(), exclude=True)
    contributors_list_all_time: frozenset[str] = Field(default=frozenset(), exclude=True)
    contributors_list_all_time_internal: frozenset[str] = Field(
        default=frozenset(), exclude=True
    )
    contributors_list_all_time_external: frozenset[str] = Field(
        default=frozenset(), exclude=True
    )
    contributors_list_this_period: frozenset[str] = Field(default=frozenset(), exclude=True)
    contributors_list_this_period_internal: frozenset[str] = Field(
        default=frozenset(), exclude=True
    )
    contributors_list_this_period_external: frozenset[str] = Field(
        default=frozenset(), exclude=True
    )
    contributors_list_this_period_first_time_contributor: frozenset[str] = Field(
        default=frozenset(), exclude=True
    )
