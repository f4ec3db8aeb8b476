"""Custom exception hierarchy for org-metrics."""

from __future__ import annotations

from datetime import datetime


class OrgMetricsError(Exception):
    """Base exception for org-metrics."""


class GitHubAPIError(OrgMetricsError):
    """Error from the GitHub API."""

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        rate_limit_remaining: int | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.rate_limit_remaining = rate_limit_remaining


class RateLimitExhaustedError(GitHubAPIError):
    """GitHub API rate limit exhausted."""

    def __init__(self, reset_at: datetime, rate_limit_remaining: int = 0):
        self.reset_at = reset_at
        super().__init__(
            f"Rate limit exhausted. Resets at {reset_at.isoformat()}",
            status_code=403,
            rate_limit_remaining=rate_limit_remaining,
        )


class OrganizationNotFoundError(GitHubAPIError):
    """GitHub organization not found."""

    def __init__(self, org: str):
        self.org = org
        super().__init__(f"Organization not found: {org}", status_code=404)


class TeamNotFoundError(GitHubAPIError):
    """Team not found within an organization."""

    def __init__(self, org: str, team: str):
        self.org = org
        self.team = team
        super().__init__(f"Team not found: {org}/{team}", status_code=404)


class RepoNotFoundError(GitHubAPIError):
    """GitHub repository not found."""

    def __init__(self, org: str, name: str):
        self.org = org
        self.name = name
        super().__init__(f"Repository not found: {self.full_name}", status_code=404)

    @property
    def full_name(self) -> str:
        return f"{self.org}/{self.name}"


class ConfigError(OrgMetricsError):
    """Error with configuration."""
