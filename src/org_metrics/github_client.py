"""Async GitHub API client for fetching organization repository data."""

from __future__ import annotations

import base64
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, TypeVar

import httpx

from org_metrics.config import OrgMetricsConfig, load_config
from org_metrics.exceptions import (
    GitHubAPIError,
    OrganizationNotFoundError,
    RateLimitExhaustedError,
    RepoNotFoundError,
    TeamNotFoundError,
)
from org_metrics.models import (
    ClosedEvent,
    CloserType,
    IssueRecord,
    PullRequestRecord,
    RepositorySnapshot,
    TimelineEvent,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_GITHUB_BASE_URL = "https://api.github.com"
_GITHUB_GRAPHQL_URL = f"{_GITHUB_BASE_URL}/graphql"

# Timeline item types that carry a createdAt timestamp
_TIMELINE_EVENT_TYPES = (
    "AddedToProjectEvent",
    "AssignedEvent",
    "CommentDeletedEvent",
    "ConvertedNoteToIssueEvent",
    "CrossReferencedEvent",
    "DemilestonedEvent",
    "IssueComment",
    "LabeledEvent",
    "LockedEvent",
    "MentionedEvent",
    "MilestonedEvent",
    "MovedColumnsInProjectEvent",
    "PinnedEvent",
    "ReferencedEvent",
    "RemovedFromProjectEvent",
    "RenamedTitleEvent",
    "ReopenedEvent",
    "SubscribedEvent",
    "TransferredEvent",
    "UnassignedEvent",
    "UnlabeledEvent",
    "UnlockedEvent",
    "UnpinnedEvent",
    "UnsubscribedEvent",
    "UserBlockedEvent",
)

_CLOSER_TYPES = frozenset(closer.value for closer in CloserType)

_TIMELINE_FRAGMENTS = "\n".join(
    f"... on {event_type} {{ createdAt }}" for event_type in _TIMELINE_EVENT_TYPES
)

_ISSUE_FIELDS = f"""
  id
  createdAt
  state
  closedAt
  author {{ login }}
  authorAssociation
  timelineItems(last: $timelineLast) {{
    nodes {{
      __typename
      ... on ClosedEvent {{
        createdAt
        closer {{ __typename }}
      }}
      {_TIMELINE_FRAGMENTS}
    }}
  }}
""".strip()

_PULL_REQUEST_FIELDS = """
  id
  createdAt
  state
  mergedAt
  closedAt
  author { login }
  authorAssociation
""".strip()

_PAGE_INFO = "pageInfo { hasNextPage endCursor }"

_ORG_REPOSITORIES_QUERY = f"""
query($owner: String!, $first: Int!, $cursor: String) {{
  organization(login: $owner) {{
    repositories(first: $first, after: $cursor) {{
      nodes {{ name }}
      {_PAGE_INFO}
    }}
  }}
}}
""".strip()

_TEAM_REPOSITORIES_QUERY = f"""
query($owner: String!, $team: String!, $first: Int!, $cursor: String) {{
  organization(login: $owner) {{
    team(slug: $team) {{
      repositories(first: $first, after: $cursor) {{
        nodes {{ name }}
        {_PAGE_INFO}
      }}
    }}
  }}
}}
""".strip()

_REPOSITORY_QUERY = f"""
query($owner: String!, $repo: String!, $issuesFirst: Int!, $prsFirst: Int!,
      $timelineLast: Int!) {{
  repository(owner: $owner, name: $repo) {{
    name
    stargazers {{ totalCount }}
    forks {{ totalCount }}
    watchers {{ totalCount }}
    issues(first: $issuesFirst) {{
      totalCount
      nodes {{ {_ISSUE_FIELDS} }}
      {_PAGE_INFO}
    }}
    pullRequests(first: $prsFirst) {{
      totalCount
      nodes {{ {_PULL_REQUEST_FIELDS} }}
      {_PAGE_INFO}
    }}
  }}
  rateLimit {{ remaining resetAt }}
}}
""".strip()

_ISSUES_PAGE_QUERY = f"""
query($owner: String!, $repo: String!, $first: Int!, $cursor: String!,
      $timelineLast: Int!) {{
  repository(owner: $owner, name: $repo) {{
    issues(first: $first, after: $cursor) {{
      nodes {{ {_ISSUE_FIELDS} }}
      {_PAGE_INFO}
    }}
  }}
}}
""".strip()

_PULL_REQUESTS_PAGE_QUERY = f"""
query($owner: String!, $repo: String!, $first: Int!, $cursor: String!) {{
  repository(owner: $owner, name: $repo) {{
    pullRequests(first: $first, after: $cursor) {{
      nodes {{ {_PULL_REQUEST_FIELDS} }}
      {_PAGE_INFO}
    }}
  }}
}}
""".strip()


def _parse_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _author_login(node: dict[str, Any]) -> str | None:
    author = node.get("author")
    return author.get("login") if author else None


def _parse_timeline_item(node: dict[str, Any]) -> TimelineEvent:
    created_at = _parse_datetime(node.get("createdAt"))
    if node.get("__typename") == "ClosedEvent":
        closer = node.get("closer") or {}
        closer_type = closer.get("__typename")
        return ClosedEvent(
            created_at=created_at,
            closer=CloserType(closer_type) if closer_type in _CLOSER_TYPES else None,
        )
    return TimelineEvent(event_type=str(node.get("__typename", "")), created_at=created_at)


def _parse_issue(node: dict[str, Any]) -> IssueRecord:
    timeline = node.get("timelineItems") or {}
    return IssueRecord(
        created_at=datetime.fromisoformat(node["createdAt"]),
        state=node["state"],
        closed_at=_parse_datetime(node.get("closedAt")),
        author=_author_login(node),
        author_association=node.get("authorAssociation") or "",
        timeline=tuple(
            _parse_timeline_item(item) for item in timeline.get("nodes") or [] if item
        ),
    )


def _parse_pull_request(node: dict[str, Any]) -> PullRequestRecord:
    return PullRequestRecord(
        created_at=datetime.fromisoformat(node["createdAt"]),
        state=node["state"],
        merged_at=_parse_datetime(node.get("mergedAt")),
        closed_at=_parse_datetime(node.get("closedAt")),
        author=_author_login(node),
        author_association=node.get("authorAssociation") or "",
    )


class GitHubClient:
    """Async GitHub API client for organization repository metrics."""

    def __init__(
        self,
        token: str,
        config: OrgMetricsConfig | None = None,
    ) -> None:
        self._token = token
        self._config = config if config is not None else load_config()
        self._client = httpx.AsyncClient(
            base_url=_GITHUB_BASE_URL,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github.v3+json",
            },
            timeout=self._config.fetch.timeout,
        )

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self._client.aclose()

    @staticmethod
    def _raise_for_rate_limit(response: httpx.Response) -> None:
        if response.status_code not in (403, 429):
            return
        body = response.json() if response.content else {}
        message = body.get("message", "") if isinstance(body, dict) else ""
        if response.status_code == 429 or "rate limit" in message.lower():
            reset_header = response.headers.get("X-RateLimit-Reset")
            if reset_header:
                reset_at = datetime.fromtimestamp(int(reset_header), tz=UTC)
            else:
                reset_at = datetime.now(UTC)
            raise RateLimitExhaustedError(reset_at=reset_at)

    @staticmethod
    def _api_error(response: httpx.Response) -> GitHubAPIError:
        remaining = response.headers.get("X-RateLimit-Remaining")
        message = f"GitHub API returned {response.status_code}"
        if response.content:
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("message"):
                message = f"{message}: {body['message']}"
        return GitHubAPIError(
            message=message,
            status_code=response.status_code,
            rate_limit_remaining=int(remaining) if remaining else None,
        )

    async def _graphql(self, query: str, variables: dict[str, object]) -> dict[str, Any]:
        """Execute a GraphQL query with error and rate-limit handling.

        ``NOT_FOUND`` errors are left for the caller, which sees the
        corresponding field as null.

        Raises:
            RateLimitExhaustedError: On 403 with a rate-limit message or on 429.
            GitHubAPIError: For any other non-200 response or GraphQL error.
        """
        response = await self._client.post(
            _GITHUB_GRAPHQL_URL,
            json={"query": query, "variables": variables},
        )

        self._raise_for_rate_limit(response)
        if response.status_code != 200:
            raise self._api_error(response)

        data: dict[str, Any] = response.json()
        errors = data.get("errors") or []
        if errors and not all(error.get("type") == "NOT_FOUND" for error in errors):
            raise GitHubAPIError(message=str(errors[0].get("message", "GraphQL error")))
        if data.get("data") is None:
            raise GitHubAPIError(message="GitHub API returned no data")

        return data

    async def _paginate(
        self,
        query: str,
        variables: dict[str, object],
        select: Callable[[dict[str, Any]], dict[str, Any]],
        connection: dict[str, Any],
        parse: Callable[[dict[str, Any]], T],
    ) -> list[T]:
        """Collect every node of a connection, starting from its first page.

        *select* extracts the connection from a page response. Nodes are
        deduplicated by ``id`` when present.
        """
        items: list[T] = []
        seen: set[str] = set()

        while True:
            for node in connection.get("nodes") or []:
                if node is None:
                    continue
                node_id = node.get("id")
                if node_id is not None:
                    if node_id in seen:
                        continue
                    seen.add(node_id)
                items.append(parse(node))

            page_info = connection["pageInfo"]
            if not page_info["hasNextPage"]:
                return items
            result = await self._graphql(
                query, {**variables, "cursor": page_info["endCursor"]}
            )
            connection = select(result["data"])

    async def fetch_repository_names(self, org: str, team: str | None = None) -> list[str]:
        """List repository names of an organization, or of one of its teams.

        Raises:
            OrganizationNotFoundError: If the organization does not exist.
            TeamNotFoundError: If *team* is given and does not exist.
        """
        variables: dict[str, object] = {
            "owner": org,
            "first": self._config.fetch.repositories_page_size,
        }
        if team:
            variables["team"] = team
            query = _TEAM_REPOSITORIES_QUERY
        else:
            query = _ORG_REPOSITORIES_QUERY

        def select(data: dict[str, Any]) -> dict[str, Any]:
            organization = data.get("organization")
            if organization is None:
                raise OrganizationNotFoundError(org)
            if team:
                if organization.get("team") is None:
                    raise TeamNotFoundError(org, team)
                return organization["team"]["repositories"]  # type: ignore[no-any-return]
            return organization["repositories"]  # type: ignore[no-any-return]

        first = await self._graphql(query, variables)
        names = await self._paginate(
            query, variables, select, select(first["data"]), lambda node: str(node["name"])
        )
        logger.info("Found %d repositories in %s", len(names), f"{org}/{team}" if team else org)
        return names

    async def fetch_repository_snapshot(self, org: str, name: str) -> RepositorySnapshot:
        """Fetch counters plus every issue and pull request of a repository.

        Raises:
            RepoNotFoundError: If the repository does not exist.
        """
        fetch = self._config.fetch
        result = await self._graphql(
            _REPOSITORY_QUERY,
            {
                "owner": org,
                "repo": name,
                "issuesFirst": fetch.issues_page_size,
                "prsFirst": fetch.pull_requests_page_size,
                "timelineLast": fetch.timeline_items,
            },
        )
        repo = result["data"].get("repository")
        if repo is None:
            raise RepoNotFoundError(org, name)

        def repository(data: dict[str, Any]) -> dict[str, Any]:
            found = data.get("repository")
            if found is None:
                raise RepoNotFoundError(org, name)
            return found  # type: ignore[no-any-return]

        issues = await self._paginate(
            _ISSUES_PAGE_QUERY,
            {
                "owner": org,
                "repo": name,
                "first": fetch.issues_page_size,
                "timelineLast": fetch.timeline_items,
            },
            lambda data: repository(data)["issues"],
            repo["issues"],
            _parse_issue,
        )
        pull_requests = await self._paginate(
            _PULL_REQUESTS_PAGE_QUERY,
            {"owner": org, "repo": name, "first": fetch.pull_requests_page_size},
            lambda data: repository(data)["pullRequests"],
            repo["pullRequests"],
            _parse_pull_request,
        )

        rate_limit = result["data"].get("rateLimit") or {}
        logger.info(
            "%s (Rate limit: %s)", repo.get("name", name), rate_limit.get("remaining", "unknown")
        )

        return RepositorySnapshot(
            name=repo.get("name", name),
            stars=repo["stargazers"]["totalCount"],
            watchers=repo["watchers"]["totalCount"],
            forks=repo["forks"]["totalCount"],
            total_issues=repo["issues"]["totalCount"],
            total_pull_requests=repo["pullRequests"]["totalCount"],
            issues=tuple(issues),
            pull_requests=tuple(pull_requests),
        )

    async def fetch_snapshots(self, org: str, names: list[str]) -> list[RepositorySnapshot]:
        """Fetch snapshots one repository at a time. Any failure aborts."""
        return [await self.fetch_repository_snapshot(org, name) for name in names]

    # ------------------------------------------------------------------
    # REST helpers for committing report files
    # ------------------------------------------------------------------

    async def get_file_sha(self, owner: str, repo: str, path: str) -> str | None:
        """Return the blob sha of *path*, or ``None`` if it does not exist.

        ``GET /repos/{owner}/{repo}/contents/{path}``
        """
        response = await self._client.get(f"/repos/{owner}/{repo}/contents/{path}")
        if response.status_code == 404:
            return None
        self._raise_for_rate_limit(response)
        if response.status_code != 200:
            raise self._api_error(response)
        body = response.json()
        if isinstance(body, dict) and body.get("sha"):
            return str(body["sha"])
        return None

    async def put_file_contents(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        message: str,
        committer: dict[str, str],
        sha: str | None = None,
    ) -> dict[str, object]:
        """Create or update a file in a repository.

        ``PUT /repos/{owner}/{repo}/contents/{path}``
        """
        payload: dict[str, object] = {
            "message": message,
            "content": base64.b64encode(content.encode()).decode("ascii"),
            "committer": committer,
        }
        if sha is not None:
            payload["sha"] = sha
        response = await self._client.put(
            f"/repos/{owner}/{repo}/contents/{path}", json=payload
        )
        self._raise_for_rate_limit(response)
        if response.status_code not in (200, 201):
            raise self._api_error(response)
        return response.json()  # type: ignore[no-any-return]
