"""Report sinks: commit to a GitHub repository or write to disk."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from org_metrics.github_client import GitHubClient

logger = logging.getLogger(__name__)


def report_path(
    org: str,
    file_label: str,
    extension: str,
    diff_report: bool = False,
    now: datetime | None = None,
    report_dir: str = "reports",
) -> str:
    """Repository path for a report file.

    Diff reports keep a stable name so successive runs overwrite the same
    file; otherwise the name is timestamped.
    """
    if diff_report:
        return f"{report_dir}/{org}-repo-metrics-report-{file_label}.{extension}"
    stamp = (now or datetime.now(UTC)).strftime("%Y-%m-%dT%H:%M:%SZ")
    return f"{report_dir}/{org}-{stamp}-{file_label}.{extension}"


async def publish_report(
    client: GitHubClient,
    owner: str,
    repo: str,
    path: str,
    content: str,
    message: str,
    committer: dict[str, str],
) -> None:
    """Create or update *path* in ``owner/repo`` with *content*."""
    sha = await client.get_file_sha(owner, repo, path)
    logger.info("Pushing report to repository path: %s", path)
    await client.put_file_contents(
        owner, repo, path, content, message=message, committer=committer, sha=sha
    )


def write_report(directory: str | Path, path: str, content: str) -> Path:
    """Write *content* to ``directory/<basename of path>`` and return it."""
    target = Path(directory) / Path(path).name
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content)
    logger.info("Wrote report to %s", target)
    return target
