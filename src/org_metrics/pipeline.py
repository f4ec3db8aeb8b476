"""Report generation: fetch, analyze, assemble."""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from datetime import UTC, datetime

from pydantic import BaseModel

from org_metrics.aggregator import aggregate_repositories, build_repository_metrics
from org_metrics.config import OrgMetricsConfig, ThresholdConfig, TimeWindow, load_config
from org_metrics.exceptions import ConfigError
from org_metrics.formatter import format_csv, format_json
from org_metrics.models import RepositoryMetrics, RepositorySnapshot
from org_metrics.report import build_report, column_labels, report_rows, sort_repositories

logger = logging.getLogger(__name__)


def analyze_snapshots(
    snapshots: Sequence[RepositorySnapshot],
    window: TimeWindow,
    thresholds: ThresholdConfig,
    now: datetime,
) -> tuple[list[RepositoryMetrics], RepositoryMetrics]:
    """Per-repository rows and the organization total for *snapshots*."""
    rows = [build_repository_metrics(s, window, thresholds, now) for s in snapshots]
    return rows, aggregate_repositories(rows)


class OrgReport(BaseModel):
    """An assembled organization report ready for serialization."""
    org: str
    rows: list[RepositoryMetrics]
    total: RepositoryMetrics
    window: TimeWindow
    thresholds: ThresholdConfig
    sort_column: str = "opened_pull_requests"
    sort_order: str = "desc"

    @property
    def ordered(self) -> list[RepositoryMetrics]:
        return build_report(self.rows, self.total, self.sort_column, self.sort_order)

    @property
    def columns(self) -> dict[str, str]:
        return column_labels(self.window.column_label, self.thresholds)

    def to_csv(self) -> str:
        return format_csv(report_rows(self.ordered), self.columns)

    def to_json(self) -> str:
        return format_json(report_rows(self.ordered))


async def generate_report(
    config: OrgMetricsConfig | None = None,
    token: str | None = None,
    now: datetime | None = None,
) -> OrgReport:
    """Convenience function: fetch every repository and build the report.

    Parameters
    ----------
    config:
        Optional configuration; defaults are loaded when *None*. ``config.org``
        must name the organization.
    token:
        GitHub token; falls back to the ``GITHUB_TOKEN`` env var.
    now:
        Reference time for the window and issue ages; defaults to the
        current time.
    """
    from org_metrics.github_client import GitHubClient

    if config is None:
        config = load_config()
    if not config.org:
        raise ConfigError("An organization is required")
    if token is None:
        token = os.environ.get("GITHUB_TOKEN", "")

    now = now if now is not None else datetime.now(UTC)
    window = config.window.resolve(now)
    # Fail on a bad sort column before spending API calls
    sort_repositories([], config.report.sort_column, config.report.sort_order)
    logger.info("Collecting metrics for %s (%s)", config.org, window.column_label)

    async with GitHubClient(token=token, config=config) as client:
        names = await client.fetch_repository_names(config.org, config.team or None)
        snapshots = await client.fetch_snapshots(config.org, names)

    rows, total = analyze_snapshots(snapshots, window, config.thresholds, now)
    return OrgReport(
        org=config.org,
        rows=rows,
        total=total,
        window=window,
        thresholds=config.thresholds,
        sort_column=config.report.sort_column,
        sort_order=config.report.sort_order,
    )
