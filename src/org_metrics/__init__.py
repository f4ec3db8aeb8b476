"""org-metrics - activity metrics across an organization's repositories."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from org_metrics.aggregator import aggregate_repositories, build_repository_metrics
from org_metrics.config import OrgMetricsConfig, ThresholdConfig, TimeWindow
from org_metrics.exceptions import OrgMetricsError
from org_metrics.models import RepositoryMetrics, RepositorySnapshot
from org_metrics.pipeline import OrgReport, analyze_snapshots, generate_report

try:
    __version__ = version("org-metrics")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "OrgMetricsConfig",
    "OrgMetricsError",
    "OrgReport",
    "RepositoryMetrics",
    "RepositorySnapshot",
    "ThresholdConfig",
    "TimeWindow",
    "__version__",
    "aggregate_repositories",
    "analyze_snapshots",
    "build_repository_metrics",
    "generate_report",
]
