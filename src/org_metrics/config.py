"""Configuration models for org-metrics."""

from __future__ import annotations

import os
import re
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from org_metrics.exceptions import ConfigError
from org_metrics.models import UtcDatetime, as_utc

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class TimeWindow(BaseModel):
    """Reporting period. Both bounds are exclusive."""
    start: UtcDatetime
    end: UtcDatetime
    column_label: str = ""
    file_label: str = ""

    def contains(self, moment: datetime | None) -> bool:
        """True iff *moment* lies strictly between start and end."""
        if moment is None:
            return False
        return self.start < as_utc(moment) < self.end

    @classmethod
    def last_days(cls, days: int, now: datetime) -> TimeWindow:
        """Window covering the *days* days before *now*."""
        return cls(
            start=now - timedelta(days=days),
            end=now,
            column_label=f"<{days} days",
            file_label=f"{days}-days",
        )

    @classmethod
    def between(cls, from_date: str, to_date: str) -> TimeWindow:
        """Window between two ``YYYY-MM-DD`` dates (midnight UTC)."""
        try:
            start = datetime.strptime(from_date, "%Y-%m-%d").replace(tzinfo=UTC)
            end = datetime.strptime(to_date, "%Y-%m-%d").replace(tzinfo=UTC)
        except ValueError as exc:
            raise ConfigError(f"Invalid date range {from_date!r} to {to_date!r}: {exc}") from exc
        return cls(
            start=start,
            end=end,
            column_label=f"{from_date} to {to_date}",
            file_label=f"{from_date}-to-{to_date}",
        )


def resolve_window(
    days: int,
    from_date: str = "",
    to_date: str = "",
    now: datetime | None = None,
) -> TimeWindow:
    """Pick an explicit window when both dates are valid, else the last *days*."""
    if DATE_PATTERN.match(from_date or "") and DATE_PATTERN.match(to_date or ""):
        return TimeWindow.between(from_date, to_date)
    return TimeWindow.last_days(days, now if now is not None else datetime.now(UTC))


class ThresholdConfig(BaseModel):
    """Issue age thresholds in days."""
    stale_days: int = Field(default=14, ge=0)
    old_days: int = Field(default=120, ge=0)


class WindowConfig(BaseModel):
    """Relative or explicit reporting period."""
    days: int = Field(default=30, ge=0)
    from_date: str = ""
    to_date: str = ""

    def resolve(self, now: datetime | None = None) -> TimeWindow:
        return resolve_window(self.days, self.from_date, self.to_date, now)


class ReportConfig(BaseModel):
    """Report ordering and publishing options."""
    sort_column: str = "opened_pull_requests"
    sort_order: Literal["asc", "desc"] = "desc"
    json_export: bool = False
    diff_report: bool = False
    committer_name: str = "github-actions"
    committer_email: str = "github-actions@github.com"
    report_dir: str = "reports"


class FetchConfig(BaseModel):
    """GitHub API fetch parameters."""
    repositories_page_size: int = Field(default=100, ge=1, le=100)
    issues_page_size: int = Field(default=20, ge=1, le=100)
    pull_requests_page_size: int = Field(default=20, ge=1, le=100)
    timeline_items: int = Field(default=100, ge=1, le=100)
    timeout: float = 30.0


class OrgMetricsConfig(BaseModel):
    """Top-level configuration composing all sub-configs."""
    org: str = ""
    team: str = ""
    window: WindowConfig = Field(default_factory=WindowConfig)
    thresholds: ThresholdConfig = Field(default_factory=ThresholdConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path) as f:
        yaml_data = yaml.safe_load(f)
    return yaml_data if isinstance(yaml_data, dict) else {}


def _to_int(value: str) -> int:
    return int(value.strip())


def load_config(path: str | Path | None = None) -> OrgMetricsConfig:
    """Load configuration from YAML file, environment variables, and defaults.

    Priority (highest to lowest):
    1. Environment variables (ORG_METRICS_*)
    2. YAML config file
    3. Defaults

    Raises:
        ConfigError: If a numeric setting is not a number or validation fails.
    """
    config_data: dict[str, Any] = {}

    if path is not None:
        config_path = Path(path)
        if config_path.is_file():
            config_data = _read_yaml(config_path)
    else:
        for default_path in [".org-metrics.yml", ".org-metrics.yaml"]:
            p = Path(default_path)
            if p.is_file():
                config_data = _read_yaml(p)
                break

    # Top-level keys use a None section
    env_mapping = {
        "ORG_METRICS_ORG": (None, "org", str),
        "ORG_METRICS_TEAM": (None, "team", str),
        "ORG_METRICS_DAYS": ("window", "days", _to_int),
        "ORG_METRICS_FROM_DATE": ("window", "from_date", str),
        "ORG_METRICS_TO_DATE": ("window", "to_date", str),
        "ORG_METRICS_STALE_DAYS": ("thresholds", "stale_days", _to_int),
        "ORG_METRICS_OLD_DAYS": ("thresholds", "old_days", _to_int),
        "ORG_METRICS_SORT": ("report", "sort_column", str),
        "ORG_METRICS_SORT_ORDER": ("report", "sort_order", str),
    }

    for env_var, (section, key, type_fn) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is None:
            continue
        try:
            converted = type_fn(value)
        except ValueError as exc:
            raise ConfigError(f"{env_var} must be a number, got {value!r}") from exc
        if section is None:
            config_data[key] = converted
        else:
            config_data.setdefault(section, {})[key] = converted

    try:
        return OrgMetricsConfig(**config_data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
