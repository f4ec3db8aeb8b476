"""GitHub Action entry point for org-metrics."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from datetime import UTC, datetime

from org_metrics.config import OrgMetricsConfig, load_config
from org_metrics.exceptions import ConfigError, OrgMetricsError, RateLimitExhaustedError
from org_metrics.github_client import GitHubClient
from org_metrics.pipeline import generate_report
from org_metrics.publisher import publish_report, report_path


def _input(name: str, default: str = "") -> str:
    """Read an action input (GitHub Actions sets INPUT_<NAME> env vars)."""
    value = os.environ.get(f"INPUT_{name.upper()}")
    if value is None:
        value = os.environ.get(f"INPUT_{name.upper().replace('-', '_')}")
    return value.strip() if value else default


def _int_input(name: str) -> int | None:
    value = _input(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigError(f"Input '{name}' must be a number, got {value!r}") from exc


def _bool_input(name: str) -> bool | None:
    value = _input(name)
    if not value:
        return None
    return value.lower() == "true"


def _event_org() -> str:
    """Organization login from the triggering event payload, if any."""
    event_path = os.environ.get("GITHUB_EVENT_PATH", "")
    if not event_path or not os.path.exists(event_path):
        return ""
    with open(event_path) as f:
        event = json.load(f)
    return str((event.get("organization") or {}).get("login", ""))


def _apply_inputs(config: OrgMetricsConfig, org: str) -> OrgMetricsConfig:
    """Overlay action inputs on a loaded configuration."""
    data = config.model_dump()
    data["org"] = org
    data["team"] = _input("team", config.team)

    window = data["window"]
    if (days := _int_input("days")) is not None:
        window["days"] = days
    window["from_date"] = _input("fromdate", config.window.from_date)
    window["to_date"] = _input("todate", config.window.to_date)

    thresholds = data["thresholds"]
    if (stale := _int_input("stale")) is not None:
        thresholds["stale_days"] = stale
    if (old := _int_input("old")) is not None:
        thresholds["old_days"] = old

    report = data["report"]
    report["sort_column"] = _input("sort", config.report.sort_column)
    report["sort_order"] = _input("sort-order", config.report.sort_order).lower()
    if (json_export := _bool_input("json")) is not None:
        report["json_export"] = json_export
    if (diff_report := _bool_input("diff-report")) is not None:
        report["diff_report"] = diff_report
    report["committer_name"] = _input("committer-name", config.report.committer_name)
    report["committer_email"] = _input("committer-email", config.report.committer_email)

    try:
        return OrgMetricsConfig(**data)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc


async def run_action() -> None:
    """Main action logic."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(levelname)s: %(name)s: %(message)s",
    )
    logger = logging.getLogger("org_metrics.action")

    token = _input("token") or os.environ.get("GITHUB_TOKEN", "")
    repository = os.environ.get("GITHUB_REPOSITORY", "")

    config_path = _input("config-path") or None
    if config_path and not os.path.exists(config_path):
        logger.warning("Config file %s not found, using defaults", config_path)
        config_path = None

    if not token:
        print("::error::GITHUB_TOKEN is required")
        sys.exit(1)

    repo_parts = repository.split("/")
    if len(repo_parts) != 2:
        print(f"::error::Invalid GITHUB_REPOSITORY: {repository}")
        sys.exit(1)
    repo_owner, repo_name = repo_parts

    base_config = load_config(config_path)
    org = _input("org") or base_config.org or _event_org()
    if not org:
        print("::error::Could not determine the organization; set the 'org' input")
        sys.exit(1)

    config = _apply_inputs(base_config, org)
    now = datetime.now(UTC)
    report = await generate_report(config=config, token=token, now=now)
    logger.info("Processed %d repositories for %s", len(report.rows), org)

    committer = {
        "name": config.report.committer_name,
        "email": config.report.committer_email,
    }
    today = now.strftime("%Y-%m-%d")
    file_label = report.window.file_label

    csv_path = report_path(
        org, file_label, "csv", config.report.diff_report, now, config.report.report_dir
    )
    json_path: str | None = None

    async with GitHubClient(token=token, config=config) as client:
        await publish_report(
            client, repo_owner, repo_name, csv_path, report.to_csv(),
            message=f"{today} Organization metrics report",
            committer=committer,
        )
        if config.report.json_export:
            json_path = report_path(
                org, file_label, "json", config.report.diff_report, now,
                config.report.report_dir,
            )
            await publish_report(
                client, repo_owner, repo_name, json_path, report.to_json(),
                message=f"{today} Organization metrics report (JSON)",
                committer=committer,
            )

    _set_output("csv-path", csv_path)
    if json_path:
        _set_output("json-path", json_path)
    _set_output("repositories", str(len(report.rows)))


def _set_output(name: str, value: str) -> None:
    """Set a GitHub Actions output variable."""
    output_file = os.environ.get("GITHUB_OUTPUT")
    if output_file:
        with open(output_file, "a") as f:
            f.write(f"{name}={value}\n")


def main() -> None:
    """Entry point."""
    try:
        asyncio.run(run_action())
    except RateLimitExhaustedError as exc:
        print(f"::error::Rate limit exhausted. Resets at {exc.reset_at.isoformat()}. "
              "Consider using a GitHub App token for higher limits.")
        sys.exit(1)
    except OrgMetricsError as exc:
        print(f"::error::{exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
