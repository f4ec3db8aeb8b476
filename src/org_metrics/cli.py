"""Click-based CLI for organization repository metrics."""

from __future__ import annotations

import asyncio
import logging
import sys

import click
from pydantic import ValidationError

from org_metrics.config import OrgMetricsConfig, load_config
from org_metrics.exceptions import OrgMetricsError
from org_metrics.formatter import format_cli_summary
from org_metrics.pipeline import generate_report
from org_metrics.publisher import report_path, write_report


@click.group()
@click.version_option(package_name="org-metrics")
def main() -> None:
    """org-metrics - activity metrics across an organization's repositories."""


@main.command()
@click.option("--org", default=None, help="Organization login")
@click.option("--team", default=None, help="Restrict to a team's repositories (slug)")
@click.option("--days", type=int, default=None, help="Report on the last N days")
@click.option("--from-date", default=None, help="Window start (YYYY-MM-DD)")
@click.option("--to-date", default=None, help="Window end (YYYY-MM-DD)")
@click.option("--stale", type=int, default=None, help="Days without activity for a stale issue")
@click.option("--old", type=int, default=None, help="Days open for an old issue")
@click.option("--sort", "sort_column", default=None, help="Field to sort repositories by")
@click.option("--sort-order", type=click.Choice(["asc", "desc"]), default=None)
@click.option("--json", "json_export", is_flag=True, help="Also write a JSON report")
@click.option("--output", "output_dir", default=None, help="Directory for report files")
@click.option("--token", envvar="GITHUB_TOKEN", help="GitHub token")
@click.option("--config", "config_path", default=None, help="Config file path")
@click.option("--verbose", "-v", is_flag=True, help="Show per-repository output")
def report(
    org: str | None,
    team: str | None,
    days: int | None,
    from_date: str | None,
    to_date: str | None,
    stale: int | None,
    old: int | None,
    sort_column: str | None,
    sort_order: str | None,
    json_export: bool,
    output_dir: str | None,
    token: str | None,
    config_path: str | None,
    verbose: bool,
) -> None:
    """Generate a metrics report for every repository of an organization."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(name)s: %(message)s",
    )

    if not token:
        click.echo("Error: GitHub token required. Set GITHUB_TOKEN or use --token.", err=True)
        sys.exit(1)

    try:
        config = load_config(config_path)
    except OrgMetricsError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    data = config.model_dump()
    overrides = {"org": org, "team": team}
    sections = {
        "window": {"days": days, "from_date": from_date, "to_date": to_date},
        "thresholds": {"stale_days": stale, "old_days": old},
        "report": {"sort_column": sort_column, "sort_order": sort_order},
    }
    data.update({k: v for k, v in overrides.items() if v is not None})
    for section, values in sections.items():
        data[section].update({k: v for k, v in values.items() if v is not None})

    try:
        config = OrgMetricsConfig.model_validate(data)
    except ValidationError as exc:
        click.echo(f"Error: invalid option: {exc}", err=True)
        sys.exit(1)

    if not config.org:
        click.echo("Error: organization required. Use --org or ORG_METRICS_ORG.", err=True)
        sys.exit(1)

    try:
        result = asyncio.run(generate_report(config=config, token=token))
    except OrgMetricsError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    directory = output_dir or config.report.report_dir
    csv_path = report_path(config.org, result.window.file_label, "csv", diff_report=True)
    written = [write_report(directory, csv_path, result.to_csv())]
    if json_export or config.report.json_export:
        json_path = report_path(config.org, result.window.file_label, "json", diff_report=True)
        written.append(write_report(directory, json_path, result.to_json()))

    click.echo(format_cli_summary(result.ordered, result.window.column_label, verbose=verbose))
    click.echo("")
    for path in written:
        click.echo(f"Report written to {path}")
