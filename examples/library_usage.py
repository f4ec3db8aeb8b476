"""Example: Build an organization metrics report with org-metrics."""

from __future__ import annotations

import asyncio
import os

from org_metrics import OrgMetricsConfig, generate_report


async def main() -> None:
    config = OrgMetricsConfig(org="octo-org", window={"days": 14})
    report = await generate_report(config=config, token=os.environ["GITHUB_TOKEN"])

    print(f"Window: {report.window.column_label}")
    print(f"Repositories: {len(report.rows)}")
    for row in report.ordered:
        print(
            f"{row.repo}: {row.opened_pull_requests} PRs opened, "
            f"{row.contributors_this_period} contributors, "
            f"stale issues {row.percent_stale_issues}"
        )

    with open("org-metrics.csv", "w") as f:
        f.write(report.to_csv())


if __name__ == "__main__":
    asyncio.run(main())
