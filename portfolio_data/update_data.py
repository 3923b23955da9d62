#!/usr/bin/env python3
"""
Refresh the GitHub data used by the portfolio site.

Fetches repositories, profile statistics and the contribution calendar
through the one-hour file cache and writes them to a single JSON file the
site build reads.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import httpx

from .cache import FreshnessCache
from .config import SITE_CONFIG_FILE, GitHubConfig, SiteConfig, load_site_config
from .fetcher import fetch_repositories
from .models import ContributionCalendar, RepositorySummary, StatsSummary
from .stats import fetch_contribution_calendar, fetch_stats

DATASETS = ("repos", "stats", "calendar")


async def run_update(
    site: SiteConfig,
    github: GitHubConfig,
    client: httpx.AsyncClient | None = None,
) -> tuple[dict[str, Any], list[tuple[str, str]]]:
    """
    Produce every dataset through the cache.

    Returns (snapshot, failed) where failed lists (dataset, error) pairs.
    """
    cache = FreshnessCache(site.cache_dir)
    failed: list[tuple[str, str]] = []

    if not github.token:
        print("No GITHUB_TOKEN found - stats and calendar will be unavailable")

    async def produce(client: httpx.AsyncClient) -> dict[str, Any]:
        async def repos() -> list[RepositorySummary]:
            result = await fetch_repositories(client, github, site.username, site.excluded_repos)
            if not result.ok:
                failed.append(("repos", result.error))
            return result.data or []

        async def stats() -> StatsSummary | None:
            result = await fetch_stats(client, github, site.username, site.excluded_repos)
            if not result.ok:
                failed.append(("stats", result.error))
            return result.data

        async def calendar() -> ContributionCalendar | None:
            result = await fetch_contribution_calendar(client, github, site.username)
            if not result.ok:
                failed.append(("calendar", result.error))
            return result.data

        key = site.username
        values = await asyncio.gather(
            cache.get(f"repos-{key}", repos, list[RepositorySummary]),
            cache.get(f"stats-{key}", stats, StatsSummary | None),
            cache.get(f"calendar-{key}", calendar, ContributionCalendar | None),
        )
        return dict(zip(DATASETS, values))

    if client is not None:
        values = await produce(client)
    else:
        async with httpx.AsyncClient(follow_redirects=True) as own_client:
            values = await produce(own_client)

    snapshot = {
        "username": site.username,
        "repos": [repo.model_dump(mode="json") for repo in values["repos"]],
        "stats": values["stats"].model_dump(mode="json") if values["stats"] else None,
        "calendar": values["calendar"].model_dump(mode="json") if values["calendar"] else None,
    }
    return snapshot, failed


def save_snapshot(snapshot: dict[str, Any], path: Path) -> None:
    """Save the snapshot with an atomic write."""
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_file = path.with_suffix(".tmp")
    with open(temp_file, "w") as f:
        json.dump(snapshot, f, indent=2)
    temp_file.replace(path)


def missing_datasets(snapshot: dict[str, Any]) -> list[str]:
    """Records that are unavailable, whether freshly failed or cached that way."""
    return [name for name in ("stats", "calendar") if snapshot.get(name) is None]


def generate_summary_report(
    snapshot: dict[str, Any], failed: list[tuple[str, str]]
) -> str:
    """Generate a short summary of what was produced."""
    stats = snapshot.get("stats") or {}
    calendar = snapshot.get("calendar") or {}
    lines = [
        f"## GitHub Data for {snapshot['username']}",
        "",
        f"- **Repositories:** {len(snapshot.get('repos') or [])}",
        f"- **Stars:** {stats.get('total_stars', '-')}",
        f"- **Most active day:** {stats.get('most_active_day', '-')}",
        f"- **Contributions (last year):** {calendar.get('total_contributions', '-')}",
        "",
    ]

    if stats.get("language_stats"):
        lines.append("### Languages")
        lines.append("")
        for share in stats["language_stats"]:
            lines.append(f"- {share['name']}: {share['percentage']}%")
        lines.append("")

    if failed:
        lines.append("### Failed")
        lines.append("")
        for dataset, error in failed:
            lines.append(f"- `{dataset}`: {error}")

    return "\n".join(lines)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument(
        "--config",
        type=Path,
        default=SITE_CONFIG_FILE,
        help=f"site configuration YAML (default: {SITE_CONFIG_FILE})",
    )
    parser.add_argument("--output", type=Path, help="override the output JSON path")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    print("=" * 60)
    print("Portfolio GitHub Data - Update")
    print("=" * 60)
    print()

    try:
        site = load_site_config(args.config)
        if args.output:
            site = site.model_copy(update={"output_file": args.output})

        snapshot, failed = asyncio.run(run_update(site, GitHubConfig.from_env()))
        save_snapshot(snapshot, site.output_file)
        print(f"Saved {site.output_file}")

        print("\n" + generate_summary_report(snapshot, failed))

        if failed or missing_datasets(snapshot):
            return 1
        return 0

    except Exception as e:
        print(f"\nFATAL ERROR: {e}")
        import traceback

        traceback.print_exc()
        return 2


if __name__ == "__main__":
    sys.exit(main())
