"""GitHub data layer for the portfolio site: repositories, stats and a file cache."""

from .cache import FreshnessCache, get_cached_data
from .config import GitHubConfig, SiteConfig, load_site_config
from .fetcher import fetch_repositories, get_github_repos
from .stats import (
    fetch_contribution_calendar,
    fetch_stats,
    get_contribution_calendar,
    get_github_stats,
)

__all__ = [
    "FreshnessCache",
    "GitHubConfig",
    "SiteConfig",
    "fetch_contribution_calendar",
    "fetch_repositories",
    "fetch_stats",
    "get_cached_data",
    "get_contribution_calendar",
    "get_github_repos",
    "get_github_stats",
    "load_site_config",
]
