"""Profile statistics and contribution calendar from the GitHub GraphQL API."""

import logging
import math
from collections.abc import Iterable
from typing import Any

import httpx
from pydantic import ValidationError

from .client import GitHubAPIError, graphql
from .config import GitHubConfig
from .models import (
    ContributionCalendar,
    ContributionDay,
    ContributionWeek,
    FetchResult,
    LanguageShare,
    StatsSummary,
)

logger = logging.getLogger(__name__)

MAX_LANGUAGES = 5
DEFAULT_LANGUAGE_COLOR = "#8b949e"

LANGUAGE_COLORS = {
    "TypeScript": "#3178c6",
    "JavaScript": "#f1e05a",
    "Python": "#3572A5",
    "Java": "#b07219",
    "Go": "#00ADD8",
    "Rust": "#dea584",
    "C++": "#f34b7d",
    "C": "#555555",
    "Ruby": "#701516",
    "PHP": "#4F5D95",
    "Swift": "#F05138",
    "Kotlin": "#A97BFF",
    "Astro": "#ff5a03",
    "Vue": "#41b883",
    "React": "#61dafb",
    "HTML": "#e34c26",
    "CSS": "#563d7c",
    "Shell": "#89e051",
    "Dockerfile": "#384d54",
}

# Everything a bad response can raise while being reshaped
PAYLOAD_ERRORS = (
    httpx.HTTPError,
    GitHubAPIError,
    ValidationError,
    ValueError,
    KeyError,
    IndexError,
    TypeError,
)

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

CONTRIBUTION_LEVELS = {
    "NONE": 0,
    "FIRST_QUARTILE": 1,
    "SECOND_QUARTILE": 2,
    "THIRD_QUARTILE": 3,
    "FOURTH_QUARTILE": 4,
}

STATS_QUERY = """
query($username: String!) {
  user(login: $username) {
    repositories(first: 100, ownerAffiliations: OWNER, privacy: PUBLIC) {
      totalCount
      nodes {
        name
        stargazerCount
        primaryLanguage {
          name
          color
        }
        languages(first: 10) {
          edges {
            size
            node {
              name
              color
            }
          }
        }
      }
    }
    contributionsCollection {
      totalCommitContributions
      totalPullRequestContributions
      totalIssueContributions
      contributionCalendar {
        totalContributions
        weeks {
          contributionDays {
            contributionCount
            weekday
            date
          }
        }
      }
    }
  }
}
"""

CALENDAR_QUERY = """
query($username: String!) {
  user(login: $username) {
    contributionsCollection {
      contributionCalendar {
        totalContributions
        weeks {
          contributionDays {
            date
            contributionCount
            contributionLevel
          }
        }
      }
    }
  }
}
"""


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return int(math.floor(value + 0.5))


def aggregate_languages(
    repo_nodes: Iterable[dict[str, Any]], excluded_repos: Iterable[str] = ()
) -> list[LanguageShare]:
    """
    Sum language byte sizes across repositories and return the top shares.

    Percentages are taken against the total of all languages, so the
    returned (at most five) entries may sum to less than 100.
    """
    excluded = set(excluded_repos)
    sizes: dict[str, int] = {}
    total_size = 0

    for repo in repo_nodes:
        if repo.get("name") in excluded:
            continue
        for edge in repo["languages"]["edges"]:
            name = edge["node"]["name"]
            sizes[name] = sizes.get(name, 0) + edge["size"]
            total_size += edge["size"]

    shares = [
        LanguageShare(
            name=name,
            percentage=round_half_up(size / total_size * 100) if total_size else 0,
            color=LANGUAGE_COLORS.get(name, DEFAULT_LANGUAGE_COLOR),
        )
        for name, size in sizes.items()
    ]
    # sorted() is stable, so equal percentages keep first-seen order
    shares = sorted(shares, key=lambda share: share.percentage, reverse=True)
    return shares[:MAX_LANGUAGES]


def most_active_day(weeks: Iterable[dict[str, Any]]) -> str:
    """Name of the weekday with the most contributions; lowest index wins ties."""
    totals = [0] * len(DAY_NAMES)
    for week in weeks:
        for day in week["contributionDays"]:
            weekday = day["weekday"]
            if not 0 <= weekday < len(DAY_NAMES):
                raise ValueError(f"Weekday out of range: {weekday}")
            totals[weekday] += day["contributionCount"]

    best = 0
    for weekday, total in enumerate(totals):
        if total > totals[best]:
            best = weekday
    return DAY_NAMES[best]


def contribution_level(level: Any) -> int:
    return CONTRIBUTION_LEVELS.get(level, 0) if isinstance(level, str) else 0


def reshape_calendar(calendar: dict[str, Any]) -> ContributionCalendar:
    """Convert a GraphQL contribution calendar, keeping upstream ordering."""
    return ContributionCalendar(
        total_contributions=calendar["totalContributions"],
        weeks=[
            ContributionWeek(
                contribution_days=[
                    ContributionDay(
                        date=day["date"],
                        count=day["contributionCount"],
                        level=contribution_level(day.get("contributionLevel")),
                    )
                    for day in week["contributionDays"]
                ]
            )
            for week in calendar["weeks"]
        ],
    )


def build_stats(user: dict[str, Any], excluded_repos: Iterable[str] = ()) -> StatsSummary:
    """Reduce the stats query's ``user`` object into a StatsSummary."""
    repositories = user["repositories"]
    nodes = repositories["nodes"]
    contributions = user["contributionsCollection"]
    calendar = contributions["contributionCalendar"]

    return StatsSummary(
        total_repositories=repositories["totalCount"],
        total_commits=contributions["totalCommitContributions"],
        total_pull_requests=contributions["totalPullRequestContributions"],
        total_issues=contributions["totalIssueContributions"],
        total_stars=sum(repo["stargazerCount"] for repo in nodes),
        contributions_last_year=calendar["totalContributions"],
        most_active_day=most_active_day(calendar["weeks"]),
        language_stats=aggregate_languages(nodes, excluded_repos),
    )


def _user_from(data: dict[str, Any], username: str) -> dict[str, Any]:
    user = data.get("user")
    if not isinstance(user, dict):
        raise ValueError(f"No GitHub user found for {username}")
    return user


async def fetch_stats(
    client: httpx.AsyncClient,
    config: GitHubConfig,
    username: str,
    excluded_repos: Iterable[str] = (),
) -> FetchResult[StatsSummary]:
    """Fetch and aggregate profile statistics in a single GraphQL query."""
    try:
        data = await graphql(client, config, STATS_QUERY, {"username": username})
        stats = build_stats(_user_from(data, username), excluded_repos)
    except PAYLOAD_ERRORS as e:
        logger.error(f"Error fetching GitHub stats for {username}: {e}")
        return FetchResult.failure(str(e))

    return FetchResult.success(stats)


async def fetch_contribution_calendar(
    client: httpx.AsyncClient, config: GitHubConfig, username: str
) -> FetchResult[ContributionCalendar]:
    """Fetch the contribution calendar with per-day quartile levels."""
    try:
        data = await graphql(client, config, CALENDAR_QUERY, {"username": username})
        user = _user_from(data, username)
        calendar = reshape_calendar(user["contributionsCollection"]["contributionCalendar"])
    except PAYLOAD_ERRORS as e:
        logger.error(f"Error fetching contribution calendar for {username}: {e}")
        return FetchResult.failure(str(e))

    return FetchResult.success(calendar)


async def get_github_stats(
    username: str,
    excluded_repos: Iterable[str] = (),
    config: GitHubConfig | None = None,
    client: httpx.AsyncClient | None = None,
) -> StatsSummary | None:
    """Profile statistics, or None when they are unavailable."""
    config = config or GitHubConfig.from_env()

    if client is not None:
        result = await fetch_stats(client, config, username, excluded_repos)
    else:
        async with httpx.AsyncClient(follow_redirects=True) as own_client:
            result = await fetch_stats(own_client, config, username, excluded_repos)

    return result.data


async def get_contribution_calendar(
    username: str,
    config: GitHubConfig | None = None,
    client: httpx.AsyncClient | None = None,
) -> ContributionCalendar | None:
    """Contribution calendar, or None when it is unavailable."""
    config = config or GitHubConfig.from_env()

    if client is not None:
        result = await fetch_contribution_calendar(client, config, username)
    else:
        async with httpx.AsyncClient(follow_redirects=True) as own_client:
            result = await fetch_contribution_calendar(own_client, config, username)

    return result.data
