"""Repository listing from the GitHub REST API."""

import logging
from collections.abc import Iterable

import httpx
from pydantic import ValidationError

from .client import GitHubAPIError, get_json
from .config import GitHubConfig
from .models import FetchResult, RepositorySummary

logger = logging.getLogger(__name__)

USER_REPOS_ENDPOINT = "/users/{username}/repos"
REPOS_PER_PAGE = 100


def select_repositories(
    repos: Iterable[RepositorySummary], excluded_repos: Iterable[str] = ()
) -> list[RepositorySummary]:
    """Drop forks and excluded names, most-starred first."""
    excluded = set(excluded_repos)
    kept = [repo for repo in repos if not repo.fork and repo.name not in excluded]
    return sorted(kept, key=lambda repo: repo.stargazers_count, reverse=True)


async def fetch_repositories(
    client: httpx.AsyncClient,
    config: GitHubConfig,
    username: str,
    excluded_repos: Iterable[str] = (),
) -> FetchResult[list[RepositorySummary]]:
    """
    Fetch a user's public repositories.

    Only the first page of up to 100 repositories is requested. Any failure
    (network, HTTP status, malformed payload) yields a failed result.
    """
    if not username:
        return FetchResult.failure("username must not be empty")

    try:
        payload = await get_json(
            client,
            config,
            USER_REPOS_ENDPOINT.format(username=username),
            params={"sort": "updated", "per_page": REPOS_PER_PAGE},
        )
        if not isinstance(payload, list):
            raise ValueError(f"Expected a list of repositories, got {type(payload).__name__}")
        repos = [RepositorySummary.model_validate(item) for item in payload]
    except (httpx.HTTPError, GitHubAPIError, ValueError, ValidationError) as e:
        logger.error(f"Error fetching GitHub repos for {username}: {e}")
        return FetchResult.failure(str(e))

    return FetchResult.success(select_repositories(repos, excluded_repos))


async def get_github_repos(
    username: str,
    excluded_repos: Iterable[str] = (),
    config: GitHubConfig | None = None,
    client: httpx.AsyncClient | None = None,
) -> list[RepositorySummary]:
    """Fetch repositories for display; returns an empty list on any failure."""
    config = config or GitHubConfig.from_env()

    if client is not None:
        result = await fetch_repositories(client, config, username, excluded_repos)
    else:
        async with httpx.AsyncClient(follow_redirects=True) as own_client:
            result = await fetch_repositories(own_client, config, username, excluded_repos)

    return result.data if result.ok else []
