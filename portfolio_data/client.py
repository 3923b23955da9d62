"""Low-level GitHub REST and GraphQL request helpers."""

from datetime import datetime, timezone
from typing import Any

import httpx

from .config import GitHubConfig

REST_ACCEPT = "application/vnd.github.v3+json"


class GitHubAPIError(Exception):
    """Base class for failures talking to GitHub."""

    pass


class GitHubStatusError(GitHubAPIError):
    """Raised when GitHub answers with a non-success status."""

    def __init__(self, status_code: int, url: str):
        self.status_code = status_code
        self.url = url
        super().__init__(f"GitHub API error: {status_code} for {url}")


class RateLimitExceeded(GitHubStatusError):
    """Raised when GitHub API rate limit is exceeded."""

    def __init__(self, status_code: int, url: str, reset_time: datetime):
        super().__init__(status_code, url)
        self.reset_time = reset_time
        self.args = (f"Rate limit exceeded. Resets at {reset_time}",)


class GraphQLError(GitHubAPIError):
    """Raised when a GraphQL response carries an ``errors`` field."""

    def __init__(self, errors: list[Any]):
        self.errors = errors
        messages = [e.get("message", str(e)) if isinstance(e, dict) else str(e) for e in errors]
        super().__init__(f"GraphQL errors: {'; '.join(messages)}")


class MissingTokenError(GitHubAPIError):
    """Raised when an operation needs a token and none is configured."""

    def __init__(self) -> None:
        super().__init__("GitHub token not found. Add GITHUB_TOKEN to your .env file.")


def rest_headers(config: GitHubConfig) -> dict[str, str]:
    """Return headers for GitHub REST requests."""
    headers = {"Accept": REST_ACCEPT}
    if config.token:
        headers["Authorization"] = f"Bearer {config.token}"
    return headers


def graphql_headers(config: GitHubConfig) -> dict[str, str]:
    """Return headers for GitHub GraphQL requests."""
    if not config.token:
        raise MissingTokenError()
    return {
        "Authorization": f"Bearer {config.token}",
        "Content-Type": "application/json",
        "Cache-Control": "no-cache",
    }


def check_status(response: httpx.Response) -> None:
    """Raise a GitHubStatusError (or RateLimitExceeded) for non-2xx responses."""
    if response.is_success:
        return

    url = str(response.request.url)
    remaining = response.headers.get("X-RateLimit-Remaining")
    if response.status_code in (403, 429) and remaining == "0":
        reset_ts = int(response.headers.get("X-RateLimit-Reset", 0))
        reset_time = datetime.fromtimestamp(reset_ts, tz=timezone.utc)
        raise RateLimitExceeded(response.status_code, url, reset_time)

    raise GitHubStatusError(response.status_code, url)


async def get_json(
    client: httpx.AsyncClient,
    config: GitHubConfig,
    path: str,
    params: dict[str, Any] | None = None,
) -> Any:
    """GET a REST endpoint relative to the API root and decode the JSON body."""
    response = await client.get(
        f"{config.api_url}{path}", params=params, headers=rest_headers(config)
    )
    check_status(response)
    return response.json()


async def graphql(
    client: httpx.AsyncClient,
    config: GitHubConfig,
    query: str,
    variables: dict[str, Any],
) -> dict[str, Any]:
    """POST a GraphQL query and return its ``data`` member."""
    headers = graphql_headers(config)
    response = await client.post(
        config.graphql_url,
        json={"query": query, "variables": variables},
        headers=headers,
    )
    check_status(response)
    payload = response.json()

    if not isinstance(payload, dict):
        raise ValueError(f"Unexpected GraphQL payload: {type(payload).__name__}")
    if payload.get("errors") is not None:
        raise GraphQLError(payload["errors"])

    data = payload.get("data")
    if not isinstance(data, dict):
        raise ValueError("GraphQL response has no data")
    return data
