"""Configuration for the GitHub data layer, passed explicitly to each component."""

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

GITHUB_API = "https://api.github.com"
GITHUB_GRAPHQL_API = f"{GITHUB_API}/graphql"

ENV_GITHUB_TOKEN = "GITHUB_TOKEN"
ENV_GITHUB_USERNAME = "GITHUB_USERNAME"

DEFAULT_CACHE_DIR = Path(".astro") / "github-cache"
DEFAULT_OUTPUT_FILE = Path("data") / "github.json"
SITE_CONFIG_FILE = Path("data") / "site.yaml"


class GitHubConfig(BaseModel):
    """Credentials and endpoints for GitHub API calls."""

    token: str | None = None
    api_url: str = GITHUB_API
    graphql_url: str = GITHUB_GRAPHQL_API

    @classmethod
    def from_env(cls) -> "GitHubConfig":
        """Build a config from the process environment."""
        token = os.environ.get(ENV_GITHUB_TOKEN, "").strip()
        return cls(token=token or None)


class SiteConfig(BaseModel):
    """Which user to show on the site and where to keep cached data."""

    username: str = Field(min_length=1)
    excluded_repos: list[str] = Field(default_factory=list)
    cache_dir: Path = DEFAULT_CACHE_DIR
    output_file: Path = DEFAULT_OUTPUT_FILE


def load_site_config(path: Path = SITE_CONFIG_FILE) -> SiteConfig:
    """
    Load site configuration from a YAML file.

    ``GITHUB_USERNAME`` in the environment overrides the file's username.
    """
    data: dict = {}
    if path.exists():
        with open(path) as f:
            data = yaml.safe_load(f) or {}

    username = os.environ.get(ENV_GITHUB_USERNAME, "").strip()
    if username:
        data["username"] = username

    return SiteConfig.model_validate(data)
