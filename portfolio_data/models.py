"""Pydantic models for repository listings, statistics and cache entries."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class RepositorySummary(BaseModel):
    """Snapshot of a repository as returned by the REST listing endpoint."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    full_name: str
    description: str | None = None
    html_url: str = ""
    homepage: str | None = None
    language: str | None = None
    topics: list[str] = Field(default_factory=list)
    stargazers_count: int = 0
    forks_count: int = 0
    created_at: str
    updated_at: str
    pushed_at: str | None = None
    fork: bool = False

    @property
    def url(self) -> str:
        return self.html_url or f"https://github.com/{self.full_name}"


class LanguageShare(BaseModel):
    """Share of a language in the user's code, by bytes."""

    name: str
    percentage: int = Field(ge=0, le=100)
    color: str


class StatsSummary(BaseModel):
    """Aggregate profile statistics for display."""

    total_repositories: int
    total_commits: int
    total_pull_requests: int
    total_issues: int
    total_stars: int
    contributions_last_year: int
    most_active_day: str
    language_stats: list[LanguageShare] = Field(default_factory=list, max_length=5)


class ContributionDay(BaseModel):
    date: str
    count: int = Field(ge=0)
    level: int = Field(ge=0, le=4)


class ContributionWeek(BaseModel):
    contribution_days: list[ContributionDay] = Field(default_factory=list)


class ContributionCalendar(BaseModel):
    """Contribution calendar, oldest week first."""

    total_contributions: int
    weeks: list[ContributionWeek] = Field(default_factory=list)


class CacheEntry(BaseModel):
    """On-disk cache record; timestamp is epoch milliseconds."""

    data: Any
    timestamp: int


class FetchResult(BaseModel, Generic[T]):
    """
    Outcome of a remote call.

    ``data`` is set on success, ``error`` describes why the call failed.
    A successful call may still carry empty data (e.g. a user with no
    repositories), which is what separates it from a failure.
    """

    data: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: T) -> "FetchResult[T]":
        return cls(data=data)

    @classmethod
    def failure(cls, error: str) -> "FetchResult[T]":
        return cls(error=error)
