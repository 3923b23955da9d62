"""Pytest tests for statistics aggregation and the contribution calendar."""

import asyncio
import json

import httpx
import pytest

from portfolio_data.config import GitHubConfig
from portfolio_data.stats import (
    DEFAULT_LANGUAGE_COLOR,
    aggregate_languages,
    contribution_level,
    fetch_contribution_calendar,
    fetch_stats,
    get_contribution_calendar,
    get_github_stats,
    most_active_day,
    reshape_calendar,
    round_half_up,
)


def repo_node(name: str, stars: int, languages: dict[str, int]) -> dict:
    return {
        "name": name,
        "stargazerCount": stars,
        "primaryLanguage": None,
        "languages": {
            "edges": [{"size": size, "node": {"name": lang, "color": None}} for lang, size in languages.items()]
        },
    }


def week(*counts: int, start_weekday: int = 0) -> dict:
    return {
        "contributionDays": [
            {"contributionCount": count, "weekday": start_weekday + i, "date": f"2024-01-{i + 1:02d}"}
            for i, count in enumerate(counts)
        ]
    }


def stats_payload() -> dict:
    return {
        "data": {
            "user": {
                "repositories": {
                    "totalCount": 3,
                    "nodes": [
                        repo_node("site", 4, {"TypeScript": 600, "Astro": 200}),
                        repo_node("tool", 6, {"Python": 150, "TypeScript": 50}),
                        repo_node("empty", 0, {}),
                    ],
                },
                "contributionsCollection": {
                    "totalCommitContributions": 120,
                    "totalPullRequestContributions": 8,
                    "totalIssueContributions": 3,
                    "contributionCalendar": {
                        "totalContributions": 140,
                        "weeks": [week(0, 1, 2, 9, 1, 0, 0), week(1, 0, 3, 2, 0, 0, 0)],
                    },
                },
            }
        }
    }


def calendar_payload() -> dict:
    return {
        "data": {
            "user": {
                "contributionsCollection": {
                    "contributionCalendar": {
                        "totalContributions": 7,
                        "weeks": [
                            {
                                "contributionDays": [
                                    {"date": "2024-01-06", "contributionCount": 0, "contributionLevel": "NONE"},
                                ]
                            },
                            {
                                "contributionDays": [
                                    {"date": "2024-01-07", "contributionCount": 1, "contributionLevel": "FIRST_QUARTILE"},
                                    {"date": "2024-01-08", "contributionCount": 6, "contributionLevel": "FOURTH_QUARTILE"},
                                ]
                            },
                        ],
                    }
                }
            }
        }
    }


def run_with(handler, coro_factory, token="t0ken"):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await coro_factory(client, GitHubConfig(token=token))

    return asyncio.run(go())


# ============================================================================
# Pure reshaping helpers
# ============================================================================


@pytest.mark.parametrize(
    "level,expected",
    [
        ("NONE", 0),
        ("FIRST_QUARTILE", 1),
        ("SECOND_QUARTILE", 2),
        ("THIRD_QUARTILE", 3),
        ("FOURTH_QUARTILE", 4),
        ("FIFTH_QUARTILE", 0),
        ("", 0),
        (None, 0),
    ],
)
def test_contribution_level(level, expected):
    assert contribution_level(level) == expected


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(49.4) == 49
    assert round_half_up(0) == 0


def test_aggregate_languages_percentages_against_total():
    nodes = [
        repo_node("a", 0, {"TypeScript": 600, "Astro": 200}),
        repo_node("b", 0, {"Python": 150, "TypeScript": 50}),
    ]

    shares = aggregate_languages(nodes)

    assert [(s.name, s.percentage) for s in shares] == [("TypeScript", 65), ("Astro", 20), ("Python", 15)]
    assert shares[0].color == "#3178c6"


def test_aggregate_languages_truncates_to_five_and_sum_at_most_100():
    sizes = {"Python": 300, "Go": 250, "Rust": 200, "C": 100, "Ruby": 80, "Zig": 40, "Elixir": 30}
    total = sum(sizes.values())

    shares = aggregate_languages([repo_node("mono", 0, sizes)])

    assert len(shares) == 5
    assert sum(s.percentage for s in shares) <= 100
    for share in shares:
        assert share.percentage == round_half_up(100 * sizes[share.name] / total)
    assert "Zig" not in [s.name for s in shares]


def test_aggregate_languages_unknown_color_and_stable_ties():
    shares = aggregate_languages([repo_node("a", 0, {"Haskell": 10, "Elm": 10})])

    assert [s.name for s in shares] == ["Haskell", "Elm"]
    assert all(s.color == DEFAULT_LANGUAGE_COLOR for s in shares)


def test_aggregate_languages_skips_excluded_repos():
    nodes = [repo_node("keep", 0, {"Go": 100}), repo_node("drop", 0, {"Python": 300})]

    shares = aggregate_languages(nodes, excluded_repos=["drop"])

    assert [(s.name, s.percentage) for s in shares] == [("Go", 100)]


def test_aggregate_languages_empty():
    assert aggregate_languages([]) == []
    assert [s.percentage for s in aggregate_languages([repo_node("a", 0, {"Go": 0})])] == [0]


def test_most_active_day():
    assert most_active_day([week(0, 1, 2, 9, 1, 0, 0), week(1, 0, 3, 2, 0, 0, 0)]) == "Wednesday"


def test_most_active_day_tie_goes_to_lowest_weekday():
    # Partial first week starting on Thursday so Thursday is seen first
    weeks = [week(5, 0, 0, start_weekday=4), week(0, 5, 0, 0, 0, 0, 0)]

    assert most_active_day(weeks) == "Monday"


def test_most_active_day_empty_calendar():
    assert most_active_day([]) == "Sunday"


@pytest.mark.parametrize("weekday", [-1, 7])
def test_most_active_day_rejects_out_of_range_weekday(weekday):
    bad = {"contributionDays": [{"contributionCount": 3, "weekday": weekday, "date": "2024-01-01"}]}

    with pytest.raises(ValueError):
        most_active_day([bad])


def test_fetch_stats_out_of_range_weekday_is_a_failure():
    payload = stats_payload()
    calendar = payload["data"]["user"]["contributionsCollection"]["contributionCalendar"]
    calendar["weeks"][0]["contributionDays"][0]["weekday"] = -1

    result = run_with(
        lambda request: httpx.Response(200, json=payload),
        lambda client, config: fetch_stats(client, config, "octocat"),
    )

    assert not result.ok
    assert "Weekday out of range" in result.error


def test_reshape_calendar_preserves_order():
    raw = calendar_payload()["data"]["user"]["contributionsCollection"]["contributionCalendar"]

    calendar = reshape_calendar(raw)

    assert calendar.total_contributions == 7
    assert [[d.date for d in w.contribution_days] for w in calendar.weeks] == [
        ["2024-01-06"],
        ["2024-01-07", "2024-01-08"],
    ]
    assert [d.level for w in calendar.weeks for d in w.contribution_days] == [0, 1, 4]
    assert [d.count for w in calendar.weeks for d in w.contribution_days] == [0, 1, 6]


# ============================================================================
# GraphQL operations
# ============================================================================


def test_fetch_stats():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json=stats_payload())

    result = run_with(handler, lambda client, config: fetch_stats(client, config, "octocat"))

    assert result.ok
    stats = result.data
    assert stats.total_repositories == 3
    assert stats.total_commits == 120
    assert stats.total_pull_requests == 8
    assert stats.total_issues == 3
    assert stats.total_stars == 10
    assert stats.contributions_last_year == 140
    assert stats.most_active_day == "Wednesday"
    assert [(s.name, s.percentage) for s in stats.language_stats] == [
        ("TypeScript", 65),
        ("Astro", 20),
        ("Python", 15),
    ]

    request = seen["request"]
    body = json.loads(request.content)
    assert request.method == "POST"
    assert str(request.url) == "https://api.github.com/graphql"
    assert request.headers["Authorization"] == "Bearer t0ken"
    assert request.headers["Content-Type"] == "application/json"
    assert request.headers["Cache-Control"] == "no-cache"
    assert body["variables"] == {"username": "octocat"}
    assert "contributionsCollection" in body["query"]


def test_fetch_stats_without_token_makes_no_request():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=stats_payload())

    result = run_with(handler, lambda client, config: fetch_stats(client, config, "octocat"), token=None)

    assert not result.ok
    assert "GITHUB_TOKEN" in result.error
    assert calls == []


def test_fetch_stats_graphql_errors_return_nothing():
    payload = {"data": None, "errors": [{"message": "Could not resolve to a User"}]}

    result = run_with(
        lambda request: httpx.Response(200, json=payload),
        lambda client, config: fetch_stats(client, config, "ghost"),
    )

    assert not result.ok
    assert result.data is None
    assert "Could not resolve" in result.error


def test_fetch_stats_partial_payload_is_a_failure():
    payload = stats_payload()
    del payload["data"]["user"]["contributionsCollection"]["totalIssueContributions"]

    result = run_with(
        lambda request: httpx.Response(200, json=payload),
        lambda client, config: fetch_stats(client, config, "octocat"),
    )

    assert not result.ok
    assert result.data is None


def test_fetch_stats_unknown_user():
    result = run_with(
        lambda request: httpx.Response(200, json={"data": {"user": None}}),
        lambda client, config: fetch_stats(client, config, "ghost"),
    )

    assert not result.ok


def test_get_github_stats_returns_none_on_http_error():
    stats = run_with(
        lambda request: httpx.Response(502),
        lambda client, config: get_github_stats("octocat", config=config, client=client),
    )

    assert stats is None


def test_fetch_contribution_calendar():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=calendar_payload())

    result = run_with(handler, lambda client, config: fetch_contribution_calendar(client, config, "octocat"))

    assert result.ok
    assert result.data.total_contributions == 7
    assert len(result.data.weeks) == 2
    assert "contributionLevel" in seen["body"]["query"]
    assert "repositories" not in seen["body"]["query"]


def test_get_contribution_calendar_failures_return_none():
    errors = {"errors": [{"message": "rate limited"}]}

    assert (
        run_with(
            lambda request: httpx.Response(200, json=errors),
            lambda client, config: get_contribution_calendar("octocat", config=config, client=client),
        )
        is None
    )
    assert (
        run_with(
            lambda request: httpx.Response(200, json=calendar_payload()),
            lambda client, config: get_contribution_calendar("octocat", config=config, client=client),
            token=None,
        )
        is None
    )


def test_fetch_stats_network_error_is_a_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = run_with(handler, lambda client, config: fetch_stats(client, config, "octocat"))

    assert not result.ok
    assert result.data is None
    assert "connection refused" in result.error


def test_fetch_contribution_calendar_non_json_body_is_a_failure():
    result = run_with(
        lambda request: httpx.Response(200, content=b"<html>upstream error</html>"),
        lambda client, config: fetch_contribution_calendar(client, config, "octocat"),
    )

    assert not result.ok
    assert result.data is None


def test_get_contribution_calendar_network_error_returns_none():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    calendar = run_with(handler, lambda client, config: get_contribution_calendar("octocat", config=config, client=client))

    assert calendar is None
