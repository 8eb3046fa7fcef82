"""Shared pytest fixtures and configuration."""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from fetchers.github import GitHubFetcher
from pipeline.refresher import Refresher
from storage.cache_store import CacheStore

NOW = datetime(2025, 3, 12, 10, 0, 0, tzinfo=timezone.utc)


def iso(dt: datetime) -> str:
    """Format a datetime the way the GitHub API does."""
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def days_ago(days: float) -> str:
    return iso(NOW - timedelta(days=days))


def make_repo(owner: str, name: str, pushed_days_ago: float = 1) -> dict:
    """`gh repo view --json name,owner,url,updatedAt,pushedAt` output."""
    return {
        "name": name,
        "owner": {"login": owner},
        "url": f"https://github.com/{owner}/{name}",
        "updatedAt": days_ago(pushed_days_ago),
        "pushedAt": days_ago(pushed_days_ago),
    }


def make_pr(number: int, title: str = "Some change", created_days_ago: float = 2, author: str = "alice") -> dict:
    """`gh pr list --json ...` entry."""
    return {
        "number": number,
        "title": title,
        "author": {"login": author},
        "createdAt": days_ago(created_days_ago),
        "updatedAt": days_ago(created_days_ago),
        "url": f"https://github.com/o/r/pull/{number}",
        "reviewDecision": "",
        "isDraft": False,
    }


def make_review_comment(comment_id: int, body: str, user: str = "bob", path: str = "app.py", line: int = 10) -> dict:
    """REST pull request review comment."""
    return {
        "id": comment_id,
        "user": {"login": user},
        "body": body,
        "created_at": days_ago(1),
        "path": path,
        "line": line,
        "html_url": f"https://github.com/o/r/pull/1#discussion_r{comment_id}",
    }


def make_general_comment(comment_id: str, body: str, author: str = "carol") -> dict:
    """`gh pr view --json comments` entry."""
    return {
        "id": comment_id,
        "author": {"login": author},
        "body": body,
        "createdAt": days_ago(1),
    }


def make_review(review_id: int, body: str, state: str = "CHANGES_REQUESTED", user: str = "dave") -> dict:
    """REST pull request review."""
    return {
        "id": review_id,
        "user": {"login": user},
        "body": body,
        "state": state,
        "submitted_at": days_ago(1),
        "html_url": f"https://github.com/o/r/pull/1#pullrequestreview-{review_id}",
    }


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def mock_fetcher():
    """GitHubFetcher mock with every source returning nothing."""
    fetcher = Mock(spec=GitHubFetcher)
    fetcher.fetch_pr_list.return_value = []
    fetcher.fetch_review_comments.return_value = []
    fetcher.fetch_general_comments.return_value = []
    fetcher.fetch_reviews.return_value = []
    fetcher.fetch_pr_diff.return_value = ""
    return fetcher


@pytest.fixture
def store(tmp_path):
    return CacheStore(str(tmp_path / "data"))


@pytest.fixture
def make_refresher(mock_fetcher, store):
    """Build a Refresher over the mock fetcher with a fixed clock."""
    def _make(repositories=("o/r",), **kwargs):
        return Refresher(
            fetcher=mock_fetcher,
            store=store,
            repositories=list(repositories),
            clock=lambda: NOW,
            **kwargs,
        )
    return _make


@pytest.fixture
def test_env(monkeypatch, tmp_path):
    """
    Set up valid environment variables for config loading.

    Uses a temporary data directory so tests never touch a real cache.
    """
    data_dir = str(tmp_path / "data")
    monkeypatch.setenv("MONITORED_REPOS", "octo/alpha, octo/beta")
    monkeypatch.setenv("DATA_DIR", data_dir)
    monkeypatch.setenv("SCHEDULER_ENABLED", "false")
    monkeypatch.setenv("ACTIVE_WEEKDAYS", "1,2,3")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    return {
        "repositories": ["octo/alpha", "octo/beta"],
        "data_dir": data_dir,
        "weekdays": [1, 2, 3],
        "log_level": "DEBUG",
    }


@pytest.fixture
def invalid_env(monkeypatch):
    """
    Set up invalid environment variables for testing validation.
    """
    monkeypatch.setenv("MONITORED_REPOS", "not-a-repo")
    monkeypatch.setenv("ACTIVE_START_HOUR", "20")
    monkeypatch.setenv("ACTIVE_END_HOUR", "8")
