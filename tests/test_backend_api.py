"""
Tests for the dashboard API endpoints.

These tests use FastAPI's TestClient with the shared Refresher replaced by a
mock, so no `gh` calls are made and no cache files are touched.
"""

from datetime import datetime, timezone
from unittest.mock import Mock, patch

import pytest
from fastapi.testclient import TestClient

from fetchers.github import GhCommandError
from models.data_models import (
    ActionableComment,
    CacheSnapshot,
    CommentStats,
    PullRequestAnalysis,
    PullRequestSummary,
    RepositorySummary,
    SeverityCounts,
    UpdateMetadata,
)

LAST_UPDATE = datetime(2025, 3, 12, 10, 0, tzinfo=timezone.utc)


def make_summary(number, actionable_count):
    comments = [
        ActionableComment(
            id=number * 10 + i,
            type="review_comment",
            author="bob",
            body="This is a bug",
            path="app.py",
            line=3,
            action_type="fix_required",
            severity="high",
        )
        for i in range(actionable_count)
    ]
    return PullRequestSummary(
        number=number,
        title=f"PR {number}",
        author="alice",
        created_at=datetime(2025, 3, 10, tzinfo=timezone.utc),
        url=f"https://github.com/octo/alpha/pull/{number}",
        actionable_comments=comments,
        actionable_count=actionable_count,
        severity_counts=SeverityCounts(high=actionable_count),
    )


@pytest.fixture
def snapshot():
    return CacheSnapshot(
        last_update=LAST_UPDATE,
        repositories=[
            RepositorySummary(
                owner="octo",
                name="alpha",
                url="https://github.com/octo/alpha",
                last_push=datetime(2025, 3, 11, tzinfo=timezone.utc),
                pull_requests=[make_summary(1, 1), make_summary(2, 3)],
            )
        ],
    )


@pytest.fixture
def mock_refresher(snapshot):
    """Mock Refresher serving the snapshot above."""
    mock = Mock()
    mock.repositories = ["octo/alpha", "octo/beta"]
    mock.is_refreshing = False
    mock.load_cached.return_value = snapshot
    mock.get_metadata.return_value = UpdateMetadata.from_snapshot(snapshot)
    return mock


@pytest.fixture
def client(test_env, mock_refresher):
    """Create FastAPI test client with a mocked Refresher and no scheduler thread."""
    with patch('backend.routes.refresher', mock_refresher), \
            patch('backend.app.start_background_scheduler'):
        from backend.app import app
        with TestClient(app) as test_client:
            yield test_client


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert "schedulerEnabled" in data


class TestCachedData:
    def test_returns_snapshot(self, client):
        response = client.get("/api/cached-data")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["fromCache"] is True
        assert data["data"]["schemaVersion"] == 1
        assert data["data"]["repositories"][0]["name"] == "alpha"
        assert data["lastUpdate"]["totalPRs"] == 2
        assert data["lastUpdate"]["totalActionableComments"] == 4

    def test_last_update_derived_from_snapshot(self, client, mock_refresher):
        """A metadata file from an older refresh never pairs with a newer snapshot."""
        mock_refresher.get_metadata.return_value = UpdateMetadata(
            last_update=datetime(2025, 3, 1, tzinfo=timezone.utc),
            repository_count=5,
            total_prs=9,
            total_actionable_comments=30,
        )

        data = client.get("/api/cached-data").json()

        assert data["lastUpdate"]["lastUpdate"] == data["data"]["lastUpdate"]
        assert data["lastUpdate"]["repositoryCount"] == 1
        assert data["lastUpdate"]["totalPRs"] == 2

    def test_no_cache_yet(self, client, mock_refresher):
        mock_refresher.load_cached.return_value = None
        mock_refresher.get_metadata.return_value = None

        response = client.get("/api/cached-data")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert "No cached data" in data["error"]
        assert data["lastUpdate"] is None


class TestStatus:
    def test_status(self, client, mock_refresher):
        mock_refresher.is_refreshing = True

        data = client.get("/api/status").json()

        assert data["refreshInProgress"] is True
        assert data["lastUpdate"]["repositoryCount"] == 1


class TestFetchData:
    def test_starts_background_refresh(self, client, mock_refresher):
        response = client.post("/api/fetch-data")

        assert response.status_code == 202
        assert response.json()["success"] is True
        mock_refresher.refresh_if_idle.assert_called_once()

    def test_conflict_when_refresh_running(self, client, mock_refresher):
        mock_refresher.is_refreshing = True

        response = client.post("/api/fetch-data")

        assert response.status_code == 409
        mock_refresher.refresh_if_idle.assert_not_called()

    def test_background_failure_is_logged(self, client, mock_refresher):
        mock_refresher.refresh_if_idle.side_effect = RuntimeError("disk full")

        response = client.post("/api/fetch-data")

        assert response.status_code == 202


class TestRepos:
    def test_lists_configured_repos(self, client):
        data = client.get("/api/repos").json()

        assert data["success"] is True
        repos = {r["name"]: r for r in data["repos"]}
        assert repos["alpha"]["hasCachedData"] is True
        assert repos["alpha"]["actionableCount"] == 4
        assert repos["beta"]["hasCachedData"] is False
        assert repos["beta"]["url"] == "https://github.com/octo/beta"
        assert data["repos"][0]["name"] == "alpha"

    def test_repo_prs_sorted_by_actionable_count(self, client):
        response = client.get("/api/repos/octo/alpha/prs")

        assert response.status_code == 200
        prs = response.json()["prs"]
        assert [pr["number"] for pr in prs] == [2, 1]
        assert prs[0]["actionableComments"][0]["actionType"] == "fix_required"

    def test_repo_prs_not_cached(self, client):
        response = client.get("/api/repos/octo/beta/prs")

        assert response.status_code == 404


class TestPrComments:
    def test_returns_analysis(self, client, mock_refresher, snapshot):
        pr = snapshot.find_pull_request("octo", "alpha", 2)
        mock_refresher.analyze_pr.return_value = PullRequestAnalysis(
            pull_request=pr,
            stats=CommentStats(total=3, by_type={"review_comment": 3}, by_severity={"high": 3}),
            from_cache=True,
            last_update=LAST_UPDATE,
        )

        response = client.get("/api/repos/octo/alpha/prs/2/comments")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["fromCache"] is True
        assert data["stats"]["bySeverity"] == {"high": 3}
        assert data["pullRequest"]["number"] == 2
        mock_refresher.analyze_pr.assert_called_once_with("octo", "alpha", 2, use_cache=True)

    def test_use_cache_false_passed_through(self, client, mock_refresher, snapshot):
        mock_refresher.analyze_pr.return_value = PullRequestAnalysis(
            pull_request=snapshot.find_pull_request("octo", "alpha", 1),
            stats=CommentStats(total=1),
        )

        client.get("/api/repos/octo/alpha/prs/1/comments?use_cache=false")

        mock_refresher.analyze_pr.assert_called_once_with("octo", "alpha", 1, use_cache=False)

    def test_gh_failure_is_bad_gateway(self, client, mock_refresher):
        mock_refresher.analyze_pr.side_effect = GhCommandError(
            "gh pr view 99", "Could not resolve to a PullRequest"
        )

        response = client.get("/api/repos/octo/alpha/prs/99/comments")

        assert response.status_code == 502
        assert "Could not resolve" in response.json()["detail"]

    def test_unexpected_error_is_500(self, client, mock_refresher):
        mock_refresher.analyze_pr.side_effect = ValueError("boom")

        response = client.get("/api/repos/octo/alpha/prs/1/comments")

        assert response.status_code == 500
