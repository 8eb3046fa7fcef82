"""
API routes for the PR comment dashboard.

Serves the cached snapshot, its metadata, per-PR actionable comments and a
manual refresh trigger. A single Refresher is built once at import time and
shared by every request.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query
from pydantic import BaseModel

from fetchers.github import GhCommandError
from models.data_models import UpdateMetadata
from pipeline.refresher import Refresher, split_repository
from utils.config_loader import load_config
from utils.logger import setup_logger

config = load_config()
logger = setup_logger(config.log_level, name=__name__)

refresher = Refresher.from_config(config)

router = APIRouter(prefix="/api", tags=["prs"])


class FetchDataResponse(BaseModel):
    """Response model for the manual refresh trigger."""
    success: bool
    message: str
    timestamp: str


def _dump(model: Optional[BaseModel]) -> Optional[Dict[str, Any]]:
    if model is None:
        return None
    return model.model_dump(mode="json", by_alias=True)


@router.get("/cached-data")
def get_cached_data():
    """
    Return the full cached snapshot.

    Returns:
    - success: False when no cache exists yet
    - data: The snapshot (repositories, PRs, actionable comments)
    - lastUpdate: Metadata derived from the same snapshot, so the two always agree
    - fromCache: Always true when data is present
    """
    snapshot = refresher.load_cached()

    if snapshot is None:
        return {
            "success": False,
            "error": "No cached data available. Please wait for the next data fetch or trigger a manual fetch.",
            "lastUpdate": None,
            "fromCache": False,
        }

    return {
        "success": True,
        "data": _dump(snapshot),
        "lastUpdate": _dump(UpdateMetadata.from_snapshot(snapshot)),
        "fromCache": True,
    }


@router.get("/status")
def get_status():
    """Cheap status check: last-update metadata and whether a refresh is running."""
    return {
        "lastUpdate": _dump(refresher.get_metadata()),
        "refreshInProgress": refresher.is_refreshing,
    }


def _run_background_refresh() -> None:
    try:
        refresher.refresh_if_idle()
    except Exception as e:
        logger.error(f"❌ Background fetch failed: {e}")


@router.post("/fetch-data", response_model=FetchDataResponse, status_code=202)
def trigger_fetch(background_tasks: BackgroundTasks):
    """
    Start a full refresh in the background.

    Returns 409 if a refresh is already running.
    """
    if refresher.is_refreshing:
        raise HTTPException(status_code=409, detail="A data fetch is already in progress")

    logger.info("🔄 Manual data refresh requested")
    background_tasks.add_task(_run_background_refresh)

    return {
        "success": True,
        "message": "Data fetch started in background",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/repos")
def list_repos():
    """
    List configured repositories with their cached actionable comment counts.

    Repositories missing from the cache are listed with hasCachedData=false.
    """
    snapshot = refresher.load_cached()
    repos: List[Dict[str, Any]] = []

    for full_name in refresher.repositories:
        owner, name = split_repository(full_name)
        cached = snapshot.find_repository(owner, name) if snapshot else None
        repos.append({
            "owner": owner,
            "name": name,
            "url": cached.url if cached else f"https://github.com/{full_name}",
            "lastPush": cached.last_push.isoformat() if cached else None,
            "hasCachedData": cached is not None,
            "actionableCount": cached.actionable_count if cached else 0,
        })

    repos.sort(key=lambda r: r["actionableCount"], reverse=True)
    return {
        "success": True,
        "repos": repos,
        "lastUpdate": snapshot.last_update.isoformat() if snapshot else None,
    }


@router.get("/repos/{owner}/{repo}/prs")
def list_repo_prs(owner: str, repo: str):
    """Cached PRs with actionable comments for one repository, most actionable first."""
    snapshot = refresher.load_cached()
    repository = snapshot.find_repository(owner, repo) if snapshot else None

    if repository is None:
        raise HTTPException(
            status_code=404,
            detail=f"No cached actionable comments for {owner}/{repo}",
        )

    prs = sorted(repository.pull_requests, key=lambda pr: pr.actionable_count, reverse=True)
    return {
        "success": True,
        "prs": [_dump(pr) for pr in prs],
        "fromCache": True,
        "lastUpdate": snapshot.last_update.isoformat(),
    }


@router.get("/repos/{owner}/{repo}/prs/{pr_number}/comments")
def get_pr_comments(
    owner: str,
    repo: str,
    pr_number: int,
    use_cache: bool = Query(True, description="Serve from the cache when the PR is cached"),
):
    """
    Actionable comments of a single PR with per-type and per-severity stats.

    Uses the cache when possible, otherwise fetches live through the GitHub CLI.
    """
    try:
        analysis = refresher.analyze_pr(owner, repo, pr_number, use_cache=use_cache)
    except GhCommandError as e:
        logger.error(f"Failed to analyze {owner}/{repo} PR #{pr_number}: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error analyzing {owner}/{repo} PR #{pr_number}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to analyze PR: {str(e)}")

    return {"success": True, **_dump(analysis)}
