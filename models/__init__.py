"""Data models for the PR comment radar."""

from models.config_models import Config, GitHubCliConfig, RefreshConfig, SchedulerConfig
from models.data_models import (
    ActionableComment,
    CacheSnapshot,
    Classification,
    Comment,
    CommentStats,
    DiffSummary,
    PullRequestAnalysis,
    PullRequestSummary,
    RepositorySummary,
    SeverityCounts,
    UpdateMetadata,
)

__all__ = [
    "Config",
    "GitHubCliConfig",
    "RefreshConfig",
    "SchedulerConfig",
    "ActionableComment",
    "CacheSnapshot",
    "Classification",
    "Comment",
    "CommentStats",
    "DiffSummary",
    "PullRequestAnalysis",
    "PullRequestSummary",
    "RepositorySummary",
    "SeverityCounts",
    "UpdateMetadata",
]
