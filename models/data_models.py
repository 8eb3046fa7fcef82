"""Data models for pull-request comments, classifications and the cache snapshot.

Models serialize to camelCase JSON (the dashboard's wire format) while keeping
snake_case attributes in Python. Both spellings are accepted on input.
"""

from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CommentType = Literal["review_comment", "general_comment", "review"]
ActionType = Literal["fix_required", "improvement_needed", "suggestion", "question", "request"]
Severity = Literal["high", "medium", "low"]

SNAPSHOT_SCHEMA_VERSION = 1


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Classification(CamelModel):
    """Actionability verdict for a single comment body.

    Non-actionable verdicts carry no action type or severity.
    """

    model_config = ConfigDict(frozen=True)

    actionable: bool
    action_type: Optional[ActionType] = None
    severity: Optional[Severity] = None


class Comment(CamelModel):
    """A review comment, general comment or formal review fetched from GitHub."""

    id: Union[int, str]
    type: CommentType
    author: str
    body: str
    created_at: Optional[datetime] = None
    path: Optional[str] = None
    line: Optional[int] = None
    url: Optional[str] = None
    state: Optional[str] = None  # reviews only


class ActionableComment(Comment):
    """Comment tagged with the classification that made it actionable."""

    action_type: ActionType
    severity: Severity


class SeverityCounts(CamelModel):
    high: int = 0
    medium: int = 0
    low: int = 0

    @property
    def total(self) -> int:
        return self.high + self.medium + self.low


class CommentStats(CamelModel):
    """Per-PR breakdown of actionable comments by type and severity."""

    total: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)
    by_severity: dict[str, int] = Field(default_factory=dict)


class PullRequestSummary(CamelModel):
    """A pull request together with its actionable comments.

    Rebuilt from scratch on every refresh cycle.
    """

    number: int
    title: str
    author: str
    created_at: datetime
    url: Optional[str] = None
    updated_at: Optional[datetime] = None
    review_decision: Optional[str] = None
    is_draft: Optional[bool] = None
    actionable_comments: list[ActionableComment] = Field(default_factory=list)
    actionable_count: int = 0
    severity_counts: SeverityCounts = Field(default_factory=SeverityCounts)


class RepositorySummary(CamelModel):
    owner: str
    name: str
    url: str
    last_push: datetime
    pull_requests: list[PullRequestSummary] = Field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def actionable_count(self) -> int:
        return sum(pr.actionable_count for pr in self.pull_requests)


class CacheSnapshot(CamelModel):
    """Full aggregate of all monitored repositories, persisted as one file."""

    schema_version: int = SNAPSHOT_SCHEMA_VERSION
    last_update: datetime
    repositories: list[RepositorySummary] = Field(default_factory=list)

    def find_repository(self, owner: str, name: str) -> Optional[RepositorySummary]:
        for repository in self.repositories:
            if repository.owner == owner and repository.name == name:
                return repository
        return None

    def find_pull_request(self, owner: str, name: str, number: int) -> Optional[PullRequestSummary]:
        repository = self.find_repository(owner, name)
        if repository is None:
            return None
        for pr in repository.pull_requests:
            if pr.number == number:
                return pr
        return None


class UpdateMetadata(CamelModel):
    """Small companion summary of a snapshot for cheap status queries."""

    last_update: datetime
    repository_count: int
    total_prs: int = Field(alias="totalPRs")
    total_actionable_comments: int

    @classmethod
    def from_snapshot(cls, snapshot: CacheSnapshot) -> "UpdateMetadata":
        return cls(
            last_update=snapshot.last_update,
            repository_count=len(snapshot.repositories),
            total_prs=sum(len(repo.pull_requests) for repo in snapshot.repositories),
            total_actionable_comments=sum(repo.actionable_count for repo in snapshot.repositories),
        )


class DiffSummary(CamelModel):
    """Size of a pull request's unified diff."""

    files_changed: int = 0
    additions: int = 0
    deletions: int = 0


class PullRequestAnalysis(CamelModel):
    """Single-PR view served either from the cache or from a live fetch."""

    pull_request: PullRequestSummary
    stats: CommentStats
    diff: Optional[DiffSummary] = None
    from_cache: bool = False
    last_update: Optional[datetime] = None
