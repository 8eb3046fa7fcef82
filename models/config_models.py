"""Configuration models for validation using Pydantic."""

from typing import Literal
from pydantic import BaseModel, Field, field_validator, model_validator


DEFAULT_REPOSITORIES = ["h1-aot/aot-base", "ppaul-h-aot/MRToolGH"]


class GitHubCliConfig(BaseModel):
    """Settings for the `gh` subprocess boundary."""

    gh_path: str = Field(default="gh", min_length=1, description="Path to the gh executable")
    timeout_seconds: float = Field(default=60, gt=0, le=600, description="Per-call timeout")
    max_output_mb: int = Field(default=50, ge=1, le=512, description="Per-call output cap in MB")

    @property
    def max_output_bytes(self) -> int:
        return self.max_output_mb * 1024 * 1024


class RefreshConfig(BaseModel):
    """Which repositories to poll and how far back to look."""

    repositories: list[str] = Field(default_factory=lambda: list(DEFAULT_REPOSITORIES))
    data_dir: str = Field(default="data", min_length=1, description="Directory for cache files")
    stale_after_days: int = Field(default=30, ge=1, description="Skip repos not pushed within this window")
    pr_window_days: int = Field(default=30, ge=1, description="Only PRs created within this window")
    pr_state: Literal["open", "closed", "merged", "all"] = "all"
    pr_limit: int = Field(default=50, ge=1, le=1000)

    @field_validator("repositories")
    @classmethod
    def validate_repositories(cls, v: list[str]) -> list[str]:
        """Ensure every entry looks like owner/name."""
        cleaned = []
        for entry in v:
            entry = entry.strip()
            if not entry:
                continue
            owner, _, name = entry.partition("/")
            if not owner or not name or "/" in name:
                raise ValueError(f"Repository must be in 'owner/name' format: {entry!r}")
            cleaned.append(entry)
        if not cleaned:
            raise ValueError("At least one repository must be configured in MONITORED_REPOS")
        return cleaned


class SchedulerConfig(BaseModel):
    """Active window for automatic refreshes."""

    enabled: bool = True
    weekdays: list[int] = Field(default_factory=lambda: [1, 2, 3, 4, 5], description="ISO weekdays, Monday=1")
    start_hour: int = Field(default=9, ge=0, le=23)
    end_hour: int = Field(default=18, ge=1, le=24)
    interval_hours: int = Field(default=3, ge=1, le=24)

    @field_validator("weekdays")
    @classmethod
    def validate_weekdays(cls, v: list[int]) -> list[int]:
        """Validate weekdays are ISO weekday numbers."""
        if not v:
            raise ValueError("At least one active weekday is required")
        invalid = [day for day in v if day < 1 or day > 7]
        if invalid:
            raise ValueError(f"Weekdays must be between 1 (Monday) and 7 (Sunday), got {invalid}")
        return sorted(set(v))

    @model_validator(mode='after')
    def validate_hour_range(self):
        """Ensure the active window is not empty."""
        if self.start_hour >= self.end_hour:
            raise ValueError(
                f"Active start hour ({self.start_hour}) must be before end hour ({self.end_hour})"
            )
        return self


class Config(BaseModel):
    """Application configuration."""

    github: GitHubCliConfig = Field(default_factory=GitHubCliConfig)
    refresh: RefreshConfig = Field(default_factory=RefreshConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v_upper
