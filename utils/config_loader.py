"""Configuration loader that reads from .env and validates with Pydantic."""

import os
import sys
from pathlib import Path
from typing import Any, Optional
from dotenv import load_dotenv
from pydantic import ValidationError

from models.config_models import Config, GitHubCliConfig, RefreshConfig, SchedulerConfig


def _split_env(name: str) -> Optional[list[str]]:
    """Read a comma-separated environment variable as a list (None when unset)."""
    raw = os.getenv(name)
    if raw is None:
        return None
    return [part.strip() for part in raw.split(",") if part.strip()]


def _env_fields(mapping: dict[str, Any]) -> dict[str, Any]:
    """Drop unset values so model defaults apply."""
    return {key: value for key, value in mapping.items() if value is not None}


def load_config() -> Config:
    """
    Load and validate configuration from environment variables.

    Reads from .env file in the project root (if present) and validates
    every setting using Pydantic models. Unset variables fall back to the
    model defaults.

    Returns:
        Config: Validated configuration object

    Raises:
        SystemExit: If configuration is invalid
    """
    # Load .env file from project root
    env_path = Path(__file__).parent.parent / ".env"
    load_dotenv(dotenv_path=env_path)

    try:
        config = Config(
            github=GitHubCliConfig(**_env_fields({
                "gh_path": os.getenv("GH_PATH"),
                "timeout_seconds": os.getenv("GH_TIMEOUT_SECONDS"),
                "max_output_mb": os.getenv("GH_MAX_OUTPUT_MB"),
            })),
            refresh=RefreshConfig(**_env_fields({
                "repositories": _split_env("MONITORED_REPOS"),
                "data_dir": os.getenv("DATA_DIR"),
                "stale_after_days": os.getenv("STALE_AFTER_DAYS"),
                "pr_window_days": os.getenv("PR_WINDOW_DAYS"),
                "pr_state": os.getenv("PR_STATE"),
                "pr_limit": os.getenv("PR_LIMIT"),
            })),
            scheduler=SchedulerConfig(**_env_fields({
                "enabled": os.getenv("SCHEDULER_ENABLED"),
                "weekdays": _split_env("ACTIVE_WEEKDAYS"),
                "start_hour": os.getenv("ACTIVE_START_HOUR"),
                "end_hour": os.getenv("ACTIVE_END_HOUR"),
                "interval_hours": os.getenv("REFRESH_INTERVAL_HOURS"),
            })),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

        return config

    except ValidationError as e:
        print("❌ Configuration validation failed:", file=sys.stderr)
        print("\nPlease check your .env file. Missing or invalid fields:", file=sys.stderr)

        for error in e.errors():
            field_path = " → ".join(str(x) for x in error["loc"])
            message = error["msg"]
            print(f"  • {field_path}: {message}", file=sys.stderr)

        print("\nHint: Copy .env.example to .env and adjust the settings.", file=sys.stderr)
        sys.exit(1)
