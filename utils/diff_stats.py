"""Helpers for sizing a unified diff."""

from models.data_models import DiffSummary


def count_additions(diff: str) -> int:
    """Count addition lines (starting with +) in a diff."""
    if not diff:
        return 0
    return sum(1 for line in diff.split('\n') if line.startswith('+') and not line.startswith('+++'))


def count_deletions(diff: str) -> int:
    """Count deletion lines (starting with -) in a diff."""
    if not diff:
        return 0
    return sum(1 for line in diff.split('\n') if line.startswith('-') and not line.startswith('---'))


def count_files(diff: str) -> int:
    """Count file sections (``diff --git`` headers) in a diff."""
    if not diff:
        return 0
    return sum(1 for line in diff.split('\n') if line.startswith('diff --git '))


def summarize_diff(diff: str) -> DiffSummary:
    return DiffSummary(
        files_changed=count_files(diff),
        additions=count_additions(diff),
        deletions=count_deletions(diff),
    )
