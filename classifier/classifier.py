"""
Comment classifier - decides whether a PR comment asks for action.

Classification is a pure function of the comment text: the body is
lower-cased and tested against the ordered pattern groups in
classifier.patterns. No state, no I/O, never raises.
"""

from collections import Counter
from typing import Iterable, Optional

from classifier.patterns import PATTERN_GROUPS, PatternGroup
from models.data_models import ActionableComment, Classification, CommentStats

NOT_ACTIONABLE = Classification(actionable=False)


def match_group(body: str) -> Optional[PatternGroup]:
    """Return the first pattern group matching an already lower-cased body."""
    for group in PATTERN_GROUPS:
        if any(pattern.search(body) for pattern in group.patterns):
            return group
    return None


def classify_comment(body: Optional[str]) -> Classification:
    """
    Classify a comment body as actionable or not.

    Args:
        body: Raw comment text (may be None or empty)

    Returns:
        Classification with action type and severity when actionable,
        otherwise ``Classification(actionable=False)``.
    """
    if not body:
        return NOT_ACTIONABLE

    group = match_group(body.lower())
    if group is None:
        return NOT_ACTIONABLE

    return Classification(
        actionable=True,
        action_type=group.action_type,
        severity=group.severity,
    )


def summarize_comments(comments: Iterable[ActionableComment]) -> CommentStats:
    """Count actionable comments by action type and by severity."""
    comments = list(comments)
    return CommentStats(
        total=len(comments),
        by_type=dict(Counter(comment.action_type for comment in comments)),
        by_severity=dict(Counter(comment.severity for comment in comments)),
    )
