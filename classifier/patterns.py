"""
Pattern tables used to decide whether a review comment is actionable.

Groups are checked in the order listed in PATTERN_GROUPS and the first group
with a matching pattern decides the verdict. Patterns are applied to the
lower-cased comment body, so they are written in lower case.
"""

import re
from typing import NamedTuple


class PatternGroup(NamedTuple):
    name: str
    action_type: str
    severity: str
    patterns: tuple[re.Pattern, ...]


def _compile(*expressions: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(expression) for expression in expressions)


HIGH_SEVERITY = PatternGroup(
    name="high",
    action_type="fix_required",
    severity="high",
    patterns=_compile(
        r"\b(fix|error|bug|broken|issue|problem|wrong)\b",
        r"\b(security|vulnerability|exploit|dangerous)\b",
        r"\b(performance|slow|inefficient|optimize)\b",
        r"\b(memory leak|deadlock|race condition)\b",
    ),
)

MEDIUM_SEVERITY = PatternGroup(
    name="medium",
    action_type="improvement_needed",
    severity="medium",
    patterns=_compile(
        r"\b(should|must|need to|have to|required)\b",
        r"\b(refactor|restructure|reorganize|cleanup)\b",
        r"\b(test|testing|unit test|integration test)\b",
        r"\b(documentation|docs|comment|explain)\b",
        r"\b(style|format|convention|standard)\b",
    ),
)

LOW_SEVERITY = PatternGroup(
    name="low",
    action_type="suggestion",
    severity="low",
    patterns=_compile(
        r"\b(consider|suggest|might|could|perhaps)\b",
        r"\b(improvement|enhancement|better)\b",
        r"\b(question|clarification|understand)\b",
        r"\b(naming|variable|function name)\b",
    ),
)

QUESTION = PatternGroup(
    name="question",
    action_type="question",
    severity="medium",
    patterns=_compile(
        r"\?",
        r"\b(why|how|what|when|where|which)\b",
        r"\b(can you|could you|would you)\b",
    ),
)

REQUEST = PatternGroup(
    name="request",
    action_type="request",
    severity="medium",
    patterns=_compile(
        r"\b(please|add|remove|change|update|modify)\b",
        r"\b(implement|create|build|develop)\b",
    ),
)

# Priority order matters: a comment mentioning a bug and ending in "?" is high
PATTERN_GROUPS: tuple[PatternGroup, ...] = (
    HIGH_SEVERITY,
    MEDIUM_SEVERITY,
    LOW_SEVERITY,
    QUESTION,
    REQUEST,
)
