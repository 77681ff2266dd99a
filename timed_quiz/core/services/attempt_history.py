"""Service summarizing a user's past attempts."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from timed_quiz.constants.quiz_constants import RECENT_ATTEMPT_WINDOW
from timed_quiz.core.models import AttemptRecord, percentage_of


class PerformanceTier(str, Enum):
    OUTSTANDING = "outstanding"
    EXCELLENT = "excellent"
    GREAT = "great"
    GOOD = "good"
    KEEP_PRACTICING = "keep_practicing"


_TIER_THRESHOLDS: tuple[tuple[int, PerformanceTier], ...] = (
    (90, PerformanceTier.OUTSTANDING),
    (80, PerformanceTier.EXCELLENT),
    (70, PerformanceTier.GREAT),
    (60, PerformanceTier.GOOD),
)

_TIER_MESSAGES: dict[PerformanceTier, str] = {
    PerformanceTier.OUTSTANDING: "Outstanding! You're a quiz master!",
    PerformanceTier.EXCELLENT: "Excellent! Fantastic work!",
    PerformanceTier.GREAT: "Great job! Keep it up!",
    PerformanceTier.GOOD: "Good effort! Room for improvement!",
    PerformanceTier.KEEP_PRACTICING: "Keep practicing! You'll get better!",
}


def performance_tier(percentage: int) -> PerformanceTier:
    for threshold, tier in _TIER_THRESHOLDS:
        if percentage >= threshold:
            return tier
    return PerformanceTier.KEEP_PRACTICING


def performance_message(percentage: int) -> str:
    return _TIER_MESSAGES[performance_tier(percentage)]


@dataclass(slots=True)
class AttemptStats:
    """Immutable snapshot of a user's history."""

    total_attempts: int
    average_percentage: int
    best_percentage: int
    recent_average: int


def summarize_attempts(
    records: list[AttemptRecord],
    recent_window: int = RECENT_ATTEMPT_WINDOW,
) -> AttemptStats | None:
    """Aggregate attempts ordered newest first. Returns None when there are none.

    Averages are pooled over questions, not over attempts, so a long quiz
    weighs more than a short one.
    """
    if not records:
        return None

    attempts = [record.attempt for record in records]
    total_score = sum(a.score for a in attempts)
    total_questions = sum(a.total_questions for a in attempts)
    recent = attempts[:recent_window]

    return AttemptStats(
        total_attempts=len(attempts),
        average_percentage=percentage_of(total_score, total_questions),
        best_percentage=max(a.percentage for a in attempts),
        recent_average=percentage_of(
            sum(a.score for a in recent),
            sum(a.total_questions for a in recent),
        ),
    )
