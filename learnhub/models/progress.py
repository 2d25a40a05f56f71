from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType

QUIZ_PASS_THRESHOLD = 70


def quiz_percentage(score: int, total_questions: int) -> int:
    """round(100 * score / total_questions), halves rounded up."""
    if total_questions <= 0:
        raise ValueError("total_questions must be positive")
    return math.floor(100 * score / total_questions + 0.5)


@dataclass(frozen=True, slots=True)
class QuizAnswer:
    question_id: str
    selected_option: str
    is_correct: bool


@dataclass(frozen=True, slots=True)
class QuizAttempt:
    score: int
    total_questions: int
    percentage: int
    completed_at: datetime
    answers: tuple[QuizAnswer, ...] = ()

    @staticmethod
    def new(
        *,
        score: int,
        total_questions: int,
        completed_at: datetime,
        answers: tuple[QuizAnswer, ...] = (),
    ) -> QuizAttempt:
        # percentage is always derived, never taken from the client
        return QuizAttempt(
            score=score,
            total_questions=total_questions,
            percentage=quiz_percentage(score, total_questions),
            completed_at=completed_at,
            answers=answers,
        )

    @property
    def passed(self) -> bool:
        return self.percentage >= QUIZ_PASS_THRESHOLD


def _empty_attempts() -> Mapping[str, tuple[QuizAttempt, ...]]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class ProgressEntry:
    """One learner's progress through one course.

    module_id/lesson_id are the last-visited position, not a completion
    marker.  completed_projects is a subset of completed_lessons.
    total_progress is a cache of the aggregator's percentage and is
    recomputed on every mutation.
    """

    course_id: str
    module_id: str
    lesson_id: str
    completed_lessons: frozenset[str] = frozenset()
    completed_projects: frozenset[str] = frozenset()
    total_progress: int = 0
    completed_at: datetime | None = None
    quiz_attempts: Mapping[str, tuple[QuizAttempt, ...]] = field(
        default_factory=_empty_attempts
    )

    @staticmethod
    def new(*, course_id: str, module_id: str, lesson_id: str) -> ProgressEntry:
        return ProgressEntry(course_id=course_id, module_id=module_id, lesson_id=lesson_id)

    def attempts_for(self, lesson_id: str) -> tuple[QuizAttempt, ...]:
        return self.quiz_attempts.get(lesson_id, ())

    def with_attempt(
        self, lesson_id: str, attempt: QuizAttempt
    ) -> Mapping[str, tuple[QuizAttempt, ...]]:
        """Attempt history with ``attempt`` appended for ``lesson_id``."""
        attempts = dict(self.quiz_attempts)
        attempts[lesson_id] = attempts.get(lesson_id, ()) + (attempt,)
        return MappingProxyType(attempts)
