"""Progress operations: resolve, mutate, persist.

Each operation validates its inputs, resolves the learner and the
catalog content it refers to, runs one completion transition, upserts
the resulting entry and commits.  Steps always run in that order, inside
a single request; nothing is retried here.  Two concurrent writes for
the same (user, course) are last-writer-wins.

Complete and quiz operations also report the milestones the write
made the learner reach.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from learnhub.core.metrics import COURSES_COMPLETED, LESSON_TRANSITIONS, QUIZ_ATTEMPTS
from learnhub.models.catalog import LESSON_TYPES, Course
from learnhub.models.progress import ProgressEntry, QuizAnswer, QuizAttempt
from learnhub.repos.catalog_repo import CatalogRepo
from learnhub.repos.progress_repo import ProgressRepo
from learnhub.repos.user_repo import UserRepo
from learnhub.services import completion, milestones, progress_aggregator
from learnhub.services.errors import NotFoundError, ProgressValidationError
from learnhub.services.navigation import Navigation, navigation_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LessonOutcome:
    entry: ProgressEntry
    new_milestones: tuple[milestones.Milestone, ...] = ()


@dataclass(frozen=True, slots=True)
class QuizOutcome:
    entry: ProgressEntry
    attempt: QuizAttempt
    lesson_completed: bool
    new_milestones: tuple[milestones.Milestone, ...] = ()


@dataclass(frozen=True, slots=True)
class LearnerMilestones:
    stats: milestones.LearnerStats
    states: tuple[milestones.MilestoneState, ...]


def _now() -> datetime:
    return datetime.now(UTC)


def _require(**fields: str) -> None:
    for name, value in fields.items():
        if not value or not value.strip():
            raise ProgressValidationError(f"{name} must be non-empty")


async def require_learner(users: UserRepo, user_id: str) -> None:
    """NotFoundError unless user_id names an active learner."""
    user = await users.get_by_id(user_id)
    if user is None or not user.is_active:
        logger.warning(
            "Progress request for unknown user=%s", user_id, extra={"user_id": user_id}
        )
        raise NotFoundError("user", user_id)


def _require_course(catalog: CatalogRepo, course_id: str) -> Course:
    course = catalog.get_course(course_id)
    if course is None or not course.is_published:
        logger.warning("Unknown course=%s", course_id)
        raise NotFoundError("course", course_id)
    return course


def _with_entry(
    entries: Sequence[ProgressEntry], entry: ProgressEntry
) -> list[ProgressEntry]:
    replaced = [entry if e.course_id == entry.course_id else e for e in entries]
    if progress_aggregator.find_entry(entries, entry.course_id) is None:
        replaced.append(entry)
    return replaced


def _reached_milestones(
    entries: Sequence[ProgressEntry],
    entry: ProgressEntry,
    courses: Iterable[Course],
    now: datetime,
) -> tuple[milestones.Milestone, ...]:
    courses = list(courses)
    today = now.astimezone(UTC).date()
    return milestones.new_milestones(
        milestones.milestones(entries, courses, today),
        milestones.milestones(_with_entry(entries, entry), courses, today),
    )


def _note_course_completion(
    before: ProgressEntry | None, after: ProgressEntry, user_id: str
) -> None:
    if after.completed_at is not None and (before is None or before.completed_at is None):
        COURSES_COMPLETED.inc()
        logger.info(
            "Course completed user=%s course=%s",
            user_id,
            after.course_id,
            extra={"user_id": user_id, "course_id": after.course_id},
        )


def _note_milestones(user_id: str, reached: tuple[milestones.Milestone, ...]) -> None:
    for m in reached:
        logger.info(
            "Milestone reached user=%s milestone=%s",
            user_id,
            m.id,
            extra={"user_id": user_id},
        )


async def get_progress(
    user_id: str, *, users: UserRepo, progress: ProgressRepo
) -> list[ProgressEntry]:
    await require_learner(users, user_id)
    return await progress.get_progress(user_id)


async def complete_lesson(
    user_id: str,
    course_id: str,
    module_id: str,
    lesson_id: str,
    lesson_type: str | None = None,
    *,
    users: UserRepo,
    catalog: CatalogRepo,
    progress: ProgressRepo,
    now: datetime | None = None,
) -> LessonOutcome:
    _require(course_id=course_id, module_id=module_id, lesson_id=lesson_id)
    if lesson_type is not None and lesson_type not in LESSON_TYPES:
        raise ProgressValidationError(f"lesson_type must be one of {LESSON_TYPES}")
    await require_learner(users, user_id)
    course = _require_course(catalog, course_id)

    now = now or _now()
    entries = await progress.get_progress(user_id)
    before = progress_aggregator.find_entry(entries, course_id)
    entry = completion.complete_lesson(
        before, course, module_id, lesson_id, now=now, lesson_type=lesson_type
    )
    await progress.upsert_progress(user_id, entry)
    await progress.commit()

    if before is None or lesson_id not in before.completed_lessons:
        LESSON_TRANSITIONS.labels(action="complete").inc()
    _note_course_completion(before, entry, user_id)
    reached = _reached_milestones(entries, entry, catalog.list_published(), now)
    _note_milestones(user_id, reached)
    logger.info(
        "Lesson completed user=%s course=%s lesson=%s progress=%d",
        user_id,
        course_id,
        lesson_id,
        entry.total_progress,
        extra={"user_id": user_id, "course_id": course_id, "lesson_id": lesson_id},
    )
    return LessonOutcome(entry=entry, new_milestones=reached)


async def uncomplete_lesson(
    user_id: str,
    course_id: str,
    module_id: str,
    lesson_id: str,
    *,
    users: UserRepo,
    catalog: CatalogRepo,
    progress: ProgressRepo,
    now: datetime | None = None,
) -> ProgressEntry:
    _require(course_id=course_id, module_id=module_id, lesson_id=lesson_id)
    await require_learner(users, user_id)
    course = _require_course(catalog, course_id)
    completion.resolve_lesson(course, module_id, lesson_id)

    entries = await progress.get_progress(user_id)
    before = progress_aggregator.find_entry(entries, course_id)
    if before is None:
        logger.warning("No progress to uncomplete user=%s course=%s", user_id, course_id)
        raise NotFoundError("progress", course_id)
    entry = completion.uncomplete_lesson(
        before, course, module_id, lesson_id, now=now or _now()
    )
    await progress.upsert_progress(user_id, entry)
    await progress.commit()

    if lesson_id in before.completed_lessons:
        LESSON_TRANSITIONS.labels(action="uncomplete").inc()
    logger.info(
        "Lesson uncompleted user=%s course=%s lesson=%s progress=%d",
        user_id,
        course_id,
        lesson_id,
        entry.total_progress,
        extra={"user_id": user_id, "course_id": course_id, "lesson_id": lesson_id},
    )
    return entry


async def record_quiz_attempt(
    user_id: str,
    lesson_id: str,
    *,
    score: int,
    total_questions: int,
    answers: Iterable[QuizAnswer] = (),
    users: UserRepo,
    catalog: CatalogRepo,
    progress: ProgressRepo,
    now: datetime | None = None,
) -> QuizOutcome:
    _require(lesson_id=lesson_id)
    if total_questions <= 0:
        raise ProgressValidationError("total_questions must be positive")
    if score < 0 or score > total_questions:
        raise ProgressValidationError("score must be between 0 and total_questions")
    await require_learner(users, user_id)

    located = catalog.find_lesson(lesson_id)
    if located is None:
        logger.warning("Quiz attempt for unknown lesson=%s user=%s", lesson_id, user_id)
        raise NotFoundError("lesson", lesson_id)
    course, module, _lesson = located

    now = now or _now()
    attempt = QuizAttempt.new(
        score=score,
        total_questions=total_questions,
        completed_at=now,
        answers=tuple(answers),
    )

    entries = await progress.get_progress(user_id)
    before = progress_aggregator.find_entry(entries, course.id)
    entry = completion.record_quiz_attempt(
        before, course, module.id, lesson_id, attempt, now=now
    )
    await progress.upsert_progress(user_id, entry)
    await progress.commit()

    newly_completed = lesson_id in entry.completed_lessons and (
        before is None or lesson_id not in before.completed_lessons
    )
    QUIZ_ATTEMPTS.labels(result="passed" if attempt.passed else "failed").inc()
    if newly_completed:
        LESSON_TRANSITIONS.labels(action="complete").inc()
    _note_course_completion(before, entry, user_id)
    reached = _reached_milestones(entries, entry, catalog.list_published(), now)
    _note_milestones(user_id, reached)
    logger.info(
        "Quiz attempt user=%s lesson=%s percentage=%d completed=%s",
        user_id,
        lesson_id,
        attempt.percentage,
        newly_completed,
        extra={"user_id": user_id, "course_id": course.id, "lesson_id": lesson_id},
    )
    return QuizOutcome(
        entry=entry,
        attempt=attempt,
        lesson_completed=newly_completed,
        new_milestones=reached,
    )


async def get_milestones(
    user_id: str,
    *,
    users: UserRepo,
    catalog: CatalogRepo,
    progress: ProgressRepo,
    now: datetime | None = None,
) -> LearnerMilestones:
    await require_learner(users, user_id)
    entries = await progress.get_progress(user_id)
    courses = catalog.list_published()
    today = (now or _now()).astimezone(UTC).date()
    return LearnerMilestones(
        stats=milestones.learner_stats(entries, courses, today),
        states=milestones.milestones(entries, courses, today),
    )


async def get_course_overview(
    user_id: str,
    course_id: str,
    *,
    users: UserRepo,
    catalog: CatalogRepo,
    progress: ProgressRepo,
) -> progress_aggregator.CourseOverview:
    await require_learner(users, user_id)
    course = _require_course(catalog, course_id)
    entries = await progress.get_progress(user_id)
    return progress_aggregator.course_overview(entries, course_id, course)


def get_navigation(
    course_slug: str, module_slug: str, lesson_slug: str, *, catalog: CatalogRepo
) -> Navigation:
    course = catalog.get_course_by_slug(course_slug)
    if course is None or not course.is_published:
        raise NotFoundError("course", course_slug)
    module = course.module_by_slug(module_slug)
    if module is None or not module.is_published:
        raise NotFoundError("module", module_slug)
    for lesson in module.published_lessons():
        if lesson.slug == lesson_slug:
            return navigation_for(course, lesson.id)
    raise NotFoundError("lesson", lesson_slug)
