"""Lesson completion state transitions.

Every function takes the caller's current entry (or None when the learner
has no entry for the course yet) plus the catalog snapshot, and returns a
new ProgressEntry.  Persisting the result is the caller's job.

Per lesson:  incomplete --complete_lesson / passing quiz--> complete
             complete   --uncomplete_lesson (undo/admin)---> incomplete
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from learnhub.models.catalog import Course, Lesson
from learnhub.models.progress import ProgressEntry, QuizAttempt
from learnhub.services import progress_aggregator
from learnhub.services.errors import NotFoundError, ProgressValidationError


def resolve_lesson(course: Course, module_id: str, lesson_id: str) -> Lesson:
    """Published lesson ``lesson_id`` inside published module ``module_id``."""
    module = course.module_by_id(module_id)
    if module is None or not module.is_published:
        raise NotFoundError("module", module_id)
    lesson = module.lesson_by_id(lesson_id)
    if lesson is None or not lesson.is_published:
        raise NotFoundError("lesson", lesson_id)
    return lesson


def _recompute(entry: ProgressEntry, course: Course, now: datetime) -> ProgressEntry:
    entries = [entry]
    total = progress_aggregator.course_progress_percent(entries, entry.course_id, course)
    completed_at = entry.completed_at
    if completed_at is None and progress_aggregator.is_course_complete(
        entries, entry.course_id, course
    ):
        completed_at = now
    return replace(entry, total_progress=total, completed_at=completed_at)


def complete_lesson(
    entry: ProgressEntry | None,
    course: Course,
    module_id: str,
    lesson_id: str,
    *,
    now: datetime,
    lesson_type: str | None = None,
) -> ProgressEntry:
    lesson = resolve_lesson(course, module_id, lesson_id)
    if lesson_type is not None and lesson_type != lesson.type:
        raise ProgressValidationError(
            f"lesson {lesson_id} is a {lesson.type!r}, not {lesson_type!r}"
        )

    if entry is None:
        entry = ProgressEntry.new(
            course_id=course.id, module_id=module_id, lesson_id=lesson_id
        )

    completed_projects = entry.completed_projects
    if lesson.type == "project":
        completed_projects = completed_projects | {lesson_id}

    updated = replace(
        entry,
        module_id=module_id,
        lesson_id=lesson_id,
        completed_lessons=entry.completed_lessons | {lesson_id},
        completed_projects=completed_projects,
    )
    return _recompute(updated, course, now)


def uncomplete_lesson(
    entry: ProgressEntry | None,
    course: Course,
    module_id: str,
    lesson_id: str,
    *,
    now: datetime,
) -> ProgressEntry:
    resolve_lesson(course, module_id, lesson_id)
    if entry is None:
        raise NotFoundError("progress", course.id)

    updated = replace(
        entry,
        module_id=module_id,
        lesson_id=lesson_id,
        completed_lessons=entry.completed_lessons - {lesson_id},
        completed_projects=entry.completed_projects - {lesson_id},
    )
    # completed_at is intentionally left as-is ("once completed, always shown
    # completed").  Whether it should clear below 100% is an open product
    # decision; _recompute never clears it.
    return _recompute(updated, course, now)


def record_quiz_attempt(
    entry: ProgressEntry | None,
    course: Course,
    module_id: str,
    lesson_id: str,
    attempt: QuizAttempt,
    *,
    now: datetime,
) -> ProgressEntry:
    """Append ``attempt`` to the lesson's history; a pass completes the lesson.

    Every attempt is kept.  A failing attempt never un-completes a lesson.
    """
    resolve_lesson(course, module_id, lesson_id)

    if entry is None:
        entry = ProgressEntry.new(
            course_id=course.id, module_id=module_id, lesson_id=lesson_id
        )
    entry = replace(entry, quiz_attempts=entry.with_attempt(lesson_id, attempt))

    if attempt.passed and lesson_id not in entry.completed_lessons:
        return complete_lesson(entry, course, module_id, lesson_id, now=now)
    return entry
