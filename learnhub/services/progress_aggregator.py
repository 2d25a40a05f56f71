"""Read-side progress math.

Pure functions over (progress entries, course id, catalog snapshot).
Nothing here touches a store.  Lesson ids in ``completed_lessons`` that
are no longer published in the catalog are ignored: they count toward
nothing and are never purged here.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from learnhub.models.catalog import Course, Lesson, Module
from learnhub.models.progress import ProgressEntry
from learnhub.services.navigation import flatten


def _percent(done: int, total: int) -> int:
    # Floors, so 100 is only reported once every lesson is complete.
    if total == 0:
        return 0
    return min(100, 100 * done // total)


def find_entry(entries: Iterable[ProgressEntry], course_id: str) -> ProgressEntry | None:
    for entry in entries:
        if entry.course_id == course_id:
            return entry
    return None


def _completed(entries: Iterable[ProgressEntry], course_id: str) -> frozenset[str]:
    entry = find_entry(entries, course_id)
    return entry.completed_lessons if entry is not None else frozenset()


def completed_lessons_count(
    entries: Sequence[ProgressEntry], course_id: str, course: Course
) -> int:
    return len(_completed(entries, course_id) & course.lesson_ids())


def completed_module_lessons_count(
    entries: Sequence[ProgressEntry], course_id: str, module: Module
) -> int:
    module_ids = {lesson.id for lesson in module.published_lessons()}
    return len(_completed(entries, course_id) & module_ids)


def course_progress_percent(
    entries: Sequence[ProgressEntry], course_id: str, course: Course
) -> int:
    lesson_ids = course.lesson_ids()
    return _percent(len(_completed(entries, course_id) & lesson_ids), len(lesson_ids))


def module_progress_percent(
    entries: Sequence[ProgressEntry], course_id: str, module: Module
) -> int:
    total = len(module.published_lessons())
    return _percent(completed_module_lessons_count(entries, course_id, module), total)


def is_lesson_complete(
    entries: Sequence[ProgressEntry], course_id: str, lesson_id: str
) -> bool:
    return lesson_id in _completed(entries, course_id)


def is_course_complete(
    entries: Sequence[ProgressEntry], course_id: str, course: Course
) -> bool:
    lesson_ids = course.lesson_ids()
    if not lesson_ids:
        return False
    return len(_completed(entries, course_id) & lesson_ids) >= len(lesson_ids)


def can_access_lesson(
    entries: Sequence[ProgressEntry], course_id: str, course: Course, index: int
) -> bool:
    """Strictly linear gating over the flattened sequence.

    Advisory only: blocking direct navigation is the caller's job.
    """
    sequence = flatten(course)
    if index < 0 or index >= len(sequence):
        return False
    if index == 0:
        return True
    return is_lesson_complete(entries, course_id, sequence[index - 1].id)


def next_incomplete_lesson(
    entries: Sequence[ProgressEntry], course_id: str, course: Course
) -> Lesson | None:
    completed = _completed(entries, course_id)
    for lesson in flatten(course):
        if lesson.id not in completed:
            return lesson
    return None


# ---------------------------------------------------------------------------
# Course overview: everything a course page needs in one pass
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LessonState:
    lesson: Lesson
    index: int
    completed: bool
    accessible: bool


@dataclass(frozen=True, slots=True)
class ModuleState:
    module: Module
    percent: int
    completed_count: int
    lessons: tuple[LessonState, ...]


@dataclass(frozen=True, slots=True)
class CourseOverview:
    course: Course
    percent: int
    completed: bool
    completed_count: int
    total_lessons: int
    completed_at: datetime | None
    next_lesson: Lesson | None
    modules: tuple[ModuleState, ...]


def course_overview(
    entries: Sequence[ProgressEntry], course_id: str, course: Course
) -> CourseOverview:
    entry = find_entry(entries, course_id)
    completed = entry.completed_lessons if entry is not None else frozenset()

    modules: list[ModuleState] = []
    index = 0
    previous_done = True  # the first lesson is always accessible
    for module in course.published_modules():
        states: list[LessonState] = []
        for lesson in module.published_lessons():
            done = lesson.id in completed
            states.append(
                LessonState(
                    lesson=lesson, index=index, completed=done, accessible=previous_done
                )
            )
            previous_done = done
            index += 1
        modules.append(
            ModuleState(
                module=module,
                percent=module_progress_percent(entries, course_id, module),
                completed_count=sum(s.completed for s in states),
                lessons=tuple(states),
            )
        )

    return CourseOverview(
        course=course,
        percent=course_progress_percent(entries, course_id, course),
        completed=is_course_complete(entries, course_id, course),
        completed_count=completed_lessons_count(entries, course_id, course),
        total_lessons=len(course.lesson_ids()),
        completed_at=entry.completed_at if entry is not None else None,
        next_lesson=next_incomplete_lesson(entries, course_id, course),
        modules=tuple(modules),
    )
