"""Previous/next lesson resolution over a course's flattened sequence.

Navigation ignores completion state; gating lives in the aggregator.
"""

from __future__ import annotations

from dataclasses import dataclass

from learnhub.models.catalog import Course, Lesson, Module
from learnhub.services.errors import NotFoundError


@dataclass(frozen=True, slots=True)
class LessonRef:
    course_id: str
    course_slug: str
    module_id: str
    module_slug: str
    lesson_id: str
    lesson_slug: str
    title: str


@dataclass(frozen=True, slots=True)
class Navigation:
    previous: LessonRef | None
    next: LessonRef | None


def _walk(course: Course) -> list[tuple[Module, Lesson]]:
    return [
        (module, lesson)
        for module in course.published_modules()
        for lesson in module.published_lessons()
    ]


def flatten(course: Course) -> tuple[Lesson, ...]:
    """Published lessons, module order first, then lesson order.

    Recomputed from the snapshot on every call; the same course always
    yields the same sequence.
    """
    return tuple(lesson for _, lesson in _walk(course))


def _ref(course: Course, module: Module, lesson: Lesson) -> LessonRef:
    return LessonRef(
        course_id=course.id,
        course_slug=course.slug,
        module_id=module.id,
        module_slug=module.slug,
        lesson_id=lesson.id,
        lesson_slug=lesson.slug,
        title=lesson.title,
    )


def navigation_for(course: Course, current_lesson_id: str) -> Navigation:
    pairs = _walk(course)
    for i, (_, lesson) in enumerate(pairs):
        if lesson.id != current_lesson_id:
            continue
        previous = _ref(course, *pairs[i - 1]) if i > 0 else None
        following = _ref(course, *pairs[i + 1]) if i + 1 < len(pairs) else None
        return Navigation(previous=previous, next=following)
    raise NotFoundError("lesson", current_lesson_id)
