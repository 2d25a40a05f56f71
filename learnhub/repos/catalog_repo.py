from __future__ import annotations

from typing import Protocol

from learnhub.models.catalog import Course, Lesson, Module


class CatalogRepo(Protocol):
    def get_course(self, course_id: str) -> Course | None: ...
    def get_course_by_slug(self, slug: str) -> Course | None: ...
    def find_lesson(self, lesson_id: str) -> tuple[Course, Module, Lesson] | None: ...
    def list_published(self) -> list[Course]: ...
    def add(self, course: Course) -> None: ...


class InMemoryCatalogRepo:
    """Catalog snapshot held in memory.

    Content management is out of scope; courses are added at startup
    (seed) or by tests and are never mutated afterwards.
    """

    def __init__(self) -> None:
        self._by_id: dict[str, Course] = {}
        self._by_slug: dict[str, Course] = {}

    def get_course(self, course_id: str) -> Course | None:
        return self._by_id.get(course_id)

    def get_course_by_slug(self, slug: str) -> Course | None:
        return self._by_slug.get(slug)

    def find_lesson(self, lesson_id: str) -> tuple[Course, Module, Lesson] | None:
        for course in self._by_id.values():
            if not course.is_published:
                continue
            located = course.locate_lesson(lesson_id)
            if located is not None:
                module, lesson = located
                return course, module, lesson
        return None

    def list_published(self) -> list[Course]:
        return sorted(
            (c for c in self._by_id.values() if c.is_published),
            key=lambda c: c.order,
        )

    def add(self, course: Course) -> None:
        if course.slug in self._by_slug:
            raise ValueError("slug already exists")
        self._by_id[course.id] = course
        self._by_slug[course.slug] = course
