"""Content catalog: Course -> Module -> Lesson.

Read-only from the progress model's point of view.  Sibling sequence is
defined by ``order``; equal ``order`` values keep insertion order because
``sorted`` is stable.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from uuid import uuid4

LESSON_TYPES = ("lesson", "project", "assignment")


@dataclass(frozen=True, slots=True)
class Lesson:
    id: str
    slug: str
    title: str
    order: int = 0
    type: str = "lesson"  # lesson|project|assignment
    is_published: bool = True
    has_quiz: bool = False

    @staticmethod
    def new(
        *,
        slug: str,
        title: str,
        order: int = 0,
        type: str = "lesson",
        is_published: bool = True,
        has_quiz: bool = False,
    ) -> Lesson:
        if type not in LESSON_TYPES:
            raise ValueError(f"lesson type must be one of {LESSON_TYPES} (got {type!r})")
        return Lesson(
            id=str(uuid4()),
            slug=slug,
            title=title,
            order=order,
            type=type,
            is_published=is_published,
            has_quiz=has_quiz,
        )


@dataclass(frozen=True, slots=True)
class Module:
    id: str
    slug: str
    title: str
    order: int = 0
    is_published: bool = True
    lessons: tuple[Lesson, ...] = field(default_factory=tuple)

    @staticmethod
    def new(
        *,
        slug: str,
        title: str,
        order: int = 0,
        lessons: Iterable[Lesson] = (),
        is_published: bool = True,
    ) -> Module:
        return Module(
            id=str(uuid4()),
            slug=slug,
            title=title,
            order=order,
            is_published=is_published,
            lessons=tuple(lessons),
        )

    def published_lessons(self) -> list[Lesson]:
        """Published lessons in traversal order."""
        if not self.is_published:
            return []
        return sorted(
            (lesson for lesson in self.lessons if lesson.is_published),
            key=lambda lesson: lesson.order,
        )

    def lesson_by_id(self, lesson_id: str) -> Lesson | None:
        for lesson in self.lessons:
            if lesson.id == lesson_id:
                return lesson
        return None


@dataclass(frozen=True, slots=True)
class Course:
    id: str
    slug: str
    title: str
    order: int = 0
    is_published: bool = True
    modules: tuple[Module, ...] = field(default_factory=tuple)

    @staticmethod
    def new(
        *,
        slug: str,
        title: str,
        order: int = 0,
        modules: Iterable[Module] = (),
        is_published: bool = True,
    ) -> Course:
        return Course(
            id=str(uuid4()),
            slug=slug,
            title=title,
            order=order,
            is_published=is_published,
            modules=tuple(modules),
        )

    def published_modules(self) -> list[Module]:
        return sorted(
            (m for m in self.modules if m.is_published),
            key=lambda m: m.order,
        )

    def module_by_id(self, module_id: str) -> Module | None:
        for module in self.modules:
            if module.id == module_id:
                return module
        return None

    def module_by_slug(self, slug: str) -> Module | None:
        for module in self.modules:
            if module.slug == slug:
                return module
        return None

    def lesson_ids(self) -> frozenset[str]:
        """Ids of every published lesson in a published module."""
        return frozenset(
            lesson.id
            for module in self.published_modules()
            for lesson in module.published_lessons()
        )

    def locate_lesson(self, lesson_id: str) -> tuple[Module, Lesson] | None:
        """Find a published lesson and the published module that owns it."""
        for module in self.published_modules():
            for lesson in module.published_lessons():
                if lesson.id == lesson_id:
                    return module, lesson
        return None
