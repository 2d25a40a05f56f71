"""Load the course catalog from a JSON export.

Content is authored elsewhere and exported as one document:

  {"courses": [{"id": ..., "slug": ..., "title": ..., "modules": [
      {"id": ..., "slug": ..., "title": ..., "order": 1, "lessons": [
          {"id": ..., "slug": ..., "title": ..., "order": 1,
           "type": "lesson", "has_quiz": false}]}]}]}

The file is validated with pydantic before anything reaches the repo,
so a malformed export fails startup instead of serving half a catalog.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel

from learnhub.models.catalog import Course, Lesson, Module
from learnhub.repos.catalog_repo import CatalogRepo

logger = logging.getLogger(__name__)


class LessonDoc(BaseModel):
    id: str
    slug: str
    title: str
    order: int = 0
    type: Literal["lesson", "project", "assignment"] = "lesson"
    is_published: bool = True
    has_quiz: bool = False


class ModuleDoc(BaseModel):
    id: str
    slug: str
    title: str
    order: int = 0
    is_published: bool = True
    lessons: list[LessonDoc] = []


class CourseDoc(BaseModel):
    id: str
    slug: str
    title: str
    order: int = 0
    is_published: bool = True
    modules: list[ModuleDoc] = []


class CatalogDoc(BaseModel):
    courses: list[CourseDoc]


def _to_course(doc: CourseDoc) -> Course:
    return Course(
        id=doc.id,
        slug=doc.slug,
        title=doc.title,
        order=doc.order,
        is_published=doc.is_published,
        modules=tuple(
            Module(
                id=m.id,
                slug=m.slug,
                title=m.title,
                order=m.order,
                is_published=m.is_published,
                lessons=tuple(Lesson(**lesson.model_dump()) for lesson in m.lessons),
            )
            for m in doc.modules
        ),
    )


def parse_catalog(raw: str | bytes) -> list[Course]:
    """Raises pydantic.ValidationError on a malformed document."""
    return [_to_course(c) for c in CatalogDoc.model_validate_json(raw).courses]


def load_catalog(path: str | Path, repo: CatalogRepo) -> int:
    courses = parse_catalog(Path(path).read_bytes())
    for course in courses:
        repo.add(course)
    logger.info("Loaded %d courses from %s", len(courses), path)
    return len(courses)
