from __future__ import annotations

from dataclasses import replace

import pytest

from learnhub.models.catalog import Course, Lesson, Module
from learnhub.repos.catalog_repo import InMemoryCatalogRepo
from tests.conftest import build_course


def test_lookup_by_id_and_slug() -> None:
    repo = InMemoryCatalogRepo()
    course = build_course()
    repo.add(course)
    assert repo.get_course("course-1") is course
    assert repo.get_course_by_slug("python-101") is course
    assert repo.get_course("missing") is None


def test_duplicate_slug_rejected() -> None:
    repo = InMemoryCatalogRepo()
    repo.add(build_course())
    with pytest.raises(ValueError):
        repo.add(build_course(course_id="course-2"))


def test_find_lesson_returns_owning_module() -> None:
    repo = InMemoryCatalogRepo()
    repo.add(build_course())
    course, module, lesson = repo.find_lesson("l3")
    assert course.id == "course-1"
    assert module.id == "m2"
    assert lesson.type == "project"
    assert repo.find_lesson("missing") is None


def test_unpublished_course_is_hidden() -> None:
    repo = InMemoryCatalogRepo()
    repo.add(replace(build_course(), is_published=False))
    repo.add(build_course(course_id="course-2", slug="python-201"))
    assert [c.id for c in repo.list_published()] == ["course-2"]
    assert repo.find_lesson("l1")[0].id == "course-2"


def test_list_published_sorted_by_order() -> None:
    repo = InMemoryCatalogRepo()
    repo.add(replace(build_course(course_id="b", slug="b"), order=2))
    repo.add(replace(build_course(course_id="a", slug="a"), order=1))
    assert [c.id for c in repo.list_published()] == ["a", "b"]


def test_new_nodes_get_generated_ids() -> None:
    lesson = Lesson.new(slug="intro", title="Intro", order=1)
    module = Module.new(slug="basics", title="Basics", lessons=[lesson])
    course = Course.new(slug="python-301", title="Python 301", modules=[module])

    assert lesson.id != module.id != course.id
    repo = InMemoryCatalogRepo()
    repo.add(course)
    assert repo.find_lesson(lesson.id)[1] is module


def test_new_lesson_rejects_unknown_type() -> None:
    with pytest.raises(ValueError, match="lesson type"):
        Lesson.new(slug="x", title="X", type="video")
