"""Course catalog and lesson navigation endpoints.

  GET /v1/courses
  GET /v1/courses/{course_slug}/{module_slug}/{lesson_slug}/navigation

Navigation crosses module boundaries: the previous lesson of a module's
first lesson is the last lesson of the module before it.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from learnhub.api.dependencies import catalog_repo, require_user
from learnhub.models.principal import Principal
from learnhub.services import progress_service
from learnhub.services.errors import NotFoundError
from learnhub.services.navigation import LessonRef, flatten

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/courses", tags=["courses"])


class CourseOut(BaseModel):
    id: str
    slug: str
    title: str
    module_count: int
    lesson_count: int


class LessonRefOut(BaseModel):
    course_id: str
    course_slug: str
    module_id: str
    module_slug: str
    lesson_id: str
    lesson_slug: str
    title: str


class NavigationOut(BaseModel):
    previous: LessonRefOut | None = None
    next: LessonRefOut | None = None


def _ref_out(ref: LessonRef | None) -> LessonRefOut | None:
    if ref is None:
        return None
    return LessonRefOut(
        course_id=ref.course_id,
        course_slug=ref.course_slug,
        module_id=ref.module_id,
        module_slug=ref.module_slug,
        lesson_id=ref.lesson_id,
        lesson_slug=ref.lesson_slug,
        title=ref.title,
    )


@router.get("", response_model=list[CourseOut])
def list_courses(
    _principal: Annotated[Principal, Depends(require_user)],
) -> list[CourseOut]:
    return [
        CourseOut(
            id=c.id,
            slug=c.slug,
            title=c.title,
            module_count=len(c.published_modules()),
            lesson_count=len(flatten(c)),
        )
        for c in catalog_repo.list_published()
    ]


@router.get(
    "/{course_slug}/{module_slug}/{lesson_slug}/navigation",
    response_model=NavigationOut,
)
def get_navigation(
    course_slug: str,
    module_slug: str,
    lesson_slug: str,
    _principal: Annotated[Principal, Depends(require_user)],
) -> NavigationOut:
    try:
        nav = progress_service.get_navigation(
            course_slug, module_slug, lesson_slug, catalog=catalog_repo
        )
    except NotFoundError as e:
        logger.warning("Navigation lookup failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=str(e)
        ) from None
    return NavigationOut(previous=_ref_out(nav.previous), next=_ref_out(nav.next))
