"""Learner progress endpoints.

  GET  /v1/progress                      -> all entries (read-through cached)
  POST /v1/progress                      -> {action: complete|uncomplete}
  POST /v1/progress/complete             -> mark a lesson complete
  POST /v1/progress/uncomplete           -> undo a completion
  POST /v1/progress/quiz                 -> record a quiz attempt
  GET  /v1/progress/courses/{course_id}  -> course overview for a course page
  GET  /v1/progress/milestones           -> streak, totals and milestones

Every mutation: validate -> resolve user and content -> mutate ->
persist and commit -> invalidate the user's cached progress.  The cache
is dropped only after the commit, so a read that starts after a write
never re-caches the pre-write list.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from learnhub.api.dependencies import (
    catalog_repo,
    get_progress_repo,
    get_user_repo,
    require_user,
)
from learnhub.core.config import SETTINGS
from learnhub.models.principal import Principal
from learnhub.models.progress import ProgressEntry, QuizAnswer, QuizAttempt
from learnhub.repos.progress_repo import ProgressRepo
from learnhub.repos.user_repo import UserRepo
from learnhub.services import progress_service
from learnhub.services.cache import cache_service, progress_key
from learnhub.services.errors import NotFoundError, ProgressValidationError
from learnhub.services.milestones import Milestone
from learnhub.services.progress_aggregator import CourseOverview

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/progress", tags=["progress"])


# --- Pydantic schemas ---


class ProgressEntryOut(BaseModel):
    course_id: str
    module_id: str
    lesson_id: str
    completed_lessons: list[str]
    completed_projects: list[str]
    total_progress: int
    completed_at: datetime | None = None


class MilestoneOut(BaseModel):
    id: str
    kind: str
    title: str
    description: str
    threshold: int


class LessonActionOut(ProgressEntryOut):
    new_milestones: list[MilestoneOut] = []


class LessonActionIn(BaseModel):
    course_id: str
    module_id: str
    lesson_id: str
    lesson_type: Literal["lesson", "project", "assignment"] | None = None


class ProgressUpdateIn(LessonActionIn):
    action: Literal["complete", "uncomplete"]


class QuizAnswerIn(BaseModel):
    question_id: str
    selected_option: str
    is_correct: bool


class QuizAttemptIn(BaseModel):
    lesson_id: str
    score: int = Field(ge=0)
    total_questions: int = Field(gt=0)
    answers: list[QuizAnswerIn] = []


class QuizResultOut(BaseModel):
    score: int
    total_questions: int
    percentage: int
    answers: list[QuizAnswerIn]
    completed_at: datetime


class QuizAttemptOut(BaseModel):
    lesson_id: str
    quiz_result: QuizResultOut
    lesson_completed: bool
    progress: ProgressEntryOut
    new_milestones: list[MilestoneOut] = []


class LessonStateOut(BaseModel):
    lesson_id: str
    slug: str
    title: str
    type: str
    index: int
    completed: bool
    accessible: bool


class ModuleStateOut(BaseModel):
    module_id: str
    slug: str
    title: str
    percent: int
    completed_count: int
    lessons: list[LessonStateOut]


class CourseOverviewOut(BaseModel):
    course_id: str
    slug: str
    title: str
    percent: int
    completed: bool
    completed_count: int
    total_lessons: int
    completed_at: datetime | None = None
    next_lesson_id: str | None = None
    modules: list[ModuleStateOut]


class MilestoneStateOut(MilestoneOut):
    achieved: bool


class LearnerMilestonesOut(BaseModel):
    lessons_completed: int
    courses_started: int
    study_hours: int
    current_streak: int
    longest_streak: int
    active_days: int
    milestones: list[MilestoneStateOut]


# --- Serialization ---


def _entry_out(entry: ProgressEntry) -> ProgressEntryOut:
    return ProgressEntryOut(
        course_id=entry.course_id,
        module_id=entry.module_id,
        lesson_id=entry.lesson_id,
        completed_lessons=sorted(entry.completed_lessons),
        completed_projects=sorted(entry.completed_projects),
        total_progress=entry.total_progress,
        completed_at=entry.completed_at,
    )


def _milestone_out(m: Milestone) -> MilestoneOut:
    return MilestoneOut(
        id=m.id,
        kind=m.kind,
        title=m.title,
        description=m.description,
        threshold=m.threshold,
    )


def _quiz_result_out(attempt: QuizAttempt) -> QuizResultOut:
    return QuizResultOut(
        score=attempt.score,
        total_questions=attempt.total_questions,
        percentage=attempt.percentage,
        answers=[
            QuizAnswerIn(
                question_id=a.question_id,
                selected_option=a.selected_option,
                is_correct=a.is_correct,
            )
            for a in attempt.answers
        ],
        completed_at=attempt.completed_at,
    )


def _overview_out(overview: CourseOverview) -> CourseOverviewOut:
    return CourseOverviewOut(
        course_id=overview.course.id,
        slug=overview.course.slug,
        title=overview.course.title,
        percent=overview.percent,
        completed=overview.completed,
        completed_count=overview.completed_count,
        total_lessons=overview.total_lessons,
        completed_at=overview.completed_at,
        next_lesson_id=overview.next_lesson.id if overview.next_lesson else None,
        modules=[
            ModuleStateOut(
                module_id=m.module.id,
                slug=m.module.slug,
                title=m.module.title,
                percent=m.percent,
                completed_count=m.completed_count,
                lessons=[
                    LessonStateOut(
                        lesson_id=s.lesson.id,
                        slug=s.lesson.slug,
                        title=s.lesson.title,
                        type=s.lesson.type,
                        index=s.index,
                        completed=s.completed,
                        accessible=s.accessible,
                    )
                    for s in m.lessons
                ],
            )
            for m in overview.modules
        ],
    )


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(exc)
    )


# ---------------------------------------------------------------------------
# GET /v1/progress  (read-through cached)
# ---------------------------------------------------------------------------


@router.get("", response_model=list[ProgressEntryOut])
async def get_progress(
    principal: Annotated[Principal, Depends(require_user)],
    users: Annotated[UserRepo, Depends(get_user_repo)],
    progress: Annotated[ProgressRepo, Depends(get_progress_repo)],
) -> list[ProgressEntryOut]:
    # Checked before the cache: a deactivated learner is 404 even on a hit.
    try:
        await progress_service.require_learner(users, principal.user_id)
    except NotFoundError as e:
        raise _http_error(e) from None

    key = progress_key(principal.user_id)
    cached = await cache_service.get(key)
    if cached is not None:
        return [ProgressEntryOut(**e) for e in json.loads(cached)]

    entries = await progress_service.get_progress(
        principal.user_id, users=users, progress=progress
    )
    out = [_entry_out(e) for e in entries]
    await cache_service.set(
        key,
        json.dumps([e.model_dump(mode="json") for e in out]),
        SETTINGS.progress_cache_ttl,
    )
    return out


# ---------------------------------------------------------------------------
# Mutations  (the service commits, then the cached list is dropped)
# ---------------------------------------------------------------------------


async def _complete(
    principal: Principal,
    body: LessonActionIn,
    users: UserRepo,
    progress: ProgressRepo,
) -> LessonActionOut:
    try:
        outcome = await progress_service.complete_lesson(
            principal.user_id,
            body.course_id,
            body.module_id,
            body.lesson_id,
            body.lesson_type,
            users=users,
            catalog=catalog_repo,
            progress=progress,
        )
    except (NotFoundError, ProgressValidationError) as e:
        raise _http_error(e) from None
    await cache_service.delete(progress_key(principal.user_id))
    return LessonActionOut(
        **_entry_out(outcome.entry).model_dump(),
        new_milestones=[_milestone_out(m) for m in outcome.new_milestones],
    )


async def _uncomplete(
    principal: Principal,
    body: LessonActionIn,
    users: UserRepo,
    progress: ProgressRepo,
) -> LessonActionOut:
    try:
        entry = await progress_service.uncomplete_lesson(
            principal.user_id,
            body.course_id,
            body.module_id,
            body.lesson_id,
            users=users,
            catalog=catalog_repo,
            progress=progress,
        )
    except (NotFoundError, ProgressValidationError) as e:
        raise _http_error(e) from None
    await cache_service.delete(progress_key(principal.user_id))
    return LessonActionOut(**_entry_out(entry).model_dump())


@router.post("", response_model=LessonActionOut)
async def update_progress(
    body: ProgressUpdateIn,
    principal: Annotated[Principal, Depends(require_user)],
    users: Annotated[UserRepo, Depends(get_user_repo)],
    progress: Annotated[ProgressRepo, Depends(get_progress_repo)],
) -> LessonActionOut:
    if body.action == "complete":
        return await _complete(principal, body, users, progress)
    return await _uncomplete(principal, body, users, progress)


@router.post("/complete", response_model=LessonActionOut)
async def complete_lesson(
    body: LessonActionIn,
    principal: Annotated[Principal, Depends(require_user)],
    users: Annotated[UserRepo, Depends(get_user_repo)],
    progress: Annotated[ProgressRepo, Depends(get_progress_repo)],
) -> LessonActionOut:
    return await _complete(principal, body, users, progress)


@router.post("/uncomplete", response_model=LessonActionOut)
async def uncomplete_lesson(
    body: LessonActionIn,
    principal: Annotated[Principal, Depends(require_user)],
    users: Annotated[UserRepo, Depends(get_user_repo)],
    progress: Annotated[ProgressRepo, Depends(get_progress_repo)],
) -> LessonActionOut:
    return await _uncomplete(principal, body, users, progress)


@router.post(
    "/quiz", response_model=QuizAttemptOut, status_code=status.HTTP_201_CREATED
)
async def record_quiz_attempt(
    body: QuizAttemptIn,
    principal: Annotated[Principal, Depends(require_user)],
    users: Annotated[UserRepo, Depends(get_user_repo)],
    progress: Annotated[ProgressRepo, Depends(get_progress_repo)],
) -> QuizAttemptOut:
    try:
        outcome = await progress_service.record_quiz_attempt(
            principal.user_id,
            body.lesson_id,
            score=body.score,
            total_questions=body.total_questions,
            answers=[
                QuizAnswer(
                    question_id=a.question_id,
                    selected_option=a.selected_option,
                    is_correct=a.is_correct,
                )
                for a in body.answers
            ],
            users=users,
            catalog=catalog_repo,
            progress=progress,
        )
    except (NotFoundError, ProgressValidationError) as e:
        raise _http_error(e) from None
    await cache_service.delete(progress_key(principal.user_id))

    return QuizAttemptOut(
        lesson_id=body.lesson_id,
        quiz_result=_quiz_result_out(outcome.attempt),
        lesson_completed=outcome.lesson_completed,
        progress=_entry_out(outcome.entry),
        new_milestones=[_milestone_out(m) for m in outcome.new_milestones],
    )


# ---------------------------------------------------------------------------
# GET /v1/progress/courses/{course_id}
# ---------------------------------------------------------------------------


@router.get("/courses/{course_id}", response_model=CourseOverviewOut)
async def get_course_overview(
    course_id: str,
    principal: Annotated[Principal, Depends(require_user)],
    users: Annotated[UserRepo, Depends(get_user_repo)],
    progress: Annotated[ProgressRepo, Depends(get_progress_repo)],
) -> CourseOverviewOut:
    try:
        overview = await progress_service.get_course_overview(
            principal.user_id,
            course_id,
            users=users,
            catalog=catalog_repo,
            progress=progress,
        )
    except NotFoundError as e:
        raise _http_error(e) from None
    return _overview_out(overview)


# ---------------------------------------------------------------------------
# GET /v1/progress/milestones
# ---------------------------------------------------------------------------


@router.get("/milestones", response_model=LearnerMilestonesOut)
async def get_milestones(
    principal: Annotated[Principal, Depends(require_user)],
    users: Annotated[UserRepo, Depends(get_user_repo)],
    progress: Annotated[ProgressRepo, Depends(get_progress_repo)],
) -> LearnerMilestonesOut:
    try:
        result = await progress_service.get_milestones(
            principal.user_id, users=users, catalog=catalog_repo, progress=progress
        )
    except NotFoundError as e:
        raise _http_error(e) from None
    stats = result.stats
    return LearnerMilestonesOut(
        lessons_completed=stats.lessons_completed,
        courses_started=stats.courses_started,
        study_hours=stats.study_hours,
        current_streak=stats.streak.current,
        longest_streak=stats.streak.longest,
        active_days=stats.streak.active_days,
        milestones=[
            MilestoneStateOut(
                **_milestone_out(s.milestone).model_dump(), achieved=s.achieved
            )
            for s in result.states
        ],
    )
