"""PostgreSQL implementation of ProgressRepo."""

from __future__ import annotations

import json
import logging
from collections import defaultdict
from types import MappingProxyType

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import Insert, insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.tables import ProgressEntryRow, QuizAttemptRow
from learnhub.models.progress import ProgressEntry, QuizAnswer, QuizAttempt

logger = logging.getLogger(__name__)

# Two writers racing on one lesson both pick the same attempt_no; the loser
# re-reads and takes the next number.
ATTEMPT_INSERT_TRIES = 3


class PgProgressRepo:
    """Satisfies the ProgressRepo Protocol using PostgreSQL via SQLAlchemy.

    Runs inside the request-scoped session from get_db_session, so an
    entry and its new quiz attempts are committed together or not at all.
    Concurrent writes for one (user, course) never fail: the entry row is
    upserted, so the last writer's entry wins.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_progress(self, user_id: str) -> list[ProgressEntry]:
        stmt = (
            select(ProgressEntryRow)
            .where(ProgressEntryRow.user_id == user_id)
            .order_by(ProgressEntryRow.position)
        )
        rows = (await self._session.execute(stmt)).scalars().all()

        attempt_stmt = (
            select(QuizAttemptRow)
            .where(QuizAttemptRow.user_id == user_id)
            .order_by(QuizAttemptRow.attempt_no)
        )
        attempt_rows = (await self._session.execute(attempt_stmt)).scalars().all()

        attempts: dict[str, dict[str, list[QuizAttempt]]] = defaultdict(
            lambda: defaultdict(list)
        )
        for a in attempt_rows:
            attempts[a.course_id][a.lesson_id].append(_row_to_attempt(a))

        return [_row_to_entry(row, attempts.get(row.course_id, {})) for row in rows]

    async def upsert_progress(self, user_id: str, entry: ProgressEntry) -> None:
        await self._session.execute(upsert_entry_stmt(user_id, entry))
        await self._append_new_attempts(user_id, entry)

    async def commit(self) -> None:
        await self._session.commit()

    async def _append_new_attempts(self, user_id: str, entry: ProgressEntry) -> None:
        # Attempt history is append-only: anything past the stored count is new.
        stmt = (
            select(QuizAttemptRow.lesson_id, func.count())
            .where(
                QuizAttemptRow.user_id == user_id,
                QuizAttemptRow.course_id == entry.course_id,
            )
            .group_by(QuizAttemptRow.lesson_id)
        )
        stored = {lesson_id: n for lesson_id, n in await self._session.execute(stmt)}

        for lesson_id, attempts in entry.quiz_attempts.items():
            for attempt in attempts[stored.get(lesson_id, 0) :]:
                await self._insert_attempt(user_id, entry.course_id, lesson_id, attempt)

    async def _insert_attempt(
        self, user_id: str, course_id: str, lesson_id: str, attempt: QuizAttempt
    ) -> None:
        for tries_left in range(ATTEMPT_INSERT_TRIES - 1, -1, -1):
            attempt_no = await self._next_attempt_no(user_id, course_id, lesson_id)
            try:
                async with self._session.begin_nested():
                    row = _attempt_to_row(
                        user_id, course_id, lesson_id, attempt_no, attempt
                    )
                    self._session.add(row)
                    await self._session.flush()
                return
            except IntegrityError:
                if tries_left == 0:
                    raise
                logger.info(
                    "attempt_no %d taken user=%s lesson=%s, retrying",
                    attempt_no,
                    user_id,
                    lesson_id,
                )

    async def _next_attempt_no(
        self, user_id: str, course_id: str, lesson_id: str
    ) -> int:
        stmt = select(func.coalesce(func.max(QuizAttemptRow.attempt_no), 0) + 1).where(
            QuizAttemptRow.user_id == user_id,
            QuizAttemptRow.course_id == course_id,
            QuizAttemptRow.lesson_id == lesson_id,
        )
        return (await self._session.execute(stmt)).scalar_one()


def upsert_entry_stmt(user_id: str, entry: ProgressEntry) -> Insert:
    """INSERT ... ON CONFLICT (user_id, course_id) DO UPDATE.

    A new row is appended at the end of the user's list; an existing row
    keeps its position and takes every other column from ``entry``.
    """
    values = {
        "module_id": entry.module_id,
        "lesson_id": entry.lesson_id,
        "completed_lessons": sorted(entry.completed_lessons),
        "completed_projects": sorted(entry.completed_projects),
        "total_progress": entry.total_progress,
        "completed_at": entry.completed_at,
    }
    position = (
        select(func.count())
        .select_from(ProgressEntryRow)
        .where(ProgressEntryRow.user_id == user_id)
        .scalar_subquery()
    )
    stmt = insert(ProgressEntryRow).values(
        user_id=user_id, course_id=entry.course_id, position=position, **values
    )
    return stmt.on_conflict_do_update(
        index_elements=[ProgressEntryRow.user_id, ProgressEntryRow.course_id],
        set_={name: stmt.excluded[name] for name in values},
    )


def _row_to_attempt(row: QuizAttemptRow) -> QuizAttempt:
    return QuizAttempt(
        score=row.score,
        total_questions=row.total_questions,
        percentage=row.percentage,
        completed_at=row.completed_at,
        answers=tuple(QuizAnswer(**a) for a in json.loads(row.answers_json or "[]")),
    )


def _attempt_to_row(
    user_id: str, course_id: str, lesson_id: str, attempt_no: int, attempt: QuizAttempt
) -> QuizAttemptRow:
    return QuizAttemptRow(
        user_id=user_id,
        course_id=course_id,
        lesson_id=lesson_id,
        attempt_no=attempt_no,
        score=attempt.score,
        total_questions=attempt.total_questions,
        percentage=attempt.percentage,
        answers_json=json.dumps(
            [
                {
                    "question_id": a.question_id,
                    "selected_option": a.selected_option,
                    "is_correct": a.is_correct,
                }
                for a in attempt.answers
            ]
        ),
        completed_at=attempt.completed_at,
    )


def _row_to_entry(
    row: ProgressEntryRow, attempts: dict[str, list[QuizAttempt]]
) -> ProgressEntry:
    return ProgressEntry(
        course_id=row.course_id,
        module_id=row.module_id,
        lesson_id=row.lesson_id,
        completed_lessons=frozenset(row.completed_lessons or ()),
        completed_projects=frozenset(row.completed_projects or ()),
        total_progress=row.total_progress or 0,
        completed_at=row.completed_at,
        quiz_attempts=MappingProxyType(
            {lesson_id: tuple(items) for lesson_id, items in attempts.items()}
        ),
    )
