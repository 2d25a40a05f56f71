"""PgProgressRepo without a database: row conversion, the upsert SQL,
and the attempt_no retry when two writers collide.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError

from learnhub.db.tables import ProgressEntryRow
from learnhub.models.progress import ProgressEntry, QuizAnswer, QuizAttempt
from learnhub.repos.pg_progress_repo import (
    ATTEMPT_INSERT_TRIES,
    PgProgressRepo,
    _attempt_to_row,
    _row_to_attempt,
    _row_to_entry,
    upsert_entry_stmt,
)

T0 = datetime(2026, 2, 2, 8, 30, tzinfo=UTC)


def test_attempt_survives_row_conversion() -> None:
    attempt = QuizAttempt.new(
        score=3,
        total_questions=4,
        completed_at=T0,
        answers=(
            QuizAnswer(question_id="q1", selected_option="a", is_correct=True),
            QuizAnswer(question_id="q2", selected_option="c", is_correct=False),
        ),
    )
    row = _attempt_to_row("u", "course-1", "l2", 1, attempt)

    assert row.attempt_no == 1
    assert row.percentage == 75
    assert _row_to_attempt(row) == attempt


def test_entry_row_arrays_become_frozensets() -> None:
    row = ProgressEntryRow(
        user_id="u",
        course_id="course-1",
        position=0,
        module_id="m1",
        lesson_id="l2",
        completed_lessons=["l1", "l2"],
        completed_projects=[],
        total_progress=66,
        completed_at=None,
    )
    attempt = QuizAttempt.new(score=7, total_questions=10, completed_at=T0)

    entry = _row_to_entry(row, {"l2": [attempt]})

    assert entry.completed_lessons == frozenset({"l1", "l2"})
    assert entry.completed_projects == frozenset()
    assert entry.total_progress == 66
    assert entry.attempts_for("l2") == (attempt,)
    assert entry.attempts_for("l1") == ()


def test_entry_row_with_null_arrays() -> None:
    row = ProgressEntryRow(
        user_id="u",
        course_id="course-1",
        position=0,
        module_id="m1",
        lesson_id="l1",
        completed_lessons=None,
        completed_projects=None,
        total_progress=None,
    )
    entry = _row_to_entry(row, {})
    assert entry.completed_lessons == frozenset()
    assert entry.total_progress == 0
    assert dict(entry.quiz_attempts) == {}


# ---- upsert ----


def _compiled_upsert() -> str:
    entry = ProgressEntry(
        course_id="course-1",
        module_id="m1",
        lesson_id="l1",
        completed_lessons=frozenset({"l1"}),
        total_progress=33,
    )
    stmt = upsert_entry_stmt("u", entry)
    return str(stmt.compile(dialect=postgresql.dialect()))


def test_upsert_resolves_conflicts_on_user_and_course() -> None:
    sql = _compiled_upsert()
    assert sql.startswith("INSERT INTO progress_entries")
    assert "ON CONFLICT (user_id, course_id) DO UPDATE SET" in sql


def test_upsert_overwrites_entry_but_keeps_position() -> None:
    set_clause = _compiled_upsert().split("DO UPDATE SET", 1)[1]
    for column in (
        "module_id",
        "lesson_id",
        "completed_lessons",
        "completed_projects",
        "total_progress",
        "completed_at",
    ):
        assert f"{column} = excluded.{column}" in set_clause
    assert "position" not in set_clause


def test_new_row_position_counts_existing_entries() -> None:
    values_clause = _compiled_upsert().split("ON CONFLICT", 1)[0]
    assert "SELECT count(*)" in values_clause


# ---- attempt_no collisions ----


class _Result:
    def __init__(self, value: int) -> None:
        self._value = value

    def scalar_one(self) -> int:
        return self._value


class _RacingSession:
    """Session where another writer already holds some attempt numbers.

    The first read of the next attempt_no is stale and sees none of them.
    """

    def __init__(self, taken: set[int], *, always_stale: bool = False) -> None:
        self.taken = taken
        self.always_stale = always_stale
        self.rows: list = []
        self.reads = 0
        self._pending: list = []

    async def execute(self, _stmt) -> _Result:
        self.reads += 1
        if self.reads == 1 or self.always_stale:
            return _Result(1)
        return _Result(max(self.taken | {r.attempt_no for r in self.rows}) + 1)

    @asynccontextmanager
    async def begin_nested(self):
        try:
            yield
        except Exception:
            self._pending.clear()
            raise

    def add(self, row) -> None:
        self._pending.append(row)

    async def flush(self) -> None:
        pending, self._pending = self._pending, []
        if any(row.attempt_no in self.taken for row in pending):
            raise IntegrityError("INSERT INTO quiz_attempts", {}, Exception("dup"))
        self.rows.extend(pending)


def _attempt() -> QuizAttempt:
    return QuizAttempt.new(score=8, total_questions=10, completed_at=T0)


def test_colliding_attempt_takes_next_number() -> None:
    session = _RacingSession(taken={1})
    repo = PgProgressRepo(session)  # type: ignore[arg-type]

    asyncio.run(repo._insert_attempt("u", "course-1", "l2", _attempt()))

    assert [row.attempt_no for row in session.rows] == [2]
    assert session.reads == 2


def test_attempt_insert_gives_up_after_retries() -> None:
    session = _RacingSession(taken={1}, always_stale=True)
    repo = PgProgressRepo(session)  # type: ignore[arg-type]

    with pytest.raises(IntegrityError):
        asyncio.run(repo._insert_attempt("u", "course-1", "l2", _attempt()))
    assert session.reads == ATTEMPT_INSERT_TRIES
    assert session.rows == []
