"""PgUserRepo against a stub session; the SQL itself runs in the PG suite."""

from __future__ import annotations

import asyncio

from learnhub.api.dependencies import get_progress_repo, get_user_repo, user_repo
from learnhub.db.tables import LearnerRow
from learnhub.repos.pg_progress_repo import PgProgressRepo
from learnhub.repos.pg_user_repo import PgUserRepo


class _Result:
    def __init__(self, row: LearnerRow | None) -> None:
        self._row = row

    def scalar_one_or_none(self) -> LearnerRow | None:
        return self._row


class _StubSession:
    def __init__(self, row: LearnerRow | None = None) -> None:
        self.row = row
        self.added: list[object] = []
        self.statements: list[object] = []

    async def execute(self, stmt):
        self.statements.append(stmt)
        return _Result(self.row)

    def add(self, row: object) -> None:
        self.added.append(row)

    async def flush(self) -> None:
        pass


def test_learner_row_becomes_user() -> None:
    row = LearnerRow(id="u-9", email="u9@example.com", name=None, is_active=False)
    user = asyncio.run(PgUserRepo(_StubSession(row)).get_by_id("u-9"))
    assert user is not None
    assert (user.id, user.name, user.is_active) == ("u-9", "", False)


def test_missing_learner_is_none() -> None:
    assert asyncio.run(PgUserRepo(_StubSession()).get_by_id("nobody")) is None


def test_set_active_issues_update() -> None:
    session = _StubSession()
    asyncio.run(PgUserRepo(session).set_active("u-9", False))
    (stmt,) = session.statements
    assert str(stmt).startswith("UPDATE learners SET is_active=")


def test_repos_follow_the_request_session() -> None:
    assert get_user_repo(None) is user_repo
    session = _StubSession()
    assert isinstance(get_user_repo(session), PgUserRepo)
    assert isinstance(get_progress_repo(session), PgProgressRepo)
