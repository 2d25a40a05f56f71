"""PostgreSQL implementation of UserRepo.

Learner rows are written by the platform's account workflows; this
service reads them to resolve the ``sub`` of an access token.
"""

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.tables import LearnerRow
from learnhub.models.user import User


class PgUserRepo:
    """Satisfies the UserRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: str) -> User | None:
        stmt = select(LearnerRow).where(LearnerRow.id == user_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_user(row)

    async def add(self, user: User) -> None:
        row = LearnerRow(
            id=user.id,
            email=user.email,
            name=user.name,
            is_active=user.is_active,
        )
        self._session.add(row)
        await self._session.flush()

    async def set_active(self, user_id: str, is_active: bool) -> None:
        stmt = (
            update(LearnerRow)
            .where(LearnerRow.id == user_id)
            .values(is_active=is_active)
        )
        await self._session.execute(stmt)


def _row_to_user(row: LearnerRow) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name or "",
        is_active=row.is_active,
    )
