from __future__ import annotations

from dataclasses import replace
from typing import Protocol

from learnhub.models.user import User


class UserRepo(Protocol):
    async def get_by_id(self, user_id: str) -> User | None: ...
    async def add(self, user: User) -> None: ...
    async def set_active(self, user_id: str, is_active: bool) -> None: ...


class InMemoryUserRepo:
    """Learner directory for dev and tests.

    Async to share the UserRepo contract with PgUserRepo.
    """

    def __init__(self) -> None:
        self._by_id: dict[str, User] = {}

    async def get_by_id(self, user_id: str) -> User | None:
        return self._by_id.get(user_id)

    async def add(self, user: User) -> None:
        if user.id in self._by_id:
            raise ValueError("user already exists")
        self._by_id[user.id] = user

    async def set_active(self, user_id: str, is_active: bool) -> None:
        u = self._by_id.get(user_id)
        if u is None:
            raise KeyError("user not found")
        self._by_id[user_id] = replace(u, is_active=is_active)
