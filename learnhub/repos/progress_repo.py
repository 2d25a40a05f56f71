from __future__ import annotations

from typing import Protocol

from learnhub.models.progress import ProgressEntry


class ProgressRepo(Protocol):
    async def get_progress(self, user_id: str) -> list[ProgressEntry]: ...
    async def upsert_progress(self, user_id: str, entry: ProgressEntry) -> None: ...
    async def commit(self) -> None: ...


class InMemoryProgressRepo:
    """Per-user ordered list of entries, at most one per course.

    Async to share the ProgressRepo contract with PgProgressRepo.
    Concurrent upserts for the same (user, course) are last-writer-wins.
    """

    def __init__(self) -> None:
        self._store: dict[str, list[ProgressEntry]] = {}

    async def get_progress(self, user_id: str) -> list[ProgressEntry]:
        return list(self._store.get(user_id, []))

    async def upsert_progress(self, user_id: str, entry: ProgressEntry) -> None:
        entries = self._store.setdefault(user_id, [])
        for i, existing in enumerate(entries):
            if existing.course_id == entry.course_id:
                entries[i] = entry
                return
        entries.append(entry)

    async def commit(self) -> None:
        # upserts are visible immediately
        return None
