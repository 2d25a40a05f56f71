from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from pathlib import Path

# Tests never seed the dev catalog/user; each test builds what it needs.
os.environ.setdefault("APP_ENV", "test")

# Ensure repo root is on sys.path so `import learnhub` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from learnhub.api.dependencies import (  # noqa: E402
    catalog_repo,
    progress_repo,
    user_repo,
)
from learnhub.core.logging import setup_logging  # noqa: E402
from learnhub.main import app  # noqa: E402
from learnhub.models.catalog import Course, Lesson, Module  # noqa: E402
from learnhub.models.user import User  # noqa: E402
from learnhub.services import token_service  # noqa: E402
from learnhub.services.cache import cache_service  # noqa: E402

TEST_USER_ID = "test-user"
OTHER_USER_ID = "other-user"


def build_course(
    *,
    course_id: str = "course-1",
    slug: str = "python-101",
) -> Course:
    """[basics: intro, variables(quiz)] [projects: calculator(project)]."""
    return Course(
        id=course_id,
        slug=slug,
        title="Python 101",
        modules=(
            Module(
                id="m1",
                slug="basics",
                title="Basics",
                order=1,
                lessons=(
                    Lesson(id="l1", slug="intro", title="Intro", order=1),
                    Lesson(
                        id="l2",
                        slug="variables",
                        title="Variables",
                        order=2,
                        has_quiz=True,
                    ),
                ),
            ),
            Module(
                id="m2",
                slug="projects",
                title="Projects",
                order=2,
                lessons=(
                    Lesson(
                        id="l3",
                        slug="calculator",
                        title="Calculator",
                        order=1,
                        type="project",
                    ),
                ),
            ),
        ),
    )


@pytest.fixture(autouse=True)
def reset_users() -> None:
    user_repo._by_id.clear()
    for user_id in (TEST_USER_ID, OTHER_USER_ID):
        asyncio.run(user_repo.add(User(id=user_id, email=f"{user_id}@example.com")))


@pytest.fixture(autouse=True)
def reset_catalog() -> None:
    catalog_repo._by_id.clear()
    catalog_repo._by_slug.clear()
    catalog_repo.add(build_course())


@pytest.fixture(autouse=True)
def reset_progress_state() -> None:
    progress_repo._store.clear()


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(username: str = TEST_USER_ID, roles: list[str] | None = None) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def token() -> str:
    return mint_token()


@pytest.fixture
def course() -> Course:
    return build_course()


@pytest.fixture
def json_logs(capsys: pytest.CaptureFixture[str]):
    """Switch to JSON log lines on captured stdout; returns a reader.

    The reader parses every JSON line written since the last read.
    Root handlers are restored afterwards.
    """
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    setup_logging("info", json_format=True)

    # capsys swaps sys.stdout between setup and call; write to the current one.
    class _CurrentStdout:
        def write(self, s: str) -> int:
            return sys.stdout.write(s)

        def flush(self) -> None:
            sys.stdout.flush()

    for handler in root.handlers:
        if isinstance(handler, logging.StreamHandler):
            handler.setStream(_CurrentStdout())

    def read() -> list[dict]:
        out = capsys.readouterr().out
        return [json.loads(line) for line in out.splitlines() if line.startswith("{")]

    yield read
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
