from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.core.config import SETTINGS
from learnhub.db.engine import async_session_factory
from learnhub.models.principal import Principal
from learnhub.models.user import User
from learnhub.repos.catalog_file import load_catalog
from learnhub.repos.catalog_repo import InMemoryCatalogRepo
from learnhub.repos.pg_progress_repo import PgProgressRepo
from learnhub.repos.pg_user_repo import PgUserRepo
from learnhub.repos.progress_repo import InMemoryProgressRepo, ProgressRepo
from learnhub.repos.user_repo import InMemoryUserRepo, UserRepo
from learnhub.services import token_service

logger = logging.getLogger(__name__)

# tokenUrl points at the external auth provider; it only feeds the OpenAPI docs.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")

# --- Module-level repo singletons ---
# user_repo and progress_repo are only used when DATABASE_URL is unset.
user_repo = InMemoryUserRepo()
catalog_repo = InMemoryCatalogRepo()
progress_repo = InMemoryProgressRepo()

DEMO_USER_ID = "demo-learner"
SAMPLE_CATALOG = Path(__file__).resolve().parents[2] / "catalog.example.json"


async def seed_demo_user() -> None:
    """Seed a learner identity for local development."""
    if await user_repo.get_by_id(DEMO_USER_ID) is None:
        await user_repo.add(
            User(id=DEMO_USER_ID, email="demo@learnhub.dev", name="Demo Learner")
        )


if SETTINGS.catalog_path:
    load_catalog(SETTINGS.catalog_path, catalog_repo)
elif SETTINGS.is_dev:
    load_catalog(SAMPLE_CATALOG, catalog_repo)


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Validate the bearer token and return the caller's Principal.

    Missing, expired or malformed tokens are 401: no partial work is
    done for an unauthenticated caller.
    """
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = Principal(
        user_id=claims["sub"],
        roles=frozenset(claims.get("roles", [])),
    )
    logger.debug("Token validated for user=%s", principal.user_id)
    return principal


async def get_db_session() -> AsyncGenerator[AsyncSession | None, None]:
    """One session per request, shared by every repo that needs it.

    None when DATABASE_URL is unset.  Writes are committed by the
    progress service; anything uncommitted is rolled back if the
    endpoint raises.
    """
    if async_session_factory is None:
        yield None
        return

    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def get_user_repo(
    session: Annotated[AsyncSession | None, Depends(get_db_session)],
) -> UserRepo:
    if session is None:
        return user_repo
    return PgUserRepo(session)


def get_progress_repo(
    session: Annotated[AsyncSession | None, Depends(get_db_session)],
) -> ProgressRepo:
    """PostgreSQL store when DATABASE_URL is set, in-memory otherwise."""
    if session is None:
        return progress_repo
    return PgProgressRepo(session)
