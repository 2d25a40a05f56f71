from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off", "")


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it's easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    progress_cache_ttl: int = 300
    catalog_path: str | None = None
    jwt_public_key_file: str | None = None
    jwt_issuer: str = "learnhub-auth"
    jwt_audience: str = "learnhub"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false").lower()
    port_raw = _getenv("PORT", "8000")
    ttl_raw = _getenv("PROGRESS_CACHE_TTL", "300")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    if log_json_raw not in _TRUTHY + _FALSY:
        raise ValueError(f"LOG_JSON must be a boolean flag (got {log_json_raw!r})")

    port = _parse_int("PORT", port_raw)
    progress_cache_ttl = _parse_int("PROGRESS_CACHE_TTL", ttl_raw)
    if progress_cache_ttl <= 0:
        raise ValueError(
            f"PROGRESS_CACHE_TTL must be positive (got {progress_cache_ttl})"
        )

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None
    catalog_path = _getenv("CATALOG_PATH", "") or None
    jwt_public_key_file = _getenv("JWT_PUBLIC_KEY_FILE", "") or None

    # prod has no ephemeral keys, no in-memory learners and no sample course
    if app_env_raw == "prod":
        missing = [
            name
            for name, value in (
                ("DATABASE_URL", database_url),
                ("CATALOG_PATH", catalog_path),
                ("JWT_PUBLIC_KEY_FILE", jwt_public_key_file),
            )
            if value is None
        ]
        if missing:
            raise ValueError(f"APP_ENV=prod requires {', '.join(missing)}")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json_raw in _TRUTHY,
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        progress_cache_ttl=progress_cache_ttl,
        catalog_path=catalog_path,
        jwt_public_key_file=jwt_public_key_file,
        jwt_issuer=_getenv("JWT_ISSUER", "learnhub-auth"),
        jwt_audience=_getenv("JWT_AUDIENCE", "learnhub"),
    )


# Module-level singleton so imports are cheap
SETTINGS = load_settings()
