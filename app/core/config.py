from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]
CompletionMode = Literal["counter", "distinct"]


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getenv_int(name: str, default: str, *, minimum: int) -> int:
    raw = _getenv(name, default)
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum} (got {value})")
    return value


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    lesson_completion_mode: CompletionMode = "counter"
    monthly_progress_months: int = 4
    progress_cache_ttl: int = 300
    jwt_public_key: str | None = None
    jwt_issuer: str = "auth-service"
    jwt_audience: str = "progress-service"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false").lower()
    completion_mode_raw = _getenv("LESSON_COMPLETION_MODE", "counter").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    if completion_mode_raw not in ("counter", "distinct"):
        raise ValueError(
            "LESSON_COMPLETION_MODE must be counter|distinct "
            f"(got {completion_mode_raw!r})"
        )

    port = _getenv_int("PORT", "8000", minimum=1)
    monthly_months = _getenv_int("MONTHLY_PROGRESS_MONTHS", "4", minimum=1)
    cache_ttl = _getenv_int("PROGRESS_CACHE_TTL", "300", minimum=0)

    # PEM keys arrive through env files with literal "\n" sequences
    jwt_public_key = _getenv("JWT_PUBLIC_KEY", "").replace("\\n", "\n") or None

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json_raw in ("1", "true", "yes"),
        port=port,
        database_url=_getenv("DATABASE_URL", "") or None,
        redis_url=_getenv("REDIS_URL", "") or None,
        lesson_completion_mode=completion_mode_raw,
        monthly_progress_months=monthly_months,
        progress_cache_ttl=cache_ttl,
        jwt_public_key=jwt_public_key,
        jwt_issuer=_getenv("JWT_ISSUER", "auth-service"),
        jwt_audience=_getenv("JWT_AUDIENCE", "progress-service"),
    )


SETTINGS = load_settings()
