"""Service config from environment."""

import os


def _int(val: str | None, default: int) -> int:
    if val is None or val.strip() == "":
        return default
    try:
        return int(val.strip())
    except ValueError:
        return default


def _float_list(val: str | None, default: tuple[float, ...]) -> tuple[float, ...]:
    if val is None or val.strip() == "":
        return default
    try:
        return tuple(float(s.strip()) for s in val.split(",") if s.strip())
    except ValueError:
        return default


def _list(val: str | None) -> list[str]:
    if val is None or val.strip() == "":
        return []
    return [s.strip() for s in val.split(",") if s.strip()]


class Settings:
    """Publish, distribution and health settings from env vars."""

    PUBLISH_MAX_ATTEMPTS: int = _int(os.getenv("PUBLISH_MAX_ATTEMPTS"), 5)
    HEALTH_FRESHNESS_MINUTES: int = _int(os.getenv("HEALTH_FRESHNESS_MINUTES"), 60)
    HISTORY_DEFAULT_LIMIT: int = _int(os.getenv("HISTORY_DEFAULT_LIMIT"), 20)
    HISTORY_MAX_LIMIT: int = _int(os.getenv("HISTORY_MAX_LIMIT"), 200)
    SYNC_STATUS_WINDOW_HOURS: int = _int(os.getenv("SYNC_STATUS_WINDOW_HOURS"), 24)
    SYNC_STATUS_LIMIT: int = _int(os.getenv("SYNC_STATUS_LIMIT"), 50)
    # One entry per retry of an idempotent read; empty disables read retries.
    READ_RETRY_BACKOFF_SECONDS: tuple[float, ...] = _float_list(
        os.getenv("READ_RETRY_BACKOFF_SECONDS"), (0.1, 0.5)
    )
    CORS_ALLOW_ORIGINS: list[str] = _list(os.getenv("CORS_ALLOW_ORIGINS"))


settings = Settings()
