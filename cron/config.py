"""Cron config from environment."""

import os


def _int(val: str | None, default: int) -> int:
    if val is None or val.strip() == "":
        return default
    try:
        return int(val.strip())
    except ValueError:
        return default


def _float(val: str | None, default: float) -> float:
    if val is None or val.strip() == "":
        return default
    try:
        return float(val.strip())
    except ValueError:
        return default


def _list(val: str | None) -> list[str]:
    if val is None or val.strip() == "":
        return []
    return [s.strip() for s in val.split(",") if s.strip()]


class Config:
    """Rollout report configuration from env vars."""

    API_BASE: str = os.getenv("API_BASE", "http://localhost:8000")
    TENANTS: list[str] = _list(os.getenv("TENANTS"))
    HEALTH_FRESHNESS_MINUTES: int = _int(os.getenv("HEALTH_FRESHNESS_MINUTES"), 60)
    REQUEST_TIMEOUT_SECONDS: float = _float(os.getenv("REQUEST_TIMEOUT_SECONDS"), 10.0)
    LOG_DIR: str = os.getenv("CRON_LOG_DIR", "logs")


config = Config()
