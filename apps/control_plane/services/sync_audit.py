"""Sync audit log: append-only record of every agent sync attempt.

record_attempt never raises on storage errors. The audit trail is diagnostic, so a failure
to log a sync must not turn the sync itself into a failure; the caller only learns whether
the row was recorded, dropped, or the store was unreachable.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.exc import DisconnectionError, OperationalError, SQLAlchemyError

from apps.control_plane.models.sync_attempt import SYNC_STATUSES, SYNC_SUCCESS, SyncAttempt
from apps.control_plane.services.repo import (
    count_sync_attempts_by_status,
    insert_sync_attempt,
    last_sync_attempt_per_agent,
    list_recent_sync_attempts,
    list_sync_attempts,
)
from apps.control_plane.services.tenant_guard import optional_tenant_id
from apps.control_plane.settings import settings

logger = logging.getLogger(__name__)

UNSPECIFIED_ERROR = "unspecified error"


class RecordResult(str, enum.Enum):
    RECORDED = "recorded"
    DROPPED = "dropped"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class SyncOutcome:
    """What the agent reports about one sync cycle."""

    status: str
    duration_ms: int
    applied_version: int | None = None
    error_message: str | None = None

    def __post_init__(self) -> None:
        if self.status not in SYNC_STATUSES:
            raise ValueError(f"sync status must be one of {SYNC_STATUSES}, got {self.status!r}")

    def normalized_error(self) -> str | None:
        """error_message is present iff status != success."""
        if self.status == SYNC_SUCCESS:
            return None
        msg = (self.error_message or "").strip()
        return msg or UNSPECIFIED_ERROR


def record_attempt(
    tenant_id: str | None,
    agent_version: str | None,
    outcome: SyncOutcome,
    agent_id: str | None = None,
) -> RecordResult:
    """Append exactly one sync_attempt row. synced_at is stamped here, not by the agent."""
    tenant_id = optional_tenant_id(tenant_id)
    agent_version = (agent_version or "").strip() or "unknown"
    agent_id = (agent_id or "").strip() or None
    try:
        insert_sync_attempt(
            tenant_id,
            agent_version=agent_version,
            sync_status=outcome.status,
            duration_ms=max(0, int(outcome.duration_ms)),
            applied_version=outcome.applied_version,
            error_message=outcome.normalized_error(),
            agent_id=agent_id,
            synced_at=datetime.now(timezone.utc),
        )
    except (OperationalError, DisconnectionError):
        logger.exception("sync audit unavailable tenant=%s agent=%s", tenant_id, agent_id or agent_version)
        return RecordResult.UNAVAILABLE
    except SQLAlchemyError:
        logger.exception("sync audit dropped tenant=%s agent=%s", tenant_id, agent_id or agent_version)
        return RecordResult.DROPPED
    logger.info(
        "sync recorded tenant=%s agent=%s status=%s applied=%s",
        tenant_id,
        agent_id or agent_version,
        outcome.status,
        outcome.applied_version,
    )
    return RecordResult.RECORDED


def recent_attempts(tenant_id: str, since: datetime) -> list[SyncAttempt]:
    """Attempts for tenant at or after since, newest first."""
    return list_sync_attempts(tenant_id, since=since)


def last_attempt_per_agent(tenant_id: str) -> dict[str, SyncAttempt]:
    """agent_key -> most recent attempt. See SyncAttempt.agent_key."""
    return last_sync_attempt_per_agent(tenant_id)


def attempt_to_dict(attempt: SyncAttempt) -> dict[str, Any]:
    return {
        "id": attempt.id,
        "tenant_id": attempt.tenant_id,
        "agent_id": attempt.agent_id,
        "agent_version": attempt.agent_version,
        "status": attempt.sync_status,
        "applied_version": attempt.applied_version,
        "duration_ms": attempt.duration_ms,
        "error_message": attempt.error_message,
        "synced_at": attempt.synced_at,
    }


def sync_status_summary(
    tenant_id: str | None = None,
    window_hours: int | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    """Recent attempts plus per-status counts inside the window. Fleet-wide when tenant_id is None."""
    window_hours = settings.SYNC_STATUS_WINDOW_HOURS if window_hours is None else window_hours
    limit = settings.SYNC_STATUS_LIMIT if limit is None else limit
    since = datetime.now(timezone.utc) - timedelta(hours=window_hours)
    recent = list_recent_sync_attempts(tenant_id, limit=limit)
    stats = count_sync_attempts_by_status(tenant_id, since=since)
    return {
        "tenant_id": optional_tenant_id(tenant_id),
        "window_hours": window_hours,
        "recent": [attempt_to_dict(a) for a in recent],
        "stats": {status: stats.get(status, 0) for status in SYNC_STATUSES},
    }
