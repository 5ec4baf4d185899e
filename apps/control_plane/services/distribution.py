"""Distribution: pull-only read path for agents.

fetch_current is a pure read of the latest published version; it is safe to call as often
and as concurrently as agents like. agent_sync is the handshake form: the agent reports the
version it runs, gets the new config only when it is behind, and the attempt is audited.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from apps.control_plane.models.config_version import TenantConfigVersion
from apps.control_plane.models.sync_attempt import SYNC_FAILURE, SYNC_SUCCESS
from apps.control_plane.services.errors import ConfigUnavailableError, NoPublishedConfigError
from apps.control_plane.services.repo import get_latest_published
from apps.control_plane.services.sync_audit import SyncOutcome, record_attempt
from apps.control_plane.services.tenant_guard import require_tenant_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentConfig:
    version: int
    payload: dict[str, Any]
    payload_hash: str
    published_at: datetime | None

    @classmethod
    def from_row(cls, row: TenantConfigVersion) -> "CurrentConfig":
        return cls(
            version=row.version,
            payload=row.payload,
            payload_hash=row.payload_hash,
            published_at=row.published_at,
        )


@dataclass(frozen=True)
class SyncHandshake:
    has_updates: bool
    latest_version: int
    config: CurrentConfig | None = None


def fetch_current(tenant_id: str | None, agent_version: str | None = None) -> CurrentConfig:
    """Return (version, payload) of the latest published version. No side effects.
    Raises NoPublishedConfigError when the tenant never published and ConfigUnavailableError
    when the store cannot be read."""
    tenant_id = require_tenant_id(tenant_id)
    try:
        row = get_latest_published(tenant_id)
    except SQLAlchemyError as e:
        logger.error("fetch_current tenant=%s agent_version=%s store error: %s", tenant_id, agent_version, e)
        raise ConfigUnavailableError(tenant_id, str(e)) from e
    if row is None:
        logger.info("fetch_current tenant=%s agent_version=%s no published config", tenant_id, agent_version)
        raise NoPublishedConfigError(tenant_id)
    return CurrentConfig.from_row(row)


def agent_sync(
    tenant_id: str | None,
    agent_version: str | None,
    current_version: int | None = None,
    agent_id: str | None = None,
) -> SyncHandshake:
    """Handshake: compare the agent's running version with the latest published one.

    The config is included only when the agent is behind (or reports nothing). The attempt is
    recorded as success with applied_version=current_version. A tenant with nothing published,
    or a store that cannot be read, is recorded as failure and the error propagates. Audit
    failures never change the outcome.
    """
    tenant_id = require_tenant_id(tenant_id)
    started = time.monotonic()
    try:
        current = fetch_current(tenant_id, agent_version)
    except (NoPublishedConfigError, ConfigUnavailableError) as e:
        record_attempt(
            tenant_id,
            agent_version,
            SyncOutcome(
                status=SYNC_FAILURE,
                duration_ms=int((time.monotonic() - started) * 1000),
                applied_version=current_version,
                error_message=str(e),
            ),
            agent_id=agent_id,
        )
        raise

    has_updates = current_version is None or current.version > current_version
    if has_updates:
        logger.info(
            "agent_sync tenant=%s agent=%s update v%s -> v%s",
            tenant_id,
            agent_id or agent_version,
            current_version or 0,
            current.version,
        )
    record_attempt(
        tenant_id,
        agent_version,
        SyncOutcome(
            status=SYNC_SUCCESS,
            duration_ms=int((time.monotonic() - started) * 1000),
            applied_version=current_version,
        ),
        agent_id=agent_id,
    )
    return SyncHandshake(
        has_updates=has_updates,
        latest_version=current.version,
        config=current if has_updates else None,
    )
