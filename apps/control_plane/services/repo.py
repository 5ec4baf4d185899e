"""Repository layer. All functions require tenant_id as first argument; guard raises if None/empty.

RULE: Repo is the ONLY place allowed to run DB reads/writes (session.execute, get_db).
All tenant-scoped queries MUST use tenant_filters (select_*_for_tenant / tenant_where).

GUARD: Every function MUST call require_tenant_id(tenant_id) before any DB access.
Exception: sync-attempt writes and fleet-wide audit reads accept tenant_id=None, since
agents may fail before identifying a tenant.

Idempotent reads retry transient OperationalErrors on READ_RETRY_BACKOFF_SECONDS.
Writes never retry here; callers decide.
"""

import copy
import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, OperationalError

from apps.control_plane.db import get_db
from apps.control_plane.models.config_version import STATUS_DRAFT, STATUS_PUBLISHED, TenantConfigVersion
from apps.control_plane.models.sync_attempt import SyncAttempt
from apps.control_plane.repositories.tenant_filters import (
    select_config_version_for_tenant,
    select_published_version_for_tenant,
    select_sync_attempt_for_tenant,
    tenant_where,
)
from apps.control_plane.services.errors import ConflictError, InvalidStateError, NotFoundError
from apps.control_plane.services.tenant_guard import TenantRequiredError, optional_tenant_id, require_tenant_id
from apps.control_plane.settings import settings
from apps.control_plane.utils.hashing import payload_hash

logger = logging.getLogger(__name__)

T = TypeVar("T")

__all__ = [
    "TenantRequiredError",
    "append_draft",
    "count_sync_attempts_by_status",
    "get_by_version",
    "get_latest_published",
    "get_max_version",
    "insert_sync_attempt",
    "last_sync_attempt_per_agent",
    "list_history",
    "list_recent_sync_attempts",
    "list_sync_attempts",
    "mark_published",
]


def _retry_read(label: str, query: Callable[[], T]) -> T:
    """Run an idempotent read; on OperationalError sleep per backoff schedule and retry."""
    delays = tuple(settings.READ_RETRY_BACKOFF_SECONDS)
    attempt = 0
    while True:
        try:
            return query()
        except OperationalError as e:
            if attempt >= len(delays):
                raise
            logger.warning("read=%s attempt=%s transient db error, retrying: %s", label, attempt + 1, e)
            time.sleep(delays[attempt])
            attempt += 1


# ---------------------------------------------------------------------------
# Version store
# ---------------------------------------------------------------------------


def get_max_version(tenant_id: str | None) -> int:
    """Return highest version number for tenant across all statuses (drafts included), or 0."""
    tenant_id = require_tenant_id(tenant_id)
    stmt = select(func.max(TenantConfigVersion.version)).where(tenant_where(TenantConfigVersion, tenant_id))

    def _query() -> int:
        with get_db() as session:
            return int(session.execute(stmt).scalar() or 0)

    return _retry_read("get_max_version", _query)


def append_draft(
    tenant_id: str | None,
    version: int,
    payload: dict[str, Any],
    author_id: str,
) -> TenantConfigVersion:
    """Insert a draft row with the given version number. Raises ConflictError if (tenant, version) is taken."""
    tenant_id = require_tenant_id(tenant_id)
    if version < 1:
        raise ValueError("version must be a positive integer")
    frozen = copy.deepcopy(payload)
    row = TenantConfigVersion(
        tenant_id=tenant_id,
        version=version,
        payload=frozen,
        payload_hash=payload_hash(frozen),
        status=STATUS_DRAFT,
        created_by=author_id,
    )
    try:
        with get_db() as session:
            session.add(row)
            session.flush()
            session.refresh(row)
    except IntegrityError as e:
        raise ConflictError(tenant_id, version) from e
    return row


def mark_published(tenant_id: str | None, version: int) -> TenantConfigVersion:
    """Flip draft -> published and stamp published_at, once.
    Conditional UPDATE on status='draft' so two concurrent callers cannot both succeed.
    Raises NotFoundError if the row does not exist, InvalidStateError if already published."""
    tenant_id = require_tenant_id(tenant_id)
    lookup = select_config_version_for_tenant(tenant_id).where(TenantConfigVersion.version == version)
    stmt = (
        update(TenantConfigVersion)
        .where(
            tenant_where(TenantConfigVersion, tenant_id),
            TenantConfigVersion.version == version,
            TenantConfigVersion.status == STATUS_DRAFT,
        )
        .values(status=STATUS_PUBLISHED, published_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    with get_db() as session:
        result = session.execute(stmt)
        row = session.scalars(lookup).first()
        if row is None:
            raise NotFoundError(f"version {version} not found for tenant {tenant_id}")
        if result.rowcount == 0:
            raise InvalidStateError(f"version {version} for tenant {tenant_id} is already {row.status}")
        return row


def get_latest_published(tenant_id: str | None) -> TenantConfigVersion | None:
    """Return the highest published version for tenant, or None if the tenant never published."""
    tenant_id = require_tenant_id(tenant_id)
    stmt = select_published_version_for_tenant(tenant_id).limit(1)

    def _query() -> TenantConfigVersion | None:
        with get_db() as session:
            return session.scalars(stmt).first()

    return _retry_read("get_latest_published", _query)


def get_by_version(tenant_id: str | None, version: int) -> TenantConfigVersion | None:
    """Return version row for tenant, or None."""
    tenant_id = require_tenant_id(tenant_id)
    stmt = select_config_version_for_tenant(tenant_id).where(TenantConfigVersion.version == version)

    def _query() -> TenantConfigVersion | None:
        with get_db() as session:
            return session.scalars(stmt).first()

    return _retry_read("get_by_version", _query)


def list_history(
    tenant_id: str | None,
    limit: int = 20,
    before: int | None = None,
) -> list[TenantConfigVersion]:
    """List versions for tenant ordered by version desc. before is exclusive (cursor pagination)."""
    tenant_id = require_tenant_id(tenant_id)
    stmt = select_config_version_for_tenant(tenant_id)
    if before is not None:
        stmt = stmt.where(TenantConfigVersion.version < before)
    stmt = stmt.order_by(TenantConfigVersion.version.desc()).limit(limit)

    def _query() -> list[TenantConfigVersion]:
        with get_db() as session:
            return list(session.scalars(stmt).all())

    return _retry_read("list_history", _query)


# ---------------------------------------------------------------------------
# Sync audit
# ---------------------------------------------------------------------------


def insert_sync_attempt(
    tenant_id: str | None,
    agent_version: str,
    sync_status: str,
    duration_ms: int,
    applied_version: int | None = None,
    error_message: str | None = None,
    agent_id: str | None = None,
    synced_at: datetime | None = None,
) -> SyncAttempt:
    """Append one sync_attempt row. tenant_id may be None. Never updates existing rows."""
    row = SyncAttempt(
        tenant_id=optional_tenant_id(tenant_id),
        agent_id=agent_id,
        agent_version=agent_version,
        sync_status=sync_status,
        applied_version=applied_version,
        duration_ms=duration_ms,
        error_message=error_message,
        synced_at=synced_at or datetime.now(timezone.utc),
    )
    with get_db() as session:
        session.add(row)
        session.flush()
    return row


def list_sync_attempts(
    tenant_id: str | None,
    since: datetime | None = None,
    limit: int | None = None,
) -> list[SyncAttempt]:
    """List sync attempts for tenant, newest first. since is inclusive."""
    tenant_id = require_tenant_id(tenant_id)
    stmt = select_sync_attempt_for_tenant(tenant_id)
    if since is not None:
        stmt = stmt.where(SyncAttempt.synced_at >= since)
    stmt = stmt.order_by(SyncAttempt.synced_at.desc(), SyncAttempt.id.desc())
    if limit is not None:
        stmt = stmt.limit(limit)

    def _query() -> list[SyncAttempt]:
        with get_db() as session:
            return list(session.scalars(stmt).all())

    return _retry_read("list_sync_attempts", _query)


def last_sync_attempt_per_agent(tenant_id: str | None) -> dict[str, SyncAttempt]:
    """Return agent_key -> most recent attempt. agent_key is agent_id, else agent_version."""
    tenant_id = require_tenant_id(tenant_id)
    agent_key = func.coalesce(SyncAttempt.agent_id, SyncAttempt.agent_version)
    ranked = (
        select(
            SyncAttempt.id.label("attempt_id"),
            func.row_number()
            .over(partition_by=agent_key, order_by=(SyncAttempt.synced_at.desc(), SyncAttempt.id.desc()))
            .label("rn"),
        )
        .where(tenant_where(SyncAttempt, tenant_id))
        .subquery()
    )
    stmt = (
        select_sync_attempt_for_tenant(tenant_id)
        .join(ranked, ranked.c.attempt_id == SyncAttempt.id)
        .where(ranked.c.rn == 1)
    )

    def _query() -> dict[str, SyncAttempt]:
        with get_db() as session:
            return {a.agent_key: a for a in session.scalars(stmt).all()}

    return _retry_read("last_sync_attempt_per_agent", _query)


def list_recent_sync_attempts(
    tenant_id: str | None = None,
    since: datetime | None = None,
    limit: int = 50,
) -> list[SyncAttempt]:
    """Fleet-wide (tenant_id=None) or tenant-scoped recent attempts, newest first."""
    tenant_id = optional_tenant_id(tenant_id)
    stmt = select(SyncAttempt)
    if tenant_id is not None:
        stmt = stmt.where(tenant_where(SyncAttempt, tenant_id))
    if since is not None:
        stmt = stmt.where(SyncAttempt.synced_at >= since)
    stmt = stmt.order_by(SyncAttempt.synced_at.desc(), SyncAttempt.id.desc()).limit(limit)

    def _query() -> list[SyncAttempt]:
        with get_db() as session:
            return list(session.scalars(stmt).all())

    return _retry_read("list_recent_sync_attempts", _query)


def count_sync_attempts_by_status(
    tenant_id: str | None = None,
    since: datetime | None = None,
) -> dict[str, int]:
    """Return sync_status -> count. Fleet-wide when tenant_id is None."""
    tenant_id = optional_tenant_id(tenant_id)
    stmt = select(SyncAttempt.sync_status, func.count(SyncAttempt.id)).group_by(SyncAttempt.sync_status)
    if tenant_id is not None:
        stmt = stmt.where(tenant_where(SyncAttempt, tenant_id))
    if since is not None:
        stmt = stmt.where(SyncAttempt.synced_at >= since)

    def _query() -> dict[str, int]:
        with get_db() as session:
            return {status: int(n) for status, n in session.execute(stmt).all()}

    return _retry_read("count_sync_attempts_by_status", _query)
