"""Fleet sync health, derived on demand from the version store and the sync audit log.

Nothing here is persisted; every call recomputes from the two tables so there is no third
copy of the truth to drift. Per agent, only its most recent attempt counts:

  unknown   most recent attempt is older than the freshness window
  erroring  most recent attempt has status failure
  current   applied_version == latest published version
  stale     applied_version < latest published version, or no applied version reported

An applied version above the latest published one cannot be reconciled and reads as unknown.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from apps.control_plane.models.sync_attempt import SYNC_FAILURE, SyncAttempt
from apps.control_plane.services.repo import get_latest_published
from apps.control_plane.services.sync_audit import last_attempt_per_agent
from apps.control_plane.services.tenant_guard import require_tenant_id
from apps.control_plane.utils.timestamps import as_utc
from apps.control_plane.settings import settings

STATE_CURRENT = "current"
STATE_STALE = "stale"
STATE_UNKNOWN = "unknown"
STATE_ERRORING = "erroring"
STATES = (STATE_CURRENT, STATE_STALE, STATE_ERRORING, STATE_UNKNOWN)


@dataclass(frozen=True)
class AgentHealth:
    agent_key: str
    agent_id: str | None
    agent_version: str
    state: str
    applied_version: int | None
    last_status: str
    last_synced_at: datetime
    error_message: str | None = None


@dataclass(frozen=True)
class TenantSyncHealth:
    tenant_id: str
    latest_version: int | None
    freshness_minutes: int
    checked_at: datetime
    agents: list[AgentHealth] = field(default_factory=list)

    @property
    def counts(self) -> dict[str, int]:
        out = {state: 0 for state in STATES}
        for agent in self.agents:
            out[agent.state] += 1
        return out

    @property
    def in_sync(self) -> bool:
        return bool(self.agents) and all(a.state == STATE_CURRENT for a in self.agents)


def classify_attempt(attempt: SyncAttempt, latest_version: int | None, cutoff: datetime) -> str:
    """Classify one agent by its most recent attempt. cutoff = now - freshness window."""
    if as_utc(attempt.synced_at) < as_utc(cutoff):
        return STATE_UNKNOWN
    if attempt.sync_status == SYNC_FAILURE:
        return STATE_ERRORING
    applied = attempt.applied_version
    if latest_version is None:
        # Nothing published yet, so nothing to be behind on.
        return STATE_CURRENT if applied is None else STATE_UNKNOWN
    if applied is None or applied < latest_version:
        return STATE_STALE
    if applied == latest_version:
        return STATE_CURRENT
    return STATE_UNKNOWN


def compute_sync_health(
    tenant_id: str | None,
    freshness_window: timedelta | None = None,
    now: datetime | None = None,
) -> TenantSyncHealth:
    """Classify every agent that ever reported for tenant against the latest published version."""
    tenant_id = require_tenant_id(tenant_id)
    if freshness_window is None:
        freshness_window = timedelta(minutes=settings.HEALTH_FRESHNESS_MINUTES)
    now = as_utc(now or datetime.now(timezone.utc))
    cutoff = now - freshness_window

    latest = get_latest_published(tenant_id)
    latest_version = latest.version if latest is not None else None
    agents = [
        AgentHealth(
            agent_key=key,
            agent_id=attempt.agent_id,
            agent_version=attempt.agent_version,
            state=classify_attempt(attempt, latest_version, cutoff),
            applied_version=attempt.applied_version,
            last_status=attempt.sync_status,
            last_synced_at=as_utc(attempt.synced_at),
            error_message=attempt.error_message,
        )
        for key, attempt in sorted(last_attempt_per_agent(tenant_id).items())
    ]
    return TenantSyncHealth(
        tenant_id=tenant_id,
        latest_version=latest_version,
        freshness_minutes=int(freshness_window.total_seconds() // 60),
        checked_at=now,
        agents=agents,
    )
