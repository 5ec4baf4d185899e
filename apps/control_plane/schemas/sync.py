"""Agent-facing and operator-facing sync schemas."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from apps.control_plane.utils.timestamps import UtcDatetime


# ---------------------------------------------------------------------------
# Agent pull protocol
# ---------------------------------------------------------------------------


class CurrentConfigResponse(BaseModel):
    """Response for GET /current-config."""

    model_config = ConfigDict(from_attributes=True, extra="forbid")

    version: int
    payload: dict[str, Any]
    payload_hash: str
    published_at: UtcDatetime | None


class SyncResultRequest(BaseModel):
    """Request body for POST /sync-result. tenant is optional: agents can fail before identifying one."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    tenant: str | None = None
    agent_id: str | None = Field(None, alias="agentId", description="Stable agent identity, if the agent has one")
    agent_version: str = Field(..., alias="agentVersion")
    status: Literal["success", "failure", "partial"]
    applied_version: int | None = Field(None, alias="appliedVersion", ge=1)
    duration_ms: int = Field(..., alias="durationMs", ge=0)
    error_message: str | None = Field(None, alias="errorMessage")


class SyncResultAccepted(BaseModel):
    model_config = ConfigDict(extra="forbid")

    accepted: bool = True


class AgentSyncRequest(BaseModel):
    """Request body for POST /agent/sync (handshake)."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    tenant: str
    agent_id: str | None = Field(None, alias="agentId")
    agent_version: str | None = Field(None, alias="agentVersion")
    current_version: int | None = Field(None, alias="currentVersion", ge=0)


class AgentSyncResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    has_updates: bool
    latest_version: int
    config: CurrentConfigResponse | None = None


# ---------------------------------------------------------------------------
# Operator views
# ---------------------------------------------------------------------------


class AgentHealthOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="forbid")

    agent_key: str
    agent_id: str | None
    agent_version: str
    state: Literal["current", "stale", "erroring", "unknown"]
    applied_version: int | None
    last_status: str
    last_synced_at: UtcDatetime
    error_message: str | None


class SyncHealthResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="forbid")

    tenant_id: str
    latest_version: int | None
    freshness_minutes: int
    checked_at: UtcDatetime
    in_sync: bool
    counts: dict[str, int]
    agents: list[AgentHealthOut]


class SyncAttemptOut(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int
    tenant_id: str | None
    agent_id: str | None
    agent_version: str
    status: str
    applied_version: int | None
    duration_ms: int
    error_message: str | None
    synced_at: UtcDatetime


class SyncStatusResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tenant_id: str | None
    window_hours: int
    recent: list[SyncAttemptOut]
    stats: dict[str, int]
