"""Sync reporting (agents) and fleet sync views (operators)."""

from datetime import timedelta

from fastapi import APIRouter, HTTPException, Query

from apps.control_plane.schemas.sync import (
    SyncHealthResponse,
    SyncResultAccepted,
    SyncResultRequest,
    SyncStatusResponse,
)
from apps.control_plane.services.sync_audit import RecordResult, SyncOutcome, record_attempt, sync_status_summary
from apps.control_plane.services.sync_health import compute_sync_health
from apps.control_plane.services.tenant_context import TenantPath
from apps.control_plane.services.tenant_guard import optional_tenant_id

router = APIRouter()


@router.post("/sync-result", response_model=SyncResultAccepted, status_code=202)
def post_sync_result(body: SyncResultRequest) -> SyncResultAccepted:
    """Agent reports the outcome of one sync cycle.

    202 even if the audit row was dropped: the agent's sync already happened and a lost
    log line must not make it retry. 503 only when the store is unreachable.
    """
    result = record_attempt(
        body.tenant,
        body.agent_version,
        SyncOutcome(
            status=body.status,
            duration_ms=body.duration_ms,
            applied_version=body.applied_version,
            error_message=body.error_message,
        ),
        agent_id=body.agent_id,
    )
    if result is RecordResult.UNAVAILABLE:
        raise HTTPException(status_code=503, detail="Sync audit store unavailable")
    return SyncResultAccepted()


@router.get("/tenants/{tenant_id}/sync-health", response_model=SyncHealthResponse)
def get_sync_health(
    tenant_id: TenantPath,
    freshness_minutes: int | None = Query(None, ge=1, le=7 * 24 * 60),
) -> SyncHealthResponse:
    """Per-agent state (current / stale / erroring / unknown) against the latest published version."""
    window = timedelta(minutes=freshness_minutes) if freshness_minutes else None
    return SyncHealthResponse.model_validate(compute_sync_health(tenant_id, freshness_window=window))


@router.get("/sync/status", response_model=SyncStatusResponse)
def get_sync_status(
    tenant: str | None = Query(None, description="Restrict to one tenant; omit for the whole fleet"),
    window_hours: int | None = Query(None, ge=1, le=24 * 30),
    limit: int | None = Query(None, ge=1, le=500),
) -> SyncStatusResponse:
    """Most recent sync attempts and per-status counts over the window."""
    summary = sync_status_summary(optional_tenant_id(tenant), window_hours=window_hours, limit=limit)
    return SyncStatusResponse(**summary)
