"""Publish and version history endpoints (authoring surface and operators)."""

from fastapi import APIRouter, HTTPException, Query

from apps.control_plane.schemas.versions import (
    PublishRequest,
    PublishResponse,
    VersionDetail,
    VersionHistoryResponse,
    VersionSummary,
)
from apps.control_plane.services.errors import ConcurrentPublishError, PublishFailedError, ValidationError
from apps.control_plane.services.publish import publish
from apps.control_plane.services.repo import get_by_version, list_history
from apps.control_plane.services.tenant_context import TenantPath
from apps.control_plane.settings import settings

router = APIRouter()


@router.post("/{tenant_id}/versions", response_model=PublishResponse, status_code=201)
def publish_version(tenant_id: TenantPath, body: PublishRequest) -> PublishResponse:
    """Validate, freeze and publish payload as the tenant's next version.

    - 422: payload invalid; detail.violations lists every problem, nothing written.
    - 409: lost the version-number race on every retry; retry the whole publish.
    - 503: storage failure; safe to retry.
    """
    try:
        row = publish(tenant_id, body.payload, body.author_id)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail={"error": "ValidationError", "violations": e.violations}) from e
    except ConcurrentPublishError as e:
        raise HTTPException(status_code=409, detail={"error": "ConcurrentPublishError", "message": str(e)}) from e
    except PublishFailedError as e:
        raise HTTPException(status_code=503, detail={"error": "PublishFailedError", "message": str(e)}) from e
    return PublishResponse.model_validate(row)


@router.get("/{tenant_id}/versions", response_model=VersionHistoryResponse)
def list_versions(
    tenant_id: TenantPath,
    limit: int | None = Query(None, ge=1, le=500),
    before: int | None = Query(None, ge=1, description="Only versions strictly below this number"),
) -> VersionHistoryResponse:
    """Version history, newest first. For audit and rollback review; agents never read this."""
    limit = min(limit or settings.HISTORY_DEFAULT_LIMIT, settings.HISTORY_MAX_LIMIT)
    rows = list_history(tenant_id, limit=limit, before=before)
    next_before = rows[-1].version if len(rows) == limit and rows[-1].version > 1 else None
    return VersionHistoryResponse(
        tenant_id=tenant_id,
        versions=[VersionSummary.model_validate(r) for r in rows],
        next_before=next_before,
    )


@router.get("/{tenant_id}/versions/{version}", response_model=VersionDetail)
def get_version(tenant_id: TenantPath, version: int) -> VersionDetail:
    """One version including its payload. 404 if absent."""
    row = get_by_version(tenant_id, version)
    if row is None:
        raise HTTPException(status_code=404, detail=f"Version {version} not found for tenant")
    return VersionDetail.model_validate(row)
