"""Agent pull endpoints. Agents poll; nothing here pushes."""

from fastapi import APIRouter, HTTPException, Query

from apps.control_plane.schemas.sync import AgentSyncRequest, AgentSyncResponse, CurrentConfigResponse
from apps.control_plane.services.distribution import agent_sync, fetch_current
from apps.control_plane.services.errors import ConfigUnavailableError, NoPublishedConfigError
from apps.control_plane.services.tenant_context import TenantQuery, get_query_tenant_id

router = APIRouter()


@router.get("/current-config", response_model=CurrentConfigResponse)
def get_current_config(
    tenant: TenantQuery,
    agent_version: str | None = Query(None, alias="agentVersion"),
) -> CurrentConfigResponse:
    """Latest published (version, payload) for the tenant. Pure read; repeat calls return
    the same body until the next publish. 404 NoPublishedConfig if nothing was published,
    503 ConfigUnavailable when the store cannot be read."""
    try:
        current = fetch_current(tenant, agent_version)
    except NoPublishedConfigError as e:
        raise HTTPException(status_code=404, detail={"error": "NoPublishedConfig", "message": str(e)}) from e
    except ConfigUnavailableError as e:
        raise HTTPException(
            status_code=503, detail={"error": "ConfigUnavailable", "message": "config store unavailable"}
        ) from e
    return CurrentConfigResponse.model_validate(current)


@router.post("/agent/sync", response_model=AgentSyncResponse)
def post_agent_sync(body: AgentSyncRequest) -> AgentSyncResponse:
    """Handshake: report the running version, receive the config only if behind.
    Every handshake is written to the sync audit log."""
    tenant_id = get_query_tenant_id(body.tenant)
    try:
        handshake = agent_sync(
            tenant_id,
            body.agent_version,
            current_version=body.current_version,
            agent_id=body.agent_id,
        )
    except NoPublishedConfigError as e:
        raise HTTPException(status_code=404, detail={"error": "NoPublishedConfig", "message": str(e)}) from e
    except ConfigUnavailableError as e:
        raise HTTPException(
            status_code=503, detail={"error": "ConfigUnavailable", "message": "config store unavailable"}
        ) from e
    return AgentSyncResponse(
        has_updates=handshake.has_updates,
        latest_version=handshake.latest_version,
        config=CurrentConfigResponse.model_validate(handshake.config) if handshake.config else None,
    )
