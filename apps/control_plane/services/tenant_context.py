"""Tenant resolution for routes.

Authentication is out of scope: operators address a tenant by path, agents by ?tenant=.
Both go through require_tenant_id; a blank tenant is a 400, never a DB query.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Query

from apps.control_plane.services.tenant_guard import TenantRequiredError, require_tenant_id


def _checked(tenant_id: str | None) -> str:
    try:
        return require_tenant_id(tenant_id)
    except TenantRequiredError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


def get_path_tenant_id(tenant_id: str) -> str:
    """FastAPI dependency: tenant from the {tenant_id} path segment."""
    return _checked(tenant_id)


def get_query_tenant_id(tenant: str = Query(..., description="Tenant id")) -> str:
    """FastAPI dependency: tenant from ?tenant=."""
    return _checked(tenant)


# Type aliases for Depends()
TenantPath = Annotated[str, Depends(get_path_tenant_id)]
TenantQuery = Annotated[str, Depends(get_query_tenant_id)]
