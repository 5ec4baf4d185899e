"""Tenant-scoped SQL helpers. All tenant-scoped queries MUST use these.

Provides:
  - tenant_where(model, tenant_id): binary expression for WHERE model.tenant_id == tenant_id
  - select_*_for_tenant(tenant_id): SQLAlchemy Select with tenant filter applied
"""

from sqlalchemy import BinaryExpression, Select, select

from apps.control_plane.models.config_version import STATUS_PUBLISHED, TenantConfigVersion
from apps.control_plane.models.sync_attempt import SyncAttempt


def tenant_where(model: type, tenant_id: str) -> BinaryExpression[bool]:
    """Return WHERE clause: model.tenant_id == tenant_id. Use for filters and joins."""
    col = getattr(model, "tenant_id", None)
    if col is None:
        raise ValueError(f"Model {model.__name__} has no tenant_id column")
    return col == tenant_id


def select_config_version_for_tenant(tenant_id: str) -> Select[tuple[TenantConfigVersion]]:
    """Select from tenant_config_version with tenant filter. Add .where() for further filters."""
    return select(TenantConfigVersion).where(tenant_where(TenantConfigVersion, tenant_id))


def select_published_version_for_tenant(tenant_id: str) -> Select[tuple[TenantConfigVersion]]:
    """Published rows only, newest version first."""
    return (
        select_config_version_for_tenant(tenant_id)
        .where(TenantConfigVersion.status == STATUS_PUBLISHED)
        .order_by(TenantConfigVersion.version.desc())
    )


def select_sync_attempt_for_tenant(tenant_id: str) -> Select[tuple[SyncAttempt]]:
    """Select from sync_attempt with tenant filter. Add .where() for further filters."""
    return select(SyncAttempt).where(tenant_where(SyncAttempt, tenant_id))
