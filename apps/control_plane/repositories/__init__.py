"""Repository layer: tenant-scoped queries and helpers."""

from apps.control_plane.repositories.tenant_filters import (
    select_config_version_for_tenant,
    select_published_version_for_tenant,
    select_sync_attempt_for_tenant,
    tenant_where,
)

__all__ = [
    "tenant_where",
    "select_config_version_for_tenant",
    "select_published_version_for_tenant",
    "select_sync_attempt_for_tenant",
]
