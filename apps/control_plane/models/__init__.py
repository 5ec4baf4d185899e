"""SQLAlchemy models. Tenant-scoped tables include tenant_id; queries MUST filter by tenant_id."""

from apps.control_plane.models.base import Base
from apps.control_plane.models.config_version import TenantConfigVersion
from apps.control_plane.models.sync_attempt import SyncAttempt

__all__ = [
    "Base",
    "SyncAttempt",
    "TenantConfigVersion",
]
