"""Domain errors for config versioning and distribution.

Validation and state errors are deterministic and carry full detail for the caller.
PublishFailedError wraps storage failures on the non-idempotent write path; retrying
the whole publish is safe.
"""

from typing import Any


class ConfigSyncError(Exception):
    """Base class for all config-sync domain errors."""

    pass


class ValidationError(ConfigSyncError):
    """Payload malformed or internally inconsistent. Carries every violation found."""

    def __init__(self, violations: list[dict[str, Any]]):
        self.violations = list(violations)
        summary = "; ".join(f"{v.get('loc', '')}: {v.get('msg', '')}" for v in self.violations[:5])
        super().__init__(f"{len(self.violations)} violation(s): {summary}")


class ConflictError(ConfigSyncError):
    """(tenant_id, version) already claimed by a concurrent append."""

    def __init__(self, tenant_id: str, version: int):
        self.tenant_id = tenant_id
        self.version = version
        super().__init__(f"version {version} already exists for tenant {tenant_id}")


class ConcurrentPublishError(ConfigSyncError):
    """Version-number race lost on every attempt of the retry budget."""

    def __init__(self, tenant_id: str, attempts: int):
        self.tenant_id = tenant_id
        self.attempts = attempts
        super().__init__(f"could not claim a version for tenant {tenant_id} after {attempts} attempts")


class NotFoundError(ConfigSyncError):
    """Requested tenant version does not exist."""

    pass


class InvalidStateError(ConfigSyncError):
    """Requested transition is not allowed from the row's current state."""

    pass


class NoPublishedConfigError(ConfigSyncError):
    """Tenant has never published a version. Distinct from a storage outage."""

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__(f"NoPublishedConfig: tenant {tenant_id} has no published version")


class PublishFailedError(ConfigSyncError):
    """Storage failure while appending or publishing. Safe to retry from scratch."""

    pass


class ConfigUnavailableError(ConfigSyncError):
    """Storage failure while reading the published config. Transient; agents poll again."""

    def __init__(self, tenant_id: str, reason: str):
        self.tenant_id = tenant_id
        self.reason = reason
        super().__init__(f"ConfigUnavailable: tenant {tenant_id}: {reason}")
