"""Publish coordinator: the only writer of tenant_config_version rows.

publish() validates the payload, then claims max+1 with an optimistic append. A unique
violation means another publish won the race: re-read the max and try again, up to
PUBLISH_MAX_ATTEMPTS attempts. The claimed draft is flipped to published right away;
drafts are never served and never edited.
"""

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from apps.control_plane.models.config_version import TenantConfigVersion
from apps.control_plane.services.errors import ConcurrentPublishError, ConflictError, PublishFailedError
from apps.control_plane.services.manifest_validation import validate_manifest
from apps.control_plane.services.repo import append_draft, get_max_version, mark_published
from apps.control_plane.services.tenant_guard import require_tenant_id
from apps.control_plane.settings import settings

logger = logging.getLogger(__name__)


def _claim_next_version(tenant_id: str, payload: dict[str, Any], author_id: str) -> TenantConfigVersion:
    attempts = max(1, settings.PUBLISH_MAX_ATTEMPTS)
    for attempt in range(1, attempts + 1):
        next_version = get_max_version(tenant_id) + 1
        try:
            return append_draft(tenant_id, next_version, payload, author_id)
        except ConflictError:
            logger.warning(
                "publish conflict tenant=%s version=%s attempt=%s/%s", tenant_id, next_version, attempt, attempts
            )
    raise ConcurrentPublishError(tenant_id, attempts)


def publish(tenant_id: str | None, payload: Any, author_id: str) -> TenantConfigVersion:
    """Freeze payload as the tenant's next version and publish it. Returns the published row.

    Raises ValidationError (nothing written), ConcurrentPublishError (race budget exhausted),
    PublishFailedError (storage failure; safe to retry, a retry takes a new number).
    """
    tenant_id = require_tenant_id(tenant_id)
    validate_manifest(payload)
    try:
        draft = _claim_next_version(tenant_id, payload, author_id)
        row = mark_published(tenant_id, draft.version)
    except SQLAlchemyError as e:
        logger.exception("publish failed tenant=%s author=%s", tenant_id, author_id)
        raise PublishFailedError(f"storage failure while publishing for tenant {tenant_id}") from e
    logger.info("publish ok tenant=%s version=%s author=%s", tenant_id, row.version, author_id)
    return row
