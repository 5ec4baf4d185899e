"""Publish coordinator: validation gate, monotonic numbering, optimistic retry under contention."""

from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from apps.control_plane.models.config_version import STATUS_PUBLISHED
from apps.control_plane.services import repo
from apps.control_plane.services.errors import (
    ConcurrentPublishError,
    ConflictError,
    PublishFailedError,
    ValidationError,
)
from apps.control_plane.services.publish import publish
from apps.control_plane.services.repo import TenantRequiredError, get_max_version, list_history
from apps.control_plane.settings import settings

from apps.control_plane.tests.conftest import requires_postgres

pytestmark = pytest.mark.usefixtures("clean_db")

TENANT = "tenant_publish"


def test_first_publish_is_version_one(manifest) -> None:
    row = publish(TENANT, manifest, "alice")
    assert row.version == 1
    assert row.status == STATUS_PUBLISHED
    assert row.published_at is not None
    assert row.created_by == "alice"


def test_versions_increase_by_one(manifest) -> None:
    versions = [publish(TENANT, manifest, "alice").version for _ in range(3)]
    assert versions == [1, 2, 3]


def test_numbering_is_per_tenant(manifest) -> None:
    publish(TENANT, manifest, "alice")
    publish(TENANT, manifest, "alice")
    assert publish("tenant_publish_b", manifest, "bob").version == 1


def test_invalid_payload_writes_nothing(manifest) -> None:
    """Rejected payloads never reach the store; all violations come back at once."""
    manifest["widgets"][0]["dataSourceId"] = "ds-missing"
    manifest["dashboards"][0]["widgetIds"].append("w-ghost")
    with pytest.raises(ValidationError) as exc_info:
        publish(TENANT, manifest, "alice")
    assert len(exc_info.value.violations) == 2
    assert get_max_version(TENANT) == 0


def test_blank_tenant_rejected(manifest) -> None:
    with pytest.raises(TenantRequiredError):
        publish("  ", manifest, "alice")


def test_conflict_retries_with_next_number(manifest) -> None:
    """Losing the race once re-reads max and claims the following number."""
    real_append = repo.append_draft
    calls = []

    def _lose_first(tenant_id, version, payload, author_id):
        calls.append(version)
        if len(calls) == 1:
            # Someone else takes this number first
            real_append(tenant_id, version, payload, "rival")
            raise ConflictError(tenant_id, version)
        return real_append(tenant_id, version, payload, author_id)

    with patch("apps.control_plane.services.publish.append_draft", side_effect=_lose_first):
        row = publish(TENANT, manifest, "alice")

    assert calls == [1, 2]
    assert row.version == 2
    assert [r.version for r in list_history(TENANT)] == [2, 1]


def test_retry_budget_exhausted(manifest, monkeypatch) -> None:
    monkeypatch.setattr(settings, "PUBLISH_MAX_ATTEMPTS", 3)
    with patch(
        "apps.control_plane.services.publish.append_draft",
        side_effect=ConflictError(TENANT, 1),
    ) as mock_append:
        with pytest.raises(ConcurrentPublishError) as exc_info:
            publish(TENANT, manifest, "alice")
    assert mock_append.call_count == 3
    assert exc_info.value.attempts == 3


def test_storage_failure_is_publish_failed(manifest) -> None:
    with patch(
        "apps.control_plane.services.publish.mark_published",
        side_effect=OperationalError("UPDATE tenant_config_version", {}, Exception("connection lost")),
    ):
        with pytest.raises(PublishFailedError):
            publish(TENANT, manifest, "alice")


def _publish_concurrently(manifest, n: int) -> list[int]:
    with ThreadPoolExecutor(max_workers=n) as pool:
        futures = [pool.submit(publish, TENANT, manifest, f"author-{i}") for i in range(n)]
        return sorted(f.result().version for f in futures)


def test_concurrent_publishes_get_distinct_consecutive_versions(manifest, monkeypatch) -> None:
    """N simultaneous publishes all succeed with versions 1..N, no gaps, no duplicates."""
    n = 6
    # Worst case a publish loses to every other one
    monkeypatch.setattr(settings, "PUBLISH_MAX_ATTEMPTS", n)
    assert _publish_concurrently(manifest, n) == list(range(1, n + 1))
    assert get_max_version(TENANT) == n


@requires_postgres
def test_concurrent_publishes_postgres(manifest, monkeypatch) -> None:
    n = 16
    monkeypatch.setattr(settings, "PUBLISH_MAX_ATTEMPTS", n)
    assert _publish_concurrently(manifest, n) == list(range(1, n + 1))
