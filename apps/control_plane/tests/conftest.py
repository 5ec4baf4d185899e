"""Pytest fixtures for control plane tests."""

import copy

import pytest

from apps.control_plane.settings import settings

# Mirror: use shared marker from tests.conftest (single source of truth)
from tests.conftest import requires_postgres  # noqa: F401

VALID_MANIFEST = {
    "dataSources": [{"id": "ds-orders", "type": "postgres"}],
    "widgets": [
        {"id": "w-revenue", "type": "chart", "dataSourceId": "ds-orders"},
        {"id": "w-count", "type": "stat", "dataSourceId": "ds-orders"},
    ],
    "dashboards": [{"id": "main", "widgetIds": ["w-revenue", "w-count"]}],
}


@pytest.fixture
def manifest():
    """A fresh copy of a valid manifest; tests may mutate it."""
    return copy.deepcopy(VALID_MANIFEST)


@pytest.fixture
def no_read_backoff(monkeypatch):
    """Disable read retry sleeps so failure-path tests stay fast."""
    monkeypatch.setattr(settings, "READ_RETRY_BACKOFF_SECONDS", ())
