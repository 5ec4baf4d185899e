"""Root conftest: test DB target and env apply to ALL test paths (tests/, apps/control_plane/tests/)."""

import os

import pytest

os.environ.setdefault("ENV", "test")
os.environ.setdefault("PYTEST_RUNNING", "1")

from tests._db_bootstrap import apply_test_schema, configure_test_database, empty_tables

# Before anything imports apps.control_plane.db (engine is built from DATABASE_URL at import)
configure_test_database()


@pytest.fixture(scope="session", autouse=True)
def test_db_schema():
    """Create the schema once per session via TEST_SCHEMA_STRATEGY (ensure_tables by default)."""
    apply_test_schema()


@pytest.fixture
def clean_db():
    """Empty both tables before the test. Tenant ids in tests are fixed, so leftovers would collide."""
    empty_tables()
    yield
