"""Pytest markers shared by tests/ and apps/control_plane/tests/."""

import os

import pytest

from tests._db_bootstrap import is_postgres_url


def _postgres_under_test() -> bool:
    """True when the session runs against Postgres (DATABASE_TEST_URL set and reachable)."""
    return is_postgres_url(os.environ.get("DATABASE_URL"))


# Row-level locking behaviour that SQLite cannot reproduce
requires_postgres = pytest.mark.skipif(
    not _postgres_under_test(),
    reason="DATABASE_TEST_URL not set or Postgres not reachable",
)
