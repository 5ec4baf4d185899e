"""Shared test DB bootstrap (target selection, guard, schema creation). Used by root conftest.

Default target is a throwaway SQLite file so the suite runs anywhere. When DATABASE_TEST_URL
points at a reachable Postgres whose db name contains '_test', that is used instead.
Must run before apps.control_plane.db is imported: the engine reads DATABASE_URL at import.
"""

import logging
import os
import tempfile
from pathlib import Path
from urllib.parse import urlparse, urlunparse

_ROOT = Path(__file__).resolve().parent.parent

_LOG = logging.getLogger(__name__)

TEST_SCHEMA_STRATEGIES = ("alembic", "ensure_tables")


def parse_db_name(url: str) -> str:
    """Extract database name from postgres URL (path without leading slash)."""
    p = urlparse(url)
    path = (p.path or "").strip("/")
    return path.split("/")[0] if path else ""


def is_postgres_url(url: str | None) -> bool:
    return bool(url) and url.strip().lower().startswith("postgresql")


def postgres_reachable(url: str | None, timeout: int = 2) -> bool:
    """Return True if Postgres at url is reachable. Uses short timeout to avoid flaky CI."""
    if not is_postgres_url(url):
        return False
    from sqlalchemy import create_engine, text
    from sqlalchemy.exc import SQLAlchemyError

    eng = create_engine(url, connect_args={"connect_timeout": timeout})
    try:
        with eng.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
    finally:
        eng.dispose()


def _mask_password(url: str) -> str:
    """Mask password in a DB URL for logging."""
    p = urlparse(url)
    if not p.password:
        return url
    netloc = p.netloc.replace(f":{p.password}@", ":****@")
    return urlunparse((p.scheme, netloc, p.path or "", "", "", ""))


def assert_test_database(url: str) -> None:
    """Refuse to run against a Postgres db whose name does not mark it as a test db."""
    if not is_postgres_url(url):
        return
    if os.environ.get("ALLOW_TEST_DB_RESET", "").lower() in ("1", "true", "yes"):
        return
    db_name = parse_db_name(url)
    if "_test" not in db_name:
        raise RuntimeError(
            f"Tests must use a *_test database. DATABASE_TEST_URL db name must contain '_test' "
            f"or set ALLOW_TEST_DB_RESET=true. Got db: {db_name!r}"
        )


def get_test_schema_strategy() -> str:
    """Return TEST_SCHEMA_STRATEGY: 'alembic' or 'ensure_tables'."""
    v = (os.environ.get("TEST_SCHEMA_STRATEGY") or "ensure_tables").strip().lower()
    if v not in TEST_SCHEMA_STRATEGIES:
        raise RuntimeError(
            f"TEST_SCHEMA_STRATEGY must be 'alembic' or 'ensure_tables'. Got: {v!r}. "
            "Fix: export TEST_SCHEMA_STRATEGY=ensure_tables  # or alembic"
        )
    return v


def configure_test_database() -> str:
    """Point DATABASE_URL at the test target and return it. Idempotent within a process."""
    test_url = os.environ.get("DATABASE_TEST_URL")
    if test_url and postgres_reachable(test_url):
        assert_test_database(test_url)
        url = test_url
    else:
        existing = os.environ.get("DATABASE_URL", "")
        if existing.startswith("sqlite") and os.environ.get("PYTEST_SQLITE_DB"):
            return existing
        path = Path(tempfile.mkdtemp(prefix="config_sync_test_")) / "test.db"
        os.environ["PYTEST_SQLITE_DB"] = str(path)
        url = f"sqlite:///{path}"
    os.environ["DATABASE_URL"] = url
    os.environ.setdefault("TEST_SCHEMA_STRATEGY", "ensure_tables")
    _LOG.info("pytest using test DB: %s", _mask_password(url))
    return url


def _alembic_config_with_url(db_url: str):
    """Build Alembic config with sqlalchemy.url set to db_url."""
    from alembic.config import Config

    alembic_ini = _ROOT / "alembic.ini"
    if not alembic_ini.exists():
        raise FileNotFoundError(f"alembic.ini not found at {alembic_ini}")
    cfg = Config(str(alembic_ini))
    cfg.set_main_option("script_location", str(_ROOT / "alembic"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    return cfg


def run_alembic_upgrade(db_url: str) -> None:
    """Run alembic upgrade head. Idempotent. Forces sqlalchemy.url dynamically."""
    from alembic import command

    command.upgrade(_alembic_config_with_url(db_url), "head")
    _LOG.info("Ran alembic upgrade head")


def run_alembic_downgrade(db_url: str) -> None:
    from alembic import command

    command.downgrade(_alembic_config_with_url(db_url), "base")
    _LOG.info("Ran alembic downgrade base")


def apply_test_schema() -> None:
    """Create the schema once per session with the selected strategy. Never mixes the two paths."""
    from apps.control_plane.db import drop_tables, engine, ensure_tables

    url = os.environ["DATABASE_URL"]
    strategy = get_test_schema_strategy()
    if strategy == "alembic":
        run_alembic_upgrade(url)
    else:
        drop_tables(bind=engine)
        ensure_tables(bind=engine)
    engine.dispose()
    _LOG.info("Schema created via %s", strategy)


def empty_tables() -> None:
    """Delete every row from both tables. Schema stays in place."""
    from sqlalchemy import delete

    from apps.control_plane.db import engine
    from apps.control_plane.models import SyncAttempt, TenantConfigVersion

    with engine.begin() as conn:
        conn.execute(delete(SyncAttempt))
        conn.execute(delete(TenantConfigVersion))
