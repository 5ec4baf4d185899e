"""Base schema: tenant_config_version (versioned manifests) and sync_attempt (agent sync audit log)."""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "000_config_sync"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_ID = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
_JSON = sa.JSON().with_variant(JSONB(), "postgresql")


def upgrade() -> None:
    # 1) tenant_config_version: one row per (tenant, version), write-once payload
    op.create_table(
        "tenant_config_version",
        sa.Column("id", _ID, primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.Text(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("payload", _JSON, nullable=False),
        sa.Column("payload_hash", sa.String(64), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'draft'")),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("created_by", sa.Text(), nullable=False),
        sa.UniqueConstraint("tenant_id", "version", name="uq_tenant_config_version_tenant_version"),
        sa.CheckConstraint("version > 0", name="ck_tenant_config_version_positive"),
        sa.CheckConstraint("status IN ('draft', 'published')", name="ck_tenant_config_version_status"),
    )
    op.create_index(
        "ix_tenant_config_version_tenant_status",
        "tenant_config_version",
        ["tenant_id", "status", "version"],
        unique=False,
    )

    # 2) sync_attempt: append-only; tenant_id NULL when the agent never identified one
    op.create_table(
        "sync_attempt",
        sa.Column("id", _ID, primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.Text(), nullable=True),
        sa.Column("agent_id", sa.Text(), nullable=True),
        sa.Column("agent_version", sa.Text(), nullable=False),
        sa.Column("sync_status", sa.Text(), nullable=False),
        sa.Column("applied_version", sa.Integer(), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("synced_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("sync_status IN ('success', 'failure', 'partial')", name="ck_sync_attempt_status"),
    )
    op.create_index(
        "ix_sync_attempt_tenant_synced",
        "sync_attempt",
        ["tenant_id", "synced_at"],
        unique=False,
        postgresql_ops={"synced_at": "DESC"},
    )


def downgrade() -> None:
    op.drop_index("ix_sync_attempt_tenant_synced", table_name="sync_attempt")
    op.drop_table("sync_attempt")
    op.drop_index("ix_tenant_config_version_tenant_status", table_name="tenant_config_version")
    op.drop_table("tenant_config_version")
