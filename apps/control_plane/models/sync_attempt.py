"""sync_attempt model. Append-only audit row per agent pull."""

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from apps.control_plane.models.base import Base

SYNC_SUCCESS = "success"
SYNC_FAILURE = "failure"
SYNC_PARTIAL = "partial"
SYNC_STATUSES = (SYNC_SUCCESS, SYNC_FAILURE, SYNC_PARTIAL)


class SyncAttempt(Base):
    """Outcome of one agent sync cycle. tenant_id is NULL when the agent failed before identifying one."""

    __tablename__ = "sync_attempt"
    __table_args__ = (
        Index("ix_sync_attempt_tenant_synced", "tenant_id", "synced_at", postgresql_ops={"synced_at": "DESC"}),
        CheckConstraint(
            "sync_status IN ('success', 'failure', 'partial')",
            name="ck_sync_attempt_status",
        ),
    )

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    tenant_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    agent_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    agent_version: Mapped[str] = mapped_column(Text, nullable=False)
    sync_status: Mapped[str] = mapped_column(Text, nullable=False)
    applied_version: Mapped[int | None] = mapped_column(Integer, nullable=True)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Assigned by the recording call, never by the agent clock.
    synced_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    @property
    def agent_key(self) -> str:
        """Identity used for per-agent grouping: agent_id, else agent_version."""
        return self.agent_id or self.agent_version or "unknown"
