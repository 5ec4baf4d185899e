"""tenant_config_version model. Immutable, monotonically numbered config snapshots per tenant."""

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from apps.control_plane.models.base import Base, JSONDocument

STATUS_DRAFT = "draft"
STATUS_PUBLISHED = "published"


class TenantConfigVersion(Base):
    """One frozen manifest. Row is write-once except the single draft -> published flip."""

    __tablename__ = "tenant_config_version"
    __table_args__ = (
        UniqueConstraint("tenant_id", "version", name="uq_tenant_config_version_tenant_version"),
        CheckConstraint("version > 0", name="ck_tenant_config_version_positive"),
        CheckConstraint("status IN ('draft', 'published')", name="ck_tenant_config_version_status"),
        Index("ix_tenant_config_version_tenant_status", "tenant_id", "status", "version"),
    )

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(Text, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    payload: Mapped[dict] = mapped_column(JSONDocument, nullable=False)
    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default=STATUS_DRAFT)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    created_by: Mapped[str] = mapped_column(Text, nullable=False)
