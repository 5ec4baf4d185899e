"""Pydantic schemas for publish and version history."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from apps.control_plane.utils.timestamps import UtcDatetime


class PublishRequest(BaseModel):
    """Request body for POST /tenants/{tenant_id}/versions."""

    model_config = ConfigDict(extra="forbid")

    payload: Any = Field(..., description="Manifest document to freeze; validated before any write")
    author_id: str = Field(..., min_length=1, description="Who publishes this version")


class PublishResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="forbid")

    tenant_id: str
    version: int
    status: str
    payload_hash: str
    published_at: UtcDatetime | None


class VersionSummary(BaseModel):
    """History row without payload."""

    model_config = ConfigDict(from_attributes=True, extra="forbid")

    version: int
    status: str
    payload_hash: str
    created_at: UtcDatetime
    created_by: str
    published_at: UtcDatetime | None


class VersionDetail(VersionSummary):
    payload: dict[str, Any]


class VersionHistoryResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tenant_id: str
    versions: list[VersionSummary]
    next_before: int | None = Field(None, description="Pass as ?before= to fetch the next page")
