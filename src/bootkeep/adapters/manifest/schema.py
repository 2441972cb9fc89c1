"""Pydantic models for manifest documents."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

MANIFEST_SCHEMA = "bootkeep-manifest/v1"


class ManifestBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ManifestEntry(ManifestBaseModel):
    id: str = Field(min_length=1)
    version: str | None = None
    source: dict[str, str] = Field(default_factory=dict)


class ManifestDocument(ManifestBaseModel):
    schema_id: str = Field(default=MANIFEST_SCHEMA, alias="$schema")
    subsystem: str = Field(min_length=1)
    items: list[ManifestEntry] = Field(default_factory=list["ManifestEntry"])
