"""JSON manifest store adapter."""

from __future__ import annotations

from .schema import MANIFEST_SCHEMA, ManifestDocument, ManifestEntry
from .store import JsonManifestStore

__all__ = ["MANIFEST_SCHEMA", "JsonManifestStore", "ManifestDocument", "ManifestEntry"]
