"""Manifest store keeping one JSON document per subsystem."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from bootkeep.domain.errors import ManifestCorruptError
from bootkeep.domain.model import Item, ItemSet

from .schema import ManifestDocument, ManifestEntry

if TYPE_CHECKING:
    from bootkeep.domain.model import SubsystemId

log = logging.getLogger(__name__)


def document_from_items(subsystem_id: SubsystemId, items: ItemSet) -> ManifestDocument:
    return ManifestDocument(
        subsystem=subsystem_id,
        items=[
            ManifestEntry(id=item.id, version=item.fingerprint, source=dict(item.source))
            for item in items.values()
        ],
    )


def items_from_document(subsystem_id: SubsystemId, document: ManifestDocument) -> ItemSet:
    if document.subsystem != subsystem_id:
        raise ManifestCorruptError(
            subsystem_id, f"document declares subsystem '{document.subsystem}'"
        )
    try:
        return ItemSet(
            Item(entry.id, entry.version, dict(entry.source)) for entry in document.items
        )
    except ValueError as exc:
        raise ManifestCorruptError(subsystem_id, str(exc)) from exc


def merge_layers(system: ItemSet, user: ItemSet) -> ItemSet:
    """Overlay ``user`` on ``system``: user entries replace system ones by id."""

    return ItemSet(
        (
            *(user.get(item_id, item) for item_id, item in system.items()),
            *(item for item_id, item in user.items() if item_id not in system),
        )
    )


def _inherited(item: Item, system: ItemSet) -> bool:
    declared = system.get(item.id)
    return declared == item and dict(declared.source) == dict(item.source)


class JsonManifestStore:
    """Load and atomically rewrite ``<directory>/<subsystem>.json`` documents.

    A missing document declares nothing. Writes go to a temporary file in the
    same directory that is then renamed over the target, so readers see either
    the old or the new declaration, never a partial one.

    An optional read-only ``system_directory`` holds the manifests shipped with
    the image. ``load`` layers the user document over the system one, and
    ``save`` writes only the entries the system layer does not already declare
    identically, so the user document stays a list of local changes.
    """

    def __init__(self, directory: Path, *, system_directory: Path | None = None) -> None:
        self.directory = directory
        self.system_directory = system_directory

    def path_for(self, subsystem_id: SubsystemId) -> Path:
        return self.directory / f"{subsystem_id}.json"

    def system_path_for(self, subsystem_id: SubsystemId) -> Path | None:
        if self.system_directory is None:
            return None
        return self.system_directory / f"{subsystem_id}.json"

    def load(self, subsystem_id: SubsystemId) -> ItemSet:
        user = self._read(subsystem_id, self.path_for(subsystem_id))
        system = self.load_system(subsystem_id)
        if not system:
            return user
        return merge_layers(system, user)

    def load_system(self, subsystem_id: SubsystemId) -> ItemSet:
        path = self.system_path_for(subsystem_id)
        if path is None:
            return ItemSet()
        return self._read(subsystem_id, path)

    def save(self, subsystem_id: SubsystemId, items: ItemSet) -> None:
        system = self.load_system(subsystem_id)
        if system:
            kept = [item_id for item_id in system if item_id not in items]
            if kept:
                log.warning(
                    "%s: %s stay declared by the system manifest",
                    subsystem_id,
                    ", ".join(kept),
                )
            items = ItemSet(item for item in items.values() if not _inherited(item, system))
        self._write(subsystem_id, items)

    def _read(self, subsystem_id: SubsystemId, path: Path) -> ItemSet:
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            log.debug("No manifest for %s at %s", subsystem_id, path)
            return ItemSet()
        try:
            document = ManifestDocument.model_validate_json(raw)
        except ValidationError as exc:
            raise ManifestCorruptError(subsystem_id, _summarise(exc)) from exc
        return items_from_document(subsystem_id, document)

    def _write(self, subsystem_id: SubsystemId, items: ItemSet) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        payload = document_from_items(subsystem_id, items).model_dump_json(
            by_alias=True, indent=2
        )
        target = self.path_for(subsystem_id)
        handle = tempfile.NamedTemporaryFile(  # noqa: SIM115
            mode="w",
            encoding="utf-8",
            dir=self.directory,
            prefix=f".{subsystem_id}.",
            suffix=".tmp",
            delete=False,
        )
        try:
            with handle:
                handle.write(payload + "\n")
                handle.flush()
                os.fsync(handle.fileno())
            Path(handle.name).replace(target)
        except BaseException:
            Path(handle.name).unlink(missing_ok=True)
            raise
        log.debug("Wrote %d item(s) to %s", len(items), target)


def _summarise(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "document"
    return f"{location}: {first['msg']}"
