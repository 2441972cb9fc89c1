"""Pinned upstream binaries recorded in a lock file inside the image."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from bootkeep.domain.errors import AdapterUnavailableError
from bootkeep.domain.model import Item

from .baked import ImageBakedAdapter

if TYPE_CHECKING:
    from pathlib import Path

    from bootkeep.adapters.deployments import DeploymentInspector


class UpstreamBinary(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    version: str
    url: str | None = None
    sha256: str | None = None


class UpstreamLock(BaseModel):
    model_config = ConfigDict(extra="ignore")

    binaries: list[UpstreamBinary] = Field(default_factory=list["UpstreamBinary"])


class UpstreamBinariesAdapter(ImageBakedAdapter):
    """Binaries fetched at image build time, fingerprinted by pinned version."""

    kind = "upstream binary"

    def __init__(self, inspector: DeploymentInspector, *, lock_path: str) -> None:
        super().__init__(inspector)
        self.lock_path = lock_path

    def read_tree(self, root: Path) -> list[Item]:
        path = root / self.lock_path
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise AdapterUnavailableError(f"Cannot read {path}: {exc}") from exc
        try:
            lock = UpstreamLock.model_validate_json(raw)
        except ValidationError as exc:
            raise AdapterUnavailableError(f"Malformed upstream lock {path}") from exc
        return [Item(binary.name, binary.version, _source(binary)) for binary in lock.binaries]


def _source(binary: UpstreamBinary) -> dict[str, str]:
    source: dict[str, str] = {}
    if binary.url:
        source["url"] = binary.url
    if binary.sha256:
        source["sha256"] = binary.sha256
    return source
