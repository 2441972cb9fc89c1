"""Host shims: wrapper scripts that forward a command out of the sandbox."""

from __future__ import annotations

import shlex
from typing import TYPE_CHECKING

from bootkeep.domain.errors import AdapterUnavailableError
from bootkeep.domain.model import Item

from .baked import ImageBakedAdapter

if TYPE_CHECKING:
    from pathlib import Path

    from bootkeep.adapters.deployments import DeploymentInspector

SPAWN_PREFIX = ("flatpak-spawn", "--host")


def host_command(script: str) -> str | None:
    """Return the host command a shim script forwards to, if it is a shim."""

    for line in script.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        try:
            words = shlex.split(stripped)
        except ValueError:
            continue
        if words and words[0] == "exec":
            words = words[1:]
        if tuple(words[:2]) == SPAWN_PREFIX and len(words) > 2:  # noqa: PLR2004
            return words[2]
    return None


class HostShimsAdapter(ImageBakedAdapter):
    """Shim scripts shipped in the image; fingerprint is the host command."""

    kind = "host shim"

    def __init__(self, inspector: DeploymentInspector, *, shim_dir: str) -> None:
        super().__init__(inspector)
        self.shim_dir = shim_dir

    def read_tree(self, root: Path) -> list[Item]:
        directory = root / self.shim_dir
        if not directory.is_dir():
            return []
        items: list[Item] = []
        for path in sorted(directory.iterdir()):
            if not path.is_file():
                continue
            try:
                command = host_command(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError) as exc:
                raise AdapterUnavailableError(f"Cannot read shim {path}: {exc}") from exc
            if command is not None:
                items.append(Item(path.name, command))
        return items
