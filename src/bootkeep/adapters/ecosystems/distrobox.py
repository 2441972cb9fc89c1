"""Toolbox containers managed by distrobox."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bootkeep.adapters.commands import output_lines
from bootkeep.domain.errors import AdapterUnavailableError
from bootkeep.domain.model import Item

if TYPE_CHECKING:
    from collections.abc import Iterable

    from bootkeep.domain.model import ItemId
    from bootkeep.domain.ports import CommandRunner

log = logging.getLogger(__name__)


def parse_distrobox_list(stdout_lines: Iterable[str]) -> list[Item]:
    """Parse the ``ID | NAME | STATUS | IMAGE`` table of ``distrobox list``."""

    items: list[Item] = []
    for line in stdout_lines:
        columns = [column.strip() for column in line.split("|")]
        if len(columns) < 4 or columns[1] == "NAME":  # noqa: PLR2004
            continue
        name, image = columns[1], columns[3]
        items.append(Item(name, image or None, {"image": image} if image else {}))
    return items


class DistroboxAdapter:
    """Containers identified by name and fingerprinted by image reference."""

    def __init__(self, runner: CommandRunner) -> None:
        self.runner = runner

    def list(self) -> Iterable[Item]:
        result = self.runner.run("distrobox", ("list", "--no-color"))
        return parse_distrobox_list(output_lines(result))

    def install(self, item: Item) -> None:
        image = item.fingerprint or item.source.get("image")
        if not image:
            raise AdapterUnavailableError(f"Container '{item.id}' has no declared image")
        existing = {current.id: current for current in self.list()}
        if item.id in existing and existing[item.id].fingerprint == image:
            log.debug("Container %s already runs %s", item.id, image)
            return
        self.runner.run(
            "distrobox", ("create", "--yes", "--name", item.id, "--image", image)
        )

    def remove(self, item_id: ItemId) -> None:
        if item_id not in {current.id for current in self.list()}:
            log.debug("Container %s does not exist; nothing to remove", item_id)
            return
        self.runner.run("distrobox", ("rm", "--force", item_id))
