"""GNOME Shell extensions, enabled and disabled at runtime."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bootkeep.adapters.commands import output_lines
from bootkeep.domain.model import Item

if TYPE_CHECKING:
    from collections.abc import Iterable

    from bootkeep.domain.model import ItemId
    from bootkeep.domain.ports import CommandRunner


class GnomeExtensionsAdapter:
    """Enabled extensions, identified by UUID."""

    def __init__(self, runner: CommandRunner) -> None:
        self.runner = runner

    def list(self) -> Iterable[Item]:
        result = self.runner.run("gnome-extensions", ("list", "--enabled"))
        return [Item(uuid) for uuid in output_lines(result)]

    def install(self, item: Item) -> None:
        self.runner.run("gnome-extensions", ("enable", item.id))

    def remove(self, item_id: ItemId) -> None:
        self.runner.run("gnome-extensions", ("disable", item_id))
