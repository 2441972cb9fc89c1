"""User-level formulae installed with Homebrew."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bootkeep.adapters.commands import output_lines
from bootkeep.domain.model import Item

if TYPE_CHECKING:
    from collections.abc import Iterable

    from bootkeep.domain.model import ItemId
    from bootkeep.domain.ports import CommandRunner

log = logging.getLogger(__name__)


class HomebrewAdapter:
    """Formulae installed on request (``brew leaves -r``), not their dependencies."""

    def __init__(self, runner: CommandRunner) -> None:
        self.runner = runner

    def list(self) -> Iterable[Item]:
        result = self.runner.run("brew", ("leaves", "-r"))
        return [Item(name) for name in output_lines(result)]

    def install(self, item: Item) -> None:
        self.runner.run("brew", ("install", item.id))

    def remove(self, item_id: ItemId) -> None:
        if item_id not in {item.id for item in self.list()}:
            log.debug("%s is not a requested formula; nothing to uninstall", item_id)
            return
        self.runner.run("brew", ("uninstall", item_id))
