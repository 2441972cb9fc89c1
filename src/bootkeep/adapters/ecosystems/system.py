"""Base-image packages layered through rpm-ostree."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bootkeep.domain.model import Item

if TYPE_CHECKING:
    from collections.abc import Iterable

    from bootkeep.adapters.deployments import Deployment, DeploymentInspector
    from bootkeep.domain.model import ItemId
    from bootkeep.domain.ports import CommandRunner

log = logging.getLogger(__name__)


def _requested(deployment: Deployment) -> list[Item]:
    return [Item(name, source={"origin": "rpm-ostree"}) for name in deployment.requested_packages]


class RpmOstreePackagesAdapter:
    """Packages explicitly requested on top of the base image.

    Changes land in a new pending deployment and take effect after a reboot.
    """

    def __init__(self, runner: CommandRunner, inspector: DeploymentInspector) -> None:
        self.runner = runner
        self.inspector = inspector

    def list(self) -> Iterable[Item]:
        return _requested(self.inspector.booted())

    def read_staged(self) -> Iterable[Item] | None:
        pending = self.inspector.status().pending
        return None if pending is None else _requested(pending)

    def install(self, item: Item) -> None:
        self.runner.run("rpm-ostree", ("install", "--idempotent", "--allow-inactive", item.id))

    def remove(self, item_id: ItemId) -> None:
        status = self.inspector.status()
        target = status.pending or status.booted
        if target is not None and item_id not in target.requested_packages:
            log.debug("%s is not requested; nothing to uninstall", item_id)
            return
        self.runner.run("rpm-ostree", ("uninstall", item_id))
