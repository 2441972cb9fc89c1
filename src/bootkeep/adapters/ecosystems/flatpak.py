"""Flatpak applications of one installation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal

from bootkeep.adapters.commands import output_lines
from bootkeep.domain.model import Item

if TYPE_CHECKING:
    from collections.abc import Iterable

    from bootkeep.domain.model import ItemId
    from bootkeep.domain.ports import CommandRunner

log = logging.getLogger(__name__)

DEFAULT_REMOTE = "flathub"
DEFAULT_BRANCH = "stable"
LIST_COLUMNS = "application,origin,branch,installation"

type Installation = Literal["system", "user"]


def parse_flatpak_list(stdout_lines: Iterable[str]) -> list[Item]:
    """Parse ``flatpak list --columns=application,origin,branch,installation``.

    The fingerprint is ``<remote>/<branch>`` so that moving an app to another
    remote or branch is a modification.
    """

    items: list[Item] = []
    for line in stdout_lines:
        columns = [column.strip() for column in line.split("\t")]
        if len(columns) < 3 or columns[0] in {"Application ID", "Application"}:  # noqa: PLR2004
            continue
        application, origin, branch = columns[0], columns[1], columns[2]
        installation = columns[3] if len(columns) > 3 else ""  # noqa: PLR2004
        source = {"remote": origin, "branch": branch}
        if installation:
            source["installation"] = installation
        items.append(Item(application, f"{origin}/{branch}", source))
    return items


def split_fingerprint(item: Item) -> tuple[str, str]:
    remote = item.source.get("remote")
    branch = item.source.get("branch")
    if item.fingerprint and "/" in item.fingerprint:
        declared_remote, declared_branch = item.fingerprint.split("/", 1)
        remote = remote or declared_remote
        branch = branch or declared_branch
    return remote or DEFAULT_REMOTE, branch or DEFAULT_BRANCH


class FlatpakAdapter:
    """Applications of the ``system`` or ``user`` installation."""

    def __init__(self, runner: CommandRunner, *, installation: Installation = "system") -> None:
        self.runner = runner
        self.installation = installation

    @property
    def _scope(self) -> str:
        return f"--{self.installation}"

    def list(self) -> Iterable[Item]:
        result = self.runner.run(
            "flatpak", ("list", "--app", self._scope, f"--columns={LIST_COLUMNS}")
        )
        return parse_flatpak_list(output_lines(result))

    def install(self, item: Item) -> None:
        remote, branch = split_fingerprint(item)
        self.runner.run(
            "flatpak",
            (
                "install",
                self._scope,
                "--noninteractive",
                "-y",
                "--or-update",
                remote,
                f"{item.id}//{branch}",
            ),
        )

    def remove(self, item_id: ItemId) -> None:
        installed = {item.id for item in self.list()}
        if item_id not in installed:
            log.debug("%s is not installed; nothing to uninstall", item_id)
            return
        self.runner.run("flatpak", ("uninstall", self._scope, "--noninteractive", "-y", item_id))
