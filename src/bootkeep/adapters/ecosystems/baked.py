"""Shared plumbing for state baked into deployment trees as plain files."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from bootkeep.domain.errors import AdapterUnavailableError

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from bootkeep.adapters.deployments import DeploymentInspector
    from bootkeep.domain.model import Item, ItemId


class ImageBakedAdapter(ABC):
    """Read items from a file tree inside the booted or pending deployment.

    The trees are produced by the image build and are read-only on a running
    system, so ``install`` and ``remove`` refuse; changes are declared in the
    manifest and picked up by the next image build.
    """

    kind: str = "image-baked item"

    def __init__(self, inspector: DeploymentInspector) -> None:
        self.inspector = inspector

    @abstractmethod
    def read_tree(self, root: Path) -> list[Item]: ...

    def list(self) -> Iterable[Item]:
        return self.read_tree(self.inspector.booted_root())

    def read_staged(self) -> Iterable[Item] | None:
        root = self.inspector.pending_root()
        return None if root is None else self.read_tree(root)

    def install(self, item: Item) -> None:
        raise AdapterUnavailableError(
            f"Cannot install {self.kind} '{item.id}' on a running system; rebuild the image"
        )

    def remove(self, item_id: ItemId) -> None:
        raise AdapterUnavailableError(
            f"Cannot remove {self.kind} '{item_id}' on a running system; rebuild the image"
        )
