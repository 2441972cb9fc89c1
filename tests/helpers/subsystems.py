"""Reusable fakes and helpers for subsystem and adapter tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bootkeep.domain.model import Item, ItemSet, SubsystemTier
from bootkeep.domain.ports import CommandResult
from bootkeep.domain.reconciliation import Subsystem

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from bootkeep.domain.errors import BootkeepError
    from bootkeep.domain.model import ItemId
    from bootkeep.domain.ports import CommandOptions


def items_of(fingerprints: Mapping[str, str | None]) -> ItemSet:
    """Build an item set from ``{id: fingerprint}`` in insertion order."""

    return ItemSet(Item(item_id, fingerprint) for item_id, fingerprint in fingerprints.items())


class FakeAdapter:
    """In-memory ecosystem that records every mutation."""

    def __init__(self, items: Iterable[Item] = ()) -> None:
        self.items: dict[ItemId, Item] = {item.id: item for item in items}
        self.calls: list[tuple[str, ItemId]] = []
        self.list_calls = 0
        self.list_error: BootkeepError | None = None
        self.failing: dict[ItemId, BootkeepError] = {}
        self.failing_once: dict[ItemId, BootkeepError] = {}

    def list(self) -> list[Item]:
        self.list_calls += 1
        if self.list_error is not None:
            raise self.list_error
        return list(self.items.values())

    def install(self, item: Item) -> None:
        self.calls.append(("install", item.id))
        if item.id in self.failing_once:
            raise self.failing_once.pop(item.id)
        if item.id in self.failing:
            raise self.failing[item.id]
        self.items[item.id] = item

    def remove(self, item_id: ItemId) -> None:
        self.calls.append(("remove", item_id))
        if item_id in self.failing:
            raise self.failing[item_id]
        self.items.pop(item_id, None)


class FakeImageAdapter(FakeAdapter):
    """Image-based ecosystem with an optional pending layer."""

    def __init__(self, items: Iterable[Item] = (), *, staged: Iterable[Item] | None = None) -> None:
        super().__init__(items)
        self.staged: list[Item] | None = None if staged is None else list(staged)

    def read_staged(self) -> list[Item] | None:
        return self.staged


def convergent(
    subsystem_id: str, adapter: FakeAdapter | None = None, *, name: str | None = None
) -> Subsystem:
    return Subsystem(
        id=subsystem_id,
        name=name or subsystem_id.title(),
        tier=SubsystemTier.CONVERGENT,
        adapter=adapter or FakeAdapter(),
    )


def atomic(
    subsystem_id: str, adapter: FakeImageAdapter | None = None, *, name: str | None = None
) -> Subsystem:
    effective = adapter or FakeImageAdapter()
    return Subsystem(
        id=subsystem_id,
        name=name or subsystem_id.title(),
        tier=SubsystemTier.ATOMIC,
        adapter=effective,
        staged_reader=effective,
    )


class FakeCommandRunner:
    """Answer commands from canned stdout keyed by the full argv."""

    def __init__(self, outputs: Mapping[tuple[str, ...], str] | None = None) -> None:
        self.outputs = dict(outputs or {})
        self.calls: list[tuple[str, ...]] = []

    def run(
        self,
        program: str,
        args: Sequence[str],
        options: CommandOptions | None = None,
    ) -> CommandResult:
        _ = options
        argv = (program, *args)
        self.calls.append(argv)
        return CommandResult(args=argv, returncode=0, stdout=self.outputs.get(argv, ""))

    def mutations(self) -> list[tuple[str, ...]]:
        """Calls other than the listing ones answered from ``outputs``."""

        return [call for call in self.calls if call not in self.outputs]
