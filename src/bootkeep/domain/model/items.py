"""Items and the per-subsystem collections they live in."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field

type SubsystemId = str
type ItemId = str


class DuplicateItemError(ValueError):
    def __init__(self, item_id: ItemId) -> None:
        super().__init__(f"Item '{item_id}' appears more than once")
        self.item_id = item_id


@dataclass(frozen=True, slots=True)
class Item:
    """One declared or observed unit within a subsystem.

    Two items are equal when their id and fingerprint match; ``source`` carries
    adapter metadata (remote, scope, repository, ...) and never takes part in
    comparisons.

    A ``None`` fingerprint means "any version": a declaration without a pin, or
    an ecosystem that cannot report versions. Reconciliation compares items with
    :meth:`same_as`, which treats such an item as matching any fingerprint.
    """

    id: ItemId
    fingerprint: str | None = None
    source: Mapping[str, str] = field(default_factory=dict[str, str], compare=False, hash=False)

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            raise ValueError("Item id must be a non-empty string")

    def same_as(self, other: Item | None) -> bool:
        if other is None:
            return False
        if self.fingerprint is None or other.fingerprint is None:
            return True
        return self.fingerprint == other.fingerprint

    def describe(self) -> str:
        return self.id if self.fingerprint is None else f"{self.id}@{self.fingerprint}"


class ItemSet(Mapping[ItemId, Item]):
    """Ordered, id-unique, immutable collection of items for one subsystem."""

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[Item] = ()) -> None:
        by_id: dict[ItemId, Item] = {}
        for item in items:
            if item.id in by_id:
                raise DuplicateItemError(item.id)
            by_id[item.id] = item
        self._items = by_id

    def __getitem__(self, item_id: ItemId) -> Item:
        return self._items[item_id]

    def __iter__(self) -> Iterator[ItemId]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        inner = ", ".join(item.describe() for item in self._items.values())
        return f"ItemSet([{inner}])"

    def with_item(self, item: Item) -> ItemSet:
        """Return a copy with ``item`` replacing any item of the same id in place."""

        if item.id in self._items:
            return ItemSet(
                item if existing.id == item.id else existing for existing in self.values()
            )
        return ItemSet((*self.values(), item))

    def without(self, item_id: ItemId) -> ItemSet:
        return ItemSet(item for item in self.values() if item.id != item_id)

