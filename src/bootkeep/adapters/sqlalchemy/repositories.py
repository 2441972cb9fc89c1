"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import delete, insert, select, update

from bootkeep.adapters.sqlalchemy.mappings import baseline_item_table, subsystem_table, utcnow
from bootkeep.domain.errors import BaselineCorruptError
from bootkeep.domain.model import DuplicateItemError, Item, ItemSet, SubsystemTier

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from sqlalchemy.orm import Session

    from bootkeep.domain.model import ItemId, SubsystemId


def _encode_source(source: Mapping[str, str]) -> str | None:
    if not source:
        return None
    return json.dumps(dict(source), sort_keys=True)


def _decode_source(subsystem_id: SubsystemId, item_id: str, raw: str | None) -> dict[str, str]:
    if raw is None:
        return {}
    try:
        loaded = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise BaselineCorruptError(
            subsystem_id, f"source of '{item_id}' is not valid JSON: {exc}"
        ) from exc
    if not isinstance(loaded, dict):
        raise BaselineCorruptError(subsystem_id, f"source of '{item_id}' is not an object")
    entries = cast("dict[Any, Any]", loaded)
    return {str(key): str(value) for key, value in entries.items()}


class SqlAlchemyBaselineRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def snapshot(self, subsystem_id: SubsystemId) -> ItemSet:
        stmt = (
            select(
                baseline_item_table.c.item_id,
                baseline_item_table.c.fingerprint,
                baseline_item_table.c.source,
            )
            .where(baseline_item_table.c.subsystem_id == subsystem_id)
            .order_by(baseline_item_table.c.position, baseline_item_table.c.id)
        )
        items: list[Item] = []
        for item_id, fingerprint, source in self.session.execute(stmt):
            try:
                items.append(
                    Item(item_id, fingerprint, _decode_source(subsystem_id, item_id, source))
                )
            except ValueError as exc:
                raise BaselineCorruptError(subsystem_id, str(exc)) from exc
        try:
            return ItemSet(items)
        except DuplicateItemError as exc:
            raise BaselineCorruptError(subsystem_id, str(exc)) from exc

    def replace(self, subsystem_id: SubsystemId, items: ItemSet) -> None:
        self.session.execute(
            delete(baseline_item_table).where(baseline_item_table.c.subsystem_id == subsystem_id)
        )
        self._insert(subsystem_id, items.values(), start=0)

    def upsert(self, subsystem_id: SubsystemId, items: Iterable[Item]) -> None:
        positions = self._positions(subsystem_id)
        fresh: list[Item] = []
        for item in items:
            if item.id not in positions:
                fresh.append(item)
                continue
            self.session.execute(
                update(baseline_item_table)
                .where(baseline_item_table.c.subsystem_id == subsystem_id)
                .where(baseline_item_table.c.item_id == item.id)
                .values(
                    fingerprint=item.fingerprint,
                    source=_encode_source(item.source),
                    recorded_at=utcnow(),
                )
            )
        start = max(positions.values(), default=-1) + 1
        self._insert(subsystem_id, fresh, start=start)

    def discard(self, subsystem_id: SubsystemId, item_ids: Iterable[ItemId]) -> None:
        doomed = list(item_ids)
        if not doomed:
            return
        self.session.execute(
            delete(baseline_item_table)
            .where(baseline_item_table.c.subsystem_id == subsystem_id)
            .where(baseline_item_table.c.item_id.in_(doomed))
        )

    def _positions(self, subsystem_id: SubsystemId) -> dict[ItemId, int]:
        stmt = select(baseline_item_table.c.item_id, baseline_item_table.c.position).where(
            baseline_item_table.c.subsystem_id == subsystem_id
        )
        return {item_id: position for item_id, position in self.session.execute(stmt)}

    def _insert(self, subsystem_id: SubsystemId, items: Iterable[Item], *, start: int) -> None:
        now = utcnow()
        rows = [
            {
                "subsystem_id": subsystem_id,
                "item_id": item.id,
                "fingerprint": item.fingerprint,
                "source": _encode_source(item.source),
                "position": position,
                "recorded_at": now,
            }
            for position, item in enumerate(items, start=start)
        ]
        if rows:
            self.session.execute(insert(baseline_item_table), rows)


class SqlAlchemySubsystemRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def registered_tier(self, subsystem_id: SubsystemId) -> SubsystemTier | None:
        stmt = select(subsystem_table.c.tier).where(subsystem_table.c.id == subsystem_id)
        raw = self.session.execute(stmt).scalar_one_or_none()
        if raw is None:
            return None
        try:
            return SubsystemTier(raw)
        except ValueError as exc:
            raise BaselineCorruptError(subsystem_id, f"unknown tier {raw!r}") from exc

    def register(self, subsystem_id: SubsystemId, tier: SubsystemTier) -> None:
        self.session.execute(
            insert(subsystem_table).values(id=subsystem_id, tier=str(tier), registered_at=utcnow())
        )
