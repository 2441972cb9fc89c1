"""The single enumeration of subsystems known to the engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bootkeep.domain.errors import DuplicateSubsystemError, SubsystemNotFoundError

from .policy import supports

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from bootkeep.domain.model import SubsystemId

    from .contracts import Operation
    from .subsystem import Subsystem


class SubsystemRegistry:
    """Subsystems in registration order; ids are unique."""

    __slots__ = ("_subsystems",)

    def __init__(self, subsystems: Iterable[Subsystem] = ()) -> None:
        self._subsystems: dict[SubsystemId, Subsystem] = {}
        for subsystem in subsystems:
            self.register(subsystem)

    def register(self, subsystem: Subsystem) -> None:
        if subsystem.id in self._subsystems:
            raise DuplicateSubsystemError(subsystem.id)
        self._subsystems[subsystem.id] = subsystem

    def all(self) -> tuple[Subsystem, ...]:
        return tuple(self._subsystems.values())

    def find(self, subsystem_id: SubsystemId) -> Subsystem:
        try:
            return self._subsystems[subsystem_id]
        except KeyError:
            raise SubsystemNotFoundError(subsystem_id) from None

    def supporting(self, operation: Operation) -> tuple[Subsystem, ...]:
        return tuple(s for s in self._subsystems.values() if supports(s.tier, operation))

    def select(
        self, operation: Operation, subsystem_ids: Iterable[SubsystemId] | None = None
    ) -> tuple[tuple[Subsystem, ...], tuple[Subsystem, ...]]:
        """Return ``(applicable, unsupported)`` subsystems for ``operation``.

        Without ids every registered subsystem supporting the verb applies and
        none is reported as unsupported. Explicit ids are resolved eagerly, so
        an unknown id raises before any work starts.
        """

        if subsystem_ids is None:
            return self.supporting(operation), ()
        wanted = {self.find(subsystem_id).id for subsystem_id in subsystem_ids}
        chosen = [s for s in self._subsystems.values() if s.id in wanted]
        applicable = tuple(s for s in chosen if supports(s.tier, operation))
        unsupported = tuple(s for s in chosen if not supports(s.tier, operation))
        return applicable, unsupported

    def __iter__(self) -> Iterator[Subsystem]:
        return iter(self._subsystems.values())

    def __len__(self) -> int:
        return len(self._subsystems)

    def __contains__(self, subsystem_id: object) -> bool:
        return subsystem_id in self._subsystems
