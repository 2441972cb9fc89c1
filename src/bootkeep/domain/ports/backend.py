"""Ports implemented by the per-ecosystem backend adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from pathlib import Path

    from bootkeep.domain.model import Item, ItemId


@runtime_checkable
class BackendAdapter(Protocol):
    """Query and mutate one package ecosystem.

    ``install`` and ``remove`` must be idempotent so that a failed sync can be
    retried item by item. Failures surface as ``AdapterUnavailableError`` or
    ``AdapterTimeoutError``.
    """

    def list(self) -> Iterable[Item]: ...

    def install(self, item: Item) -> None: ...

    def remove(self, item_id: ItemId) -> None: ...


@runtime_checkable
class StagedStateReader(Protocol):
    """Read the items of the pending, not-yet-booted image layer.

    Returns ``None`` when no layer is pending.
    """

    def read_staged(self) -> Iterable[Item] | None: ...


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Captured outcome of one external command."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass(frozen=True, slots=True)
class CommandOptions:
    cwd: Path | None = None
    env: Mapping[str, str] = field(default_factory=dict[str, str])
    check: bool = True


@runtime_checkable
class CommandRunner(Protocol):
    """Run an external program on behalf of an adapter.

    With ``options.check`` (the default) a non-zero exit raises
    ``AdapterUnavailableError``.
    """

    def run(
        self,
        program: str,
        args: Sequence[str],
        options: CommandOptions | None = None,
    ) -> CommandResult: ...
