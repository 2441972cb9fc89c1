"""Settings overlay: dconf keys under configured path prefixes."""

from __future__ import annotations

import configparser
from typing import TYPE_CHECKING

from bootkeep.domain.errors import AdapterUnavailableError
from bootkeep.domain.model import Item

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from bootkeep.domain.model import ItemId
    from bootkeep.domain.ports import CommandRunner


class _KeyPreservingParser(configparser.ConfigParser):
    def optionxform(self, optionstr: str) -> str:
        return optionstr


def parse_dump(prefix: str, dump: str) -> list[Item]:
    """Turn ``dconf dump <prefix>`` output into one item per key.

    Ids are absolute key paths; fingerprints are GVariant text values.
    """

    parser = _KeyPreservingParser(interpolation=None, strict=False, delimiters=("=",))
    try:
        parser.read_string(dump)
    except configparser.Error as exc:
        raise AdapterUnavailableError(f"Cannot parse dconf dump of {prefix}: {exc}") from exc

    base = prefix if prefix.endswith("/") else f"{prefix}/"
    items: list[Item] = []
    for section in parser.sections():
        directory = base if section == "/" else f"{base}{section.strip('/')}/"
        for key, value in parser.items(section, raw=True):
            items.append(Item(f"{directory}{key}", value, {"prefix": base}))
    return items


class DconfAdapter:
    """Keys written with ``dconf write`` and cleared with ``dconf reset``."""

    def __init__(self, runner: CommandRunner, *, prefixes: Sequence[str]) -> None:
        self.runner = runner
        self.prefixes = tuple(prefixes)

    def list(self) -> Iterable[Item]:
        items: list[Item] = []
        for prefix in self.prefixes:
            result = self.runner.run("dconf", ("dump", prefix))
            items.extend(parse_dump(prefix, result.stdout))
        return items

    def install(self, item: Item) -> None:
        if item.fingerprint is None:
            raise AdapterUnavailableError(f"dconf key '{item.id}' has no declared value")
        self.runner.run("dconf", ("write", item.id, item.fingerprint))

    def remove(self, item_id: ItemId) -> None:
        self.runner.run("dconf", ("reset", item_id))
