"""Reconciliation pass defaults."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, cast

from .env import env_bool, env_int, optional_env_var
from .errors import InvalidConfigValueError

DEFAULT_PARALLELISM = 4

type ObservedOnlyMode = Literal["untracked", "added"]

_OBSERVED_ONLY_MODES: frozenset[str] = frozenset({"untracked", "added"})


@dataclass(frozen=True, slots=True)
class EngineConfig:
    parallelism: int = DEFAULT_PARALLELISM
    all_or_nothing: bool = False
    staged_observed_only: ObservedOnlyMode = "untracked"


def get_engine_config() -> EngineConfig:
    mode = optional_env_var("BOOTKEEP_STAGED_OBSERVED_ONLY") or "untracked"
    if mode not in _OBSERVED_ONLY_MODES:
        raise InvalidConfigValueError(
            "BOOTKEEP_STAGED_OBSERVED_ONLY", mode, "'untracked' or 'added'"
        )
    return EngineConfig(
        parallelism=env_int("BOOTKEEP_PARALLELISM", DEFAULT_PARALLELISM, minimum=1),
        all_or_nothing=env_bool("BOOTKEEP_ALL_OR_NOTHING"),
        staged_observed_only=cast("ObservedOnlyMode", mode),
    )
