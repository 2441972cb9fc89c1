"""Configuration values for the ecosystem adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .env import env_float, env_list, optional_env_var
from .http_resilience import CacheConfig, ResilienceConfig, RetryPolicy

DEFAULT_ADAPTER_TIMEOUT_SECONDS = 60.0
DEFAULT_DCONF_PATHS = ("/org/gnome/",)
DEFAULT_SHIM_DIR = "usr/libexec/bootkeep/shims"
DEFAULT_UPSTREAM_LOCK = "usr/share/bootkeep/upstream.lock.json"
GITHUB_API_URL = "https://api.github.com"
RELEASE_CACHE_TTL_SECONDS = 3600.0


@dataclass(frozen=True, slots=True)
class GitHubConfig:
    resilience: ResilienceConfig
    token: str | None = None


@dataclass(frozen=True, slots=True)
class AdapterConfig:
    timeout_seconds: float = DEFAULT_ADAPTER_TIMEOUT_SECONDS
    dconf_paths: tuple[str, ...] = DEFAULT_DCONF_PATHS
    appimage_dir: Path = field(default_factory=lambda: Path.home() / "Applications")
    shim_dir: str = DEFAULT_SHIM_DIR
    upstream_lock: str = DEFAULT_UPSTREAM_LOCK


def get_adapter_config() -> AdapterConfig:
    appimage_dir = optional_env_var("BOOTKEEP_APPIMAGE_DIR")
    return AdapterConfig(
        timeout_seconds=env_float(
            "BOOTKEEP_ADAPTER_TIMEOUT", DEFAULT_ADAPTER_TIMEOUT_SECONDS, minimum=0.1
        ),
        dconf_paths=env_list("BOOTKEEP_DCONF_PATHS", DEFAULT_DCONF_PATHS),
        appimage_dir=(
            Path(appimage_dir).expanduser() if appimage_dir else Path.home() / "Applications"
        ),
        shim_dir=optional_env_var("BOOTKEEP_SHIM_DIR") or DEFAULT_SHIM_DIR,
        upstream_lock=optional_env_var("BOOTKEEP_UPSTREAM_LOCK") or DEFAULT_UPSTREAM_LOCK,
    )


def get_github_config(*, resilience: ResilienceConfig | None = None) -> GitHubConfig:
    return GitHubConfig(
        token=optional_env_var("GITHUB_TOKEN"),
        resilience=resilience
        or ResilienceConfig(
            name="github",
            base_url=GITHUB_API_URL,
            timeout_seconds=30.0,
            retry=RetryPolicy(total=4),
            cache=CacheConfig(default_ttl_seconds=RELEASE_CACHE_TTL_SECONDS),
            default_headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        ),
    )
