"""GitHub releases client used to fetch AppImages."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from bootkeep.adapters.http_resilience import ResilientClient
from bootkeep.domain.errors import AdapterTimeoutError, AdapterUnavailableError

from .schema import GitHubRelease

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from bootkeep.config.adapters import GitHubConfig

log = getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 1 << 16


class GitHubReleasesClient:
    """Look up releases and download their assets.

    Public methods are synchronous so adapters can call them from worker
    threads; each call runs its own event loop.
    """

    def __init__(
        self,
        *,
        config: GitHubConfig,
        client_factory: Callable[[GitHubConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._client_factory = client_factory or _default_client

    def fetch_release(self, repository: str, tag: str | None = None) -> GitHubRelease:
        """Return the release tagged ``tag`` (or the latest one) of ``owner/name``."""

        path = (
            f"/repos/{repository}/releases/latest"
            if tag is None
            else f"/repos/{repository}/releases/tags/{tag}"
        )
        return asyncio.run(self._fetch_release_async(path))

    def download(self, url: str, destination: Path) -> int:
        """Stream ``url`` into ``destination`` and return the number of bytes written."""

        return asyncio.run(self._download_async(url, destination))

    # asset bodies never enter the response cache
    def _uncached(self) -> GitHubConfig:
        return replace(self._config, resilience=replace(self._config.resilience, cache=None))

    async def _fetch_release_async(self, path: str) -> GitHubRelease:
        async with self._client_factory(self._config) as client:
            try:
                response = await client.get(path)
                response.raise_for_status()
            except httpx.TimeoutException as exc:
                raise AdapterTimeoutError(
                    f"GET {path}", self._config.resilience.timeout_seconds
                ) from exc
            except httpx.HTTPError as exc:
                raise AdapterUnavailableError(f"GitHub request {path} failed: {exc}") from exc
        try:
            return GitHubRelease.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise AdapterUnavailableError(f"Unexpected GitHub payload for {path}") from exc

    async def _download_async(self, url: str, destination: Path) -> int:
        written = 0
        async with self._client_factory(self._uncached()) as client:
            try:
                async with client.stream(url) as response:
                    response.raise_for_status()
                    with destination.open("wb") as handle:
                        async for chunk in response.aiter_bytes(DOWNLOAD_CHUNK_SIZE):
                            handle.write(chunk)
                            written += len(chunk)
            except httpx.TimeoutException as exc:
                raise AdapterTimeoutError(
                    f"GET {url}", self._config.resilience.timeout_seconds
                ) from exc
            except httpx.HTTPError as exc:
                raise AdapterUnavailableError(f"Download of {url} failed: {exc}") from exc
        log.debug("Downloaded %d bytes from %s", written, url)
        return written


def _default_client(config: GitHubConfig) -> ResilientClient:
    headers = {"Authorization": f"Bearer {config.token}"} if config.token else None
    return ResilientClient(config.resilience, headers=headers)
