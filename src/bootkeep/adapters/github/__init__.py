"""GitHub releases adapter."""

from __future__ import annotations

from .client import GitHubReleasesClient
from .schema import GitHubRelease, GitHubReleaseAsset

__all__ = ["GitHubRelease", "GitHubReleaseAsset", "GitHubReleasesClient"]
