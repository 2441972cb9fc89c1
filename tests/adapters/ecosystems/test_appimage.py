from __future__ import annotations

import os
from typing import TYPE_CHECKING, cast

import pytest

from bootkeep.adapters.ecosystems import AppImageAdapter
from bootkeep.adapters.ecosystems.appimage import INDEX_FILENAME, choose_asset
from bootkeep.adapters.github import GitHubRelease, GitHubReleaseAsset
from bootkeep.domain.errors import AdapterUnavailableError
from bootkeep.domain.model import Item

if TYPE_CHECKING:
    from pathlib import Path

    from bootkeep.adapters.github import GitHubReleasesClient


def _asset(name: str) -> GitHubReleaseAsset:
    return GitHubReleaseAsset(name=name, browser_download_url=f"https://example.invalid/{name}")


class FakeReleases:
    def __init__(self, release: GitHubRelease, payload: bytes = b"appimage") -> None:
        self.release = release
        self.payload = payload
        self.requested: list[tuple[str, str | None]] = []
        self.downloaded: list[str] = []

    def fetch_release(self, repository: str, tag: str | None = None) -> GitHubRelease:
        self.requested.append((repository, tag))
        return self.release

    def download(self, url: str, destination: Path) -> int:
        self.downloaded.append(url)
        destination.write_bytes(self.payload)
        return len(self.payload)


def _adapter(directory: Path, releases: FakeReleases) -> AppImageAdapter:
    return AppImageAdapter(directory=directory, releases=cast("GitHubReleasesClient", releases))


def test_choose_asset_prefers_declared_pattern() -> None:
    assets = [
        _asset("Tool-1.0-aarch64.AppImage"),
        _asset("Tool-1.0-x86_64.AppImage"),
        _asset("Tool-1.0.tar.gz"),
    ]

    preferred = choose_asset(assets, "*aarch64*")
    fallback = choose_asset(assets, None)

    assert preferred is not None
    assert preferred.name == "Tool-1.0-aarch64.AppImage"
    assert fallback is not None
    assert fallback.name == "Tool-1.0-x86_64.AppImage"
    assert choose_asset([_asset("Tool.tar.gz")], None) is None


def test_install_downloads_the_release_and_indexes_it(tmp_path: Path) -> None:
    releases = FakeReleases(
        GitHubRelease(tag_name="v1.0", assets=[_asset("Tool-1.0-x86_64.AppImage")])
    )
    adapter = _adapter(tmp_path, releases)

    adapter.install(Item("tool", None, {"repo": "owner/tool"}))

    target = tmp_path / "tool.AppImage"
    assert target.read_bytes() == b"appimage"
    assert os.access(target, os.X_OK)
    assert releases.requested == [("owner/tool", None)]
    assert list(adapter.list()) == [Item("tool", "v1.0")]
    assert (tmp_path / INDEX_FILENAME).exists()
    assert not list(tmp_path.glob("*.part"))


def test_install_without_repository_is_rejected(tmp_path: Path) -> None:
    adapter = _adapter(tmp_path, FakeReleases(GitHubRelease(tag_name="v1")))

    with pytest.raises(AdapterUnavailableError, match="declares no GitHub repo"):
        adapter.install(Item("tool", "v1"))


def test_release_without_appimage_is_rejected(tmp_path: Path) -> None:
    releases = FakeReleases(GitHubRelease(tag_name="v1", assets=[_asset("tool.tar.gz")]))
    adapter = _adapter(tmp_path, releases)

    with pytest.raises(AdapterUnavailableError, match="has no AppImage asset"):
        adapter.install(Item("tool", "v1", {"repo": "owner/tool"}))
    assert releases.downloaded == []


def test_remove_deletes_the_file_and_its_index_entry(tmp_path: Path) -> None:
    releases = FakeReleases(
        GitHubRelease(tag_name="v2", assets=[_asset("Tool-2-x86_64.AppImage")])
    )
    adapter = _adapter(tmp_path, releases)
    adapter.install(Item("tool", "v2", {"repo": "owner/tool"}))

    adapter.remove("tool")
    adapter.remove("never-installed")

    assert not (tmp_path / "tool.AppImage").exists()
    assert list(adapter.list()) == []


def test_indexed_app_with_missing_file_is_not_listed(tmp_path: Path) -> None:
    releases = FakeReleases(
        GitHubRelease(tag_name="v2", assets=[_asset("Tool-2-x86_64.AppImage")])
    )
    adapter = _adapter(tmp_path, releases)
    adapter.install(Item("tool", "v2", {"repo": "owner/tool"}))
    (tmp_path / "tool.AppImage").unlink()

    assert list(adapter.list()) == []
