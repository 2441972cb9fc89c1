"""AppImages downloaded from GitHub releases into a local store directory."""

from __future__ import annotations

import fnmatch
import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from bootkeep.domain.errors import AdapterUnavailableError
from bootkeep.domain.model import Item

if TYPE_CHECKING:
    from collections.abc import Iterable

    from bootkeep.adapters.github import GitHubReleaseAsset, GitHubReleasesClient
    from bootkeep.domain.model import ItemId

log = logging.getLogger(__name__)

INDEX_FILENAME = ".bootkeep-appimages.json"
APPIMAGE_SUFFIX = ".AppImage"
DEFAULT_ASSET_PATTERN = "*x86_64*.AppImage"


class AppImageRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    repo: str
    tag: str
    asset: str
    file: str


class AppImageIndex(BaseModel):
    model_config = ConfigDict(extra="ignore")

    apps: list[AppImageRecord] = Field(default_factory=list["AppImageRecord"])

    def without(self, name: str) -> AppImageIndex:
        return AppImageIndex(apps=[record for record in self.apps if record.name != name])


def choose_asset(
    assets: Iterable[GitHubReleaseAsset], pattern: str | None
) -> GitHubReleaseAsset | None:
    """Pick the release asset to download, preferring ``pattern`` when given."""

    candidates = [asset for asset in assets if asset.name.endswith(APPIMAGE_SUFFIX)]
    for wanted in (pattern, DEFAULT_ASSET_PATTERN):
        if wanted is None:
            continue
        for asset in candidates:
            if fnmatch.fnmatch(asset.name, wanted):
                return asset
    return candidates[0] if candidates else None


class AppImageAdapter:
    """AppImages tracked in an index next to the downloaded files.

    Items are named apps fingerprinted by release tag. ``source`` must carry
    the GitHub ``repo`` (``owner/name``) and may narrow the ``asset`` glob.
    """

    def __init__(self, *, directory: Path, releases: GitHubReleasesClient) -> None:
        self.directory = directory
        self.releases = releases

    @property
    def index_path(self) -> Path:
        return self.directory / INDEX_FILENAME

    def _load_index(self) -> AppImageIndex:
        try:
            raw = self.index_path.read_bytes()
        except FileNotFoundError:
            return AppImageIndex()
        try:
            return AppImageIndex.model_validate_json(raw)
        except ValidationError as exc:
            raise AdapterUnavailableError(f"Malformed AppImage index {self.index_path}") from exc

    def _save_index(self, index: AppImageIndex) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp = self.index_path.with_suffix(".tmp")
        tmp.write_text(index.model_dump_json(indent=2) + "\n", encoding="utf-8")
        tmp.replace(self.index_path)

    def list(self) -> Iterable[Item]:
        items: list[Item] = []
        for record in self._load_index().apps:
            if not (self.directory / record.file).is_file():
                log.debug("AppImage %s is indexed but %s is missing", record.name, record.file)
                continue
            items.append(
                Item(record.name, record.tag, {"repo": record.repo, "asset": record.asset})
            )
        return items

    def install(self, item: Item) -> None:
        repo = item.source.get("repo")
        if not repo:
            raise AdapterUnavailableError(f"AppImage '{item.id}' declares no GitHub repo")
        release = self.releases.fetch_release(repo, item.fingerprint)
        asset = choose_asset(release.assets, item.source.get("asset"))
        if asset is None:
            raise AdapterUnavailableError(
                f"Release {release.tag_name} of {repo} has no AppImage asset"
            )

        self.directory.mkdir(parents=True, exist_ok=True)
        target = self.directory / f"{item.id}{APPIMAGE_SUFFIX}"
        fd, partial = tempfile.mkstemp(dir=self.directory, prefix=f".{item.id}.", suffix=".part")
        os.close(fd)
        partial_path = Path(partial)
        try:
            self.releases.download(asset.browser_download_url, partial_path)
            partial_path.chmod(0o755)
            partial_path.replace(target)
        except BaseException:
            partial_path.unlink(missing_ok=True)
            raise

        index = self._load_index().without(item.id)
        index.apps.append(
            AppImageRecord(
                name=item.id,
                repo=repo,
                tag=release.tag_name,
                asset=asset.name,
                file=target.name,
            )
        )
        self._save_index(index)
        log.info("Installed %s %s from %s", item.id, release.tag_name, repo)

    def remove(self, item_id: ItemId) -> None:
        index = self._load_index()
        for record in index.apps:
            if record.name == item_id:
                (self.directory / record.file).unlink(missing_ok=True)
        self._save_index(index.without(item_id))
