"""Minimal Pydantic models for the GitHub releases API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class GitHubBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class GitHubReleaseAsset(GitHubBaseModel):
    name: str
    browser_download_url: str
    size: int | None = None
    content_type: str | None = None


class GitHubRelease(GitHubBaseModel):
    tag_name: str
    name: str | None = None
    draft: bool = False
    prerelease: bool = False
    assets: list[GitHubReleaseAsset] = Field(default_factory=list["GitHubReleaseAsset"])
