"""Read booted and pending OSTree deployments from ``rpm-ostree status --json``."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from bootkeep.domain.errors import AdapterUnavailableError

if TYPE_CHECKING:
    from bootkeep.domain.ports import CommandRunner

log = logging.getLogger(__name__)


class RpmOstreeBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Deployment(RpmOstreeBaseModel):
    id: str | None = None
    osname: str
    checksum: str
    serial: int = 0
    version: str | None = None
    booted: bool = False
    staged: bool = False
    requested_packages: list[str] = Field(default_factory=list, alias="requested-packages")

    @property
    def relative_root(self) -> Path:
        return Path("ostree") / "deploy" / self.osname / "deploy" / f"{self.checksum}.{self.serial}"


class RpmOstreeStatus(RpmOstreeBaseModel):
    deployments: list[Deployment] = Field(default_factory=list["Deployment"])

    @property
    def booted(self) -> Deployment | None:
        return next((d for d in self.deployments if d.booted), None)

    @property
    def pending(self) -> Deployment | None:
        """The deployment the next reboot lands in, when it differs from the booted one.

        rpm-ostree lists the default (next boot) deployment first; a staged
        deployment is finalized on shutdown and is pending as well.
        """

        staged = next((d for d in self.deployments if d.staged), None)
        if staged is not None:
            return staged
        if self.deployments and not self.deployments[0].booted:
            return self.deployments[0]
        return None


class DeploymentInspector:
    """Locate the filesystem roots of the booted and pending deployments."""

    def __init__(self, runner: CommandRunner, *, sysroot: Path = Path("/")) -> None:
        self.runner = runner
        self.sysroot = sysroot

    def status(self) -> RpmOstreeStatus:
        result = self.runner.run("rpm-ostree", ("status", "--json"))
        try:
            return RpmOstreeStatus.model_validate_json(result.stdout)
        except ValidationError as exc:
            raise AdapterUnavailableError(f"Unexpected rpm-ostree status output: {exc}") from exc

    def booted(self) -> Deployment:
        deployment = self.status().booted
        if deployment is None:
            raise AdapterUnavailableError("rpm-ostree reports no booted deployment")
        return deployment

    def booted_root(self) -> Path:
        return self.sysroot

    def pending_root(self) -> Path | None:
        deployment = self.status().pending
        if deployment is None:
            return None
        root = self.sysroot / deployment.relative_root
        log.debug("Pending deployment %s at %s", deployment.checksum[:12], root)
        return root
