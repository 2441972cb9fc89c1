"""Backend adapters, one per package ecosystem."""

from __future__ import annotations

from .appimage import AppImageAdapter
from .dconf import DconfAdapter
from .distrobox import DistroboxAdapter
from .extension import GnomeExtensionsAdapter
from .flatpak import FlatpakAdapter
from .homebrew import HomebrewAdapter
from .shim import HostShimsAdapter
from .system import RpmOstreePackagesAdapter
from .upstream import UpstreamBinariesAdapter

__all__ = [
    "AppImageAdapter",
    "DconfAdapter",
    "DistroboxAdapter",
    "FlatpakAdapter",
    "GnomeExtensionsAdapter",
    "HomebrewAdapter",
    "HostShimsAdapter",
    "RpmOstreePackagesAdapter",
    "UpstreamBinariesAdapter",
]
