"""Data types shared by repository lookup, download and planning."""

from __future__ import annotations

import enum
import sys
import threading
from collections.abc import Iterator
from dataclasses import dataclass, field

from .description import Desc


class RepoType(enum.IntEnum):
    """Kind of package repository."""

    CRAN = 10
    MPN = 11
    RSPM = 12

    def __str__(self) -> str:
        if self is RepoType.MPN:
            return "mpn"
        if self is RepoType.RSPM:
            return "rspm"
        return "cran"


class SourceType(enum.IntEnum):
    """Whether a package is fetched as source or as a binary build."""

    DEFAULT = 0
    SOURCE = 1
    BINARY = 2

    def __str__(self) -> str:
        st = self
        if st is SourceType.DEFAULT:
            st = _platform_default_type()
        return "binary" if st is SourceType.BINARY else "source"


def _platform_default_type() -> SourceType:
    if sys.platform == "darwin" or sys.platform.startswith("win"):
        return SourceType.BINARY
    return SourceType.SOURCE


@dataclass(frozen=True)
class RepoURL:
    """A named repository location, e.g. ``RepoURL("https://cran.rstudio.com", "CRAN")``."""

    url: str = ""
    name: str = ""
    suffix: str = ""


@dataclass
class RepoConfig:
    """Settings for one repository."""

    default_source_type: SourceType = SourceType.DEFAULT
    repo_type: RepoType = RepoType.CRAN
    repo_suffix: str = ""


@dataclass
class PkgConfig:
    """Where a package comes from and in which form."""

    repo: RepoURL = field(default_factory=RepoURL)
    type: SourceType = SourceType.DEFAULT


@dataclass
class InstallConfig:
    """Per-package and per-repository settings for an installation."""

    packages: dict[str, PkgConfig] = field(default_factory=dict)
    repos: dict[str, RepoConfig] = field(default_factory=dict)


@dataclass
class PkgDl:
    """What is needed to download one package."""

    config: PkgConfig = field(default_factory=PkgConfig)
    package: Desc = field(default_factory=Desc)

    def pkg_and_repo_names(self) -> tuple[str, str]:
        """The package name and the name of its repository."""
        return self.package.package, self.config.repo.name


@dataclass
class Download:
    """The result of downloading one package."""

    path: str = ""
    new: bool = False
    metadata: PkgDl = field(default_factory=PkgDl)
    size: int = 0

    @property
    def megabytes(self) -> float:
        """Size of the download in MiB."""
        return self.size / (1024 * 1024)


@dataclass
class AvailablePkgs:
    """Requested packages found in the database, and those that are missing."""

    packages: list[PkgDl] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RVersion:
    """Version of the R installation."""

    major: int = 0
    minor: int = 0
    patch: int = 0

    def major_minor(self) -> str:
        """Major and minor version, e.g. ``3.5``."""
        return f"{self.major}.{self.minor}"

    def full(self) -> str:
        """Full version, e.g. ``3.5.2``."""
        return f"{self.major}.{self.minor}.{self.patch}"


@dataclass
class OutdatedPackage:
    """An installed package for which a newer version is available."""

    package: str = ""
    old_version: str = ""
    new_version: str = ""


@dataclass
class OsRelease:
    """Fields of an ``os-release`` file."""

    name: str = ""
    version: str = ""
    id: str = ""
    id_like: str = ""
    lts_release: str = ""
    pretty_name: str = ""
    version_id: str = ""
    version_codename: str = ""
    ubuntu_codename: str = ""


class PkgMap:
    """A thread-safe mapping from package name to :class:`Download`."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._map: dict[str, Download] = {}

    def put(self, key: str, value: Download) -> None:
        """Store ``value`` under ``key``."""
        with self._lock:
            self._map[key] = value

    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""
        with self._lock:
            self._map.pop(key, None)

    def get(self, key: str) -> Download | None:
        """The download stored under ``key``, or None."""
        with self._lock:
            return self._map.get(key)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._map

    def __len__(self) -> int:
        with self._lock:
            return len(self._map)

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._map))