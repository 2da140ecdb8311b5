"""Platform detection: binary support, binary file names and repository paths."""

from __future__ import annotations

import functools
import hashlib
import logging
import os
import re
import sys

from .models import OsRelease, RepoType, RepoURL, RVersion, SourceType

logger = logging.getLogger(__name__)

OS_RELEASE_PATH = "/etc/os-release"

_SUPPORTED_DISTROS = frozenset({"focal", "bionic", "xenial", "centos", "rhel", "ubuntu"})

_FIELDS = {
    "NAME": "name",
    "VERSION": "version",
    "ID": "id",
    "ID_LIKE": "id_like",
    "PRETTY_NAME": "pretty_name",
    "VERSION_ID": "version_id",
    "VERSION_CODENAME": "version_codename",
    "UBUNTU_CODENAME": "ubuntu_codename",
}

_LTS_RELEASE = re.compile(r"^.*?(\d+)\s.*")


def _current_system() -> str:
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform.startswith("linux"):
        return "linux"
    return sys.platform


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def parse_os_release(text: str) -> OsRelease:
    """Parse the contents of an ``os-release`` file.

    Values may be quoted or not. Lines without ``=`` that are not blank or
    comments are an error.
    """
    values: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            raise ValueError(f"malformed os-release line: {raw!r}")
        values[key.strip().upper()] = _unquote(value.strip())
    fields = {attr: values.get(key, "") for key, attr in _FIELDS.items()}
    lts_release = _LTS_RELEASE.sub(r"\1", fields["version"])
    return OsRelease(lts_release=lts_release, **fields)


def read_os_release(path: str | os.PathLike[str] = OS_RELEASE_PATH) -> OsRelease:
    """Read and parse an ``os-release`` file."""
    with open(path, encoding="utf-8") as f:
        return parse_os_release(f.read())


@functools.lru_cache(maxsize=1)
def _system_os_release() -> OsRelease:
    return read_os_release()


def _linux_known_supports_binary() -> bool:
    try:
        release = _system_os_release()
    except (OSError, ValueError) as exc:
        logger.warning("error reading linux binary information: %s", exc)
        return False
    if not release.id:
        return False
    if release.version_codename in _SUPPORTED_DISTROS or release.id in _SUPPORTED_DISTROS:
        return True
    logger.info(
        "The running version of Linux might not support binary packages, "
        "please contact the development team"
    )
    return True


def default_type(system: str | None = None) -> SourceType:
    """The default package type for a platform: binary on macOS and Windows."""
    system = system or _current_system()
    if system in ("darwin", "windows"):
        return SourceType.BINARY
    return SourceType.SOURCE


def supports_binary(repo_type: RepoType, system: str | None = None) -> bool:
    """Whether binaries can be used on a platform for a kind of repository.

    macOS and Windows always can; Linux only from MPN repositories on a
    distribution with a readable ``os-release``.
    """
    system = system or _current_system()
    if system in ("darwin", "windows"):
        return True
    if system == "linux":
        return repo_type == RepoType.MPN and _linux_known_supports_binary()
    return False


def binary_name(pkg: str, version: str, system: str | None = None) -> str:
    """The file name of a binary package build on a platform, or ``""``."""
    system = system or _current_system()
    if system == "darwin":
        return f"{pkg}_{version}.tgz"
    if system == "linux":
        try:
            distro = _system_os_release().id
        except (OSError, ValueError):
            distro = ""
        if distro == "rhel":
            return f"{pkg}_{version}_R_x86_64-redhat-linux-gnu.tar.gz"
        return f"{pkg}_{version}_R_x86_64-pc-linux-gnu.tar.gz"
    if system == "windows":
        return f"{pkg}_{version}.zip"
    logger.warning("platform not supported for binary detection")
    return ""


def linux_binary_uri(os_release: OsRelease | None = None) -> str:
    """The distribution part of a Linux binary repository path.

    Ubuntu gives ``ubuntu/<codename>``, CentOS and RHEL give
    ``centos/<major>``, other distributions ``<id>/<version id>``. Without
    a distribution id the result is ``""``. With no ``os_release`` given
    the running system's is read.
    """
    if os_release is None:
        try:
            os_release = _system_os_release()
        except (OSError, ValueError) as exc:
            logger.warning("could not derive linux information with error: %s", exc)
            return ""
    if not os_release.id:
        return ""
    if os_release.id == "ubuntu":
        return f"{os_release.id}/{os_release.version_codename}"
    if os_release.id in ("centos", "rhel"):
        return f"centos/{os_release.version_id[:1]}"
    return f"{os_release.id}/{os_release.version_id}"


def cran_binary_url(rv: RVersion, system: str | None = None) -> str:
    """The platform part of a binary repository path, e.g. ``macosx``."""
    system = system or _current_system()
    if system == "darwin":
        return "macosx" if rv.major == 4 else "macosx/el-capitan"
    if system == "windows":
        return "windows"
    if system == "linux":
        return f"linux/{linux_binary_uri()}"
    logger.warning("platform not supported for binary detection")
    return ""


def repo_url_hash(repo: RepoURL) -> str:
    """A short identifier for a repository: ``<name>-<12 hex digits of md5(url)>``."""
    digest = hashlib.md5(repo.url.encode("utf-8")).hexdigest()
    return f"{repo.name}-{digest[:12]}"