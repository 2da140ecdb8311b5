"""Per-repository package databases built from PACKAGES index files."""

from __future__ import annotations

import dataclasses
import hashlib
import json
import logging
import os
import sys
import tempfile
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import NamedTuple

import platformdirs
import requests

from .dependency import Constraint, Dep
from .description import Desc, parse_desc
from .models import RepoConfig, RepoURL, RVersion, SourceType
from .platform import cran_binary_url, supports_binary
from .version import Version, compare_versions, parse_version

logger = logging.getLogger(__name__)

CACHE_MAX_AGE_ENV = "R_AVAILABLE_PACKAGES_CACHE_CONTROL_MAX_AGE"
DEFAULT_CACHE_MAX_AGE = 3600

_DEP_FIELDS = ("imports", "suggests", "depends", "linking_to")


class RepoFetchError(Exception):
    """A repository's package index could not be fetched or parsed."""


class _Fetched(NamedTuple):
    source_type: SourceType
    descriptions: dict[str, Desc]
    error: Exception | None


@dataclass
class RepoDb:
    """The packages available from one repository, by source type."""

    descriptions_by_source_type: dict[SourceType, dict[str, Desc]] = field(default_factory=dict)
    time: datetime = field(default_factory=datetime.now)
    repo: RepoURL = field(default_factory=RepoURL)
    default_source_type: SourceType = SourceType.DEFAULT
    repo_suffix: str = ""
    cache_dir: str | os.PathLike[str] | None = None

    def hash(self, r_version: str) -> str:
        """An md5 hex digest of the repository, its source types and the R version."""
        stsum = int(SourceType.SOURCE)
        for st in self.descriptions_by_source_type:
            stsum += int(st) + 1
        text = f"{self.repo.name}{self.repo.url}{stsum}{r_version}"
        return hashlib.md5(text.encode("utf-8")).hexdigest()

    def cache_file_path(self, r_version: str) -> Path:
        """Where this database is cached for the given R version."""
        if self.cache_dir is not None:
            root = Path(self.cache_dir)
        else:
            root = Path(platformdirs.user_cache_dir() or tempfile.gettempdir())
        return root / "rpkgplan" / "r_packagedb_caches" / self.hash(r_version)

    def encode(self, path: str | os.PathLike[str]) -> None:
        """Write the package descriptions to ``path`` as JSON."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            str(int(st)): {name: dataclasses.asdict(d) for name, d in descs.items()}
            for st, descs in self.descriptions_by_source_type.items()
        }
        path.write_text(json.dumps(data), encoding="utf-8")

    def decode(self, path: str | os.PathLike[str]) -> None:
        """Replace the package descriptions with those stored at ``path``."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        self.descriptions_by_source_type = {
            SourceType(int(st)): {name: _desc_from_json(d) for name, d in descs.items()}
            for st, descs in data.items()
        }

    def fetch_packages(self, r_version: RVersion, no_secure: bool = False) -> None:
        """Fill the database from the repository, or from a recent cache.

        The cache is used if it is younger than
        ``R_AVAILABLE_PACKAGES_CACHE_CONTROL_MAX_AGE`` seconds (3600 by
        default). ``no_secure`` turns off TLS certificate checks. A failure
        is only raised when every one of several source types fails.
        """
        cache_file = self.cache_file_path(r_version.full())
        if cache_file.exists():
            if _cache_is_fresh(cache_file):
                self.decode(cache_file)
                return
            try:
                cache_file.unlink()
            except OSError as exc:
                logger.warning("error removing cache %s: %s", cache_file, exc)

        source_types = list(self.descriptions_by_source_type)
        with ThreadPoolExecutor(max_workers=max(1, len(source_types))) as pool:
            futures = [
                pool.submit(self._fetch_source_type, st, r_version, no_secure)
                for st in source_types
            ]
            results = [future.result() for future in futures]

        errors: list[Exception] = []
        for result in results:
            if result.error is not None:
                logger.warning(
                    "error downloading repo %s, type: %s, with information: %s",
                    self.repo.name,
                    result.source_type,
                    result.error,
                )
                errors.append(result.error)
            else:
                self.descriptions_by_source_type[result.source_type] = result.descriptions
        # A single failing type may just be absent, e.g. no binaries published.
        if len(source_types) > 1 and len(errors) == len(source_types):
            raise RepoFetchError(str(errors[-1])) from errors[-1]
        self.encode(cache_file)

    def _fetch_source_type(
        self, st: SourceType, r_version: RVersion, no_secure: bool
    ) -> _Fetched:
        url = packages_file_url(self, st, r_version)
        logger.debug("packages database - type: %s, url: %s", st, url)
        if url.startswith("http"):
            try:
                response = requests.get(url, verify=not no_secure, timeout=60)
            except requests.RequestException as exc:
                raise RepoFetchError(f"error with http get to url: {url}") from exc
            if response.status_code != 200:
                error = RepoFetchError(
                    f"failed fetching PACKAGES file from {url}, with status "
                    f"{response.status_code} {response.reason}"
                )
                return _Fetched(st, {}, error)
            body = response.content
        else:
            local = os.path.abspath(os.path.expanduser(url))
            try:
                with open(local, "rb") as f:
                    body = f.read()
            except FileNotFoundError:
                return _Fetched(st, {}, RepoFetchError(f"no package file found at: {local}"))
        try:
            descriptions = parse_packages_file(body, r_version)
        except ValueError as exc:
            return _Fetched(st, {}, exc)
        return _Fetched(st, descriptions, None)


def _dep_from_json(data: dict) -> Dep:
    return Dep(
        name=data["name"],
        version=Version(**data["version"]),
        constraint=Constraint(data["constraint"]),
    )


def _desc_from_json(data: dict) -> Desc:
    deps = {
        key: {name: _dep_from_json(dep) for name, dep in data.get(key, {}).items()}
        for key in _DEP_FIELDS
    }
    return Desc(**{**data, **deps})


def _max_cache_age() -> int:
    raw = os.environ.get(CACHE_MAX_AGE_ENV)
    if raw is None:
        return DEFAULT_CACHE_MAX_AGE
    try:
        return int(raw, 10)
    except ValueError as exc:
        logger.warning("improper %s set with error: %s, ignoring...", CACHE_MAX_AGE_ENV, exc)
        return DEFAULT_CACHE_MAX_AGE


def _cache_is_fresh(path: Path) -> bool:
    return int(path.stat().st_mtime + _max_cache_age()) > int(time.time())


def new_repo_db(
    url: RepoURL,
    dst: SourceType,
    rc: RepoConfig | None,
    rv: RVersion,
    no_secure: bool = False,
) -> RepoDb:
    """Create a database for a repository and fetch its package index."""
    rc = rc or RepoConfig()
    db = RepoDb(repo=url)
    db.default_source_type = dst if rc.default_source_type == SourceType.DEFAULT else rc.default_source_type
    if supports_binary(rc.repo_type):
        db.descriptions_by_source_type[SourceType.BINARY] = {}
    if rc.repo_suffix:
        db.repo_suffix = rc.repo_suffix
    db.descriptions_by_source_type[SourceType.SOURCE] = {}
    db.fetch_packages(rv, no_secure)
    return db


def packages_file_url(repo_db: RepoDb, st: SourceType, rv: RVersion) -> str:
    """The location of a repository's PACKAGES index for a source type."""
    base = repo_db.repo.url.removesuffix("/")
    if st == SourceType.SOURCE:
        return f"{base}/src/contrib/PACKAGES"
    binary = cran_binary_url(rv)
    if repo_db.repo_suffix and sys.platform.startswith("linux"):
        return f"{base}/bin/{binary}/{repo_db.repo_suffix}/contrib/{rv.major_minor()}/PACKAGES"
    return f"{base}/bin/{binary}/contrib/{rv.major_minor()}/PACKAGES"


def parse_packages_file(body: str | bytes, r_version: RVersion) -> dict[str, Desc]:
    """Parse a PACKAGES index, keeping packages usable with ``r_version``.

    Packages whose R constraint excludes the version, and special builds
    marked with a ``Path`` field, are left out.
    """
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    body = body.replace("\r\n", "\n")
    descriptions: dict[str, Desc] = {}
    for record in body.split("\n\n"):
        if not record.strip():
            continue
        pkg_desc = parse_desc(record)
        constraint, valid = is_r_version_compatible(pkg_desc, r_version)
        if valid and not pkg_desc.path:
            descriptions[pkg_desc.package] = pkg_desc
        else:
            logger.debug(
                "invalid package constraint: pkg=%s version=%s", pkg_desc.package, constraint
            )
    return descriptions


def is_r_version_compatible(pkg_desc: Desc, r_version: RVersion) -> tuple[Dep, bool]:
    """The package's R dependency and whether ``r_version`` satisfies it."""
    constraint = pkg_desc.depends.get("R")
    if constraint is None:
        return Dep(), True
    return constraint, check_r_version_compatibility(r_version, constraint)


def check_r_version_compatibility(r_version: RVersion, constraint: Dep) -> bool:
    """Whether ``r_version`` satisfies a version constraint on R.

    A dependency without a constraint is not satisfied.
    """
    installed = parse_version(r_version.full())
    cmp = compare_versions(installed, constraint.version)
    if constraint.constraint == Constraint.GT:
        return cmp > 0
    if constraint.constraint == Constraint.GTE:
        return cmp >= 0
    if constraint.constraint == Constraint.LT:
        return cmp < 0
    if constraint.constraint == Constraint.LTE:
        return cmp <= 0
    if constraint.constraint == Constraint.EQUALS:
        return cmp == 0
    return False