"""A package database spanning several repositories, searched in order."""

from __future__ import annotations

import dataclasses
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from .description import Desc
from .models import (
    AvailablePkgs,
    InstallConfig,
    PkgConfig,
    PkgDl,
    RepoURL,
    RVersion,
    SourceType,
)
from .repodb import RepoDb, new_repo_db

logger = logging.getLogger(__name__)


def set_type(cfg: PkgConfig, t: str) -> None:
    """Set ``cfg.type`` from ``"source"`` or ``"binary"``, ignoring case."""
    lowered = t.casefold()
    if lowered == "source":
        cfg.type = SourceType.SOURCE
    elif lowered == "binary":
        cfg.type = SourceType.BINARY
    else:
        raise ValueError(f"invalid source type: {t}")


def _is_correct_repo(pkg: str, repo: RepoURL, cfg: dict[str, PkgConfig]) -> bool:
    pkgcfg = cfg.get(pkg)
    if pkgcfg is not None and pkgcfg.repo.name:
        return pkgcfg.repo.name == repo.name
    return True


@dataclass
class PkgNexus:
    """Repository databases in priority order plus installation settings."""

    db: list[RepoDb] = field(default_factory=list)
    config: InstallConfig = field(default_factory=InstallConfig)
    default_source_type: SourceType = SourceType.DEFAULT

    def set_package_repo(self, pkg: str, repo: str) -> None:
        """Make ``pkg`` be taken from the repository named ``repo``."""
        for repo_db in self.db:
            if repo_db.repo.name == repo:
                cfg = dataclasses.replace(self.config.packages.get(pkg, PkgConfig()))
                cfg.repo = repo_db.repo
                self.config.packages[pkg] = cfg
                return
        raise ValueError(f"no repo: {repo}, detected containing package: {pkg}")

    def set_package_type(self, pkg: str, t: str) -> None:
        """Set whether ``pkg`` is installed from source or binary."""
        cfg = dataclasses.replace(self.config.packages.get(pkg, PkgConfig()))
        set_type(cfg, t)
        self.config.packages[pkg] = cfg

    def get_package(self, pkg: str) -> tuple[Desc, PkgConfig] | None:
        """The first match for ``pkg`` and where it comes from, or None.

        Only the source type that applies to the package is searched: its
        configured type, else the repository's default, else the nexus's.
        """
        cfg = self.config.packages.get(pkg)
        exists = cfg is not None
        st = self.default_source_type
        if cfg is not None and cfg.type != SourceType.DEFAULT:
            st = cfg.type
        for repo_db in self.db:
            rst = st
            if (
                repo_db.default_source_type != rst
                and not exists
                and repo_db.default_source_type != SourceType.DEFAULT
            ):
                rst = repo_db.default_source_type
            descriptions = repo_db.descriptions_by_source_type.get(rst, {})
            if pkg in descriptions and _is_correct_repo(pkg, repo_db.repo, self.config.packages):
                return descriptions[pkg], PkgConfig(repo=repo_db.repo, type=rst)
        return None

    def get_package_from_repo(self, pkg: str, repo: str) -> tuple[Desc, PkgConfig] | None:
        """``pkg`` from the repository named ``repo`` (any if empty), or None."""
        st = self.config.packages.get(pkg, PkgConfig()).type
        for repo_db in self.db:
            if repo and repo_db.repo.name != repo:
                continue
            descriptions = repo_db.descriptions_by_source_type.get(st, {})
            if pkg in descriptions:
                return descriptions[pkg], PkgConfig(repo=repo_db.repo, type=st)
        return None

    def get_packages(self, pkgs: list[str]) -> AvailablePkgs:
        """All requested packages with their sources, and those not found."""
        available = AvailablePkgs()
        for pkg in pkgs:
            found = self.get_package(pkg)
            if found is None:
                available.packages.append(PkgDl())
                available.missing.append(pkg)
            else:
                desc, cfg = found
                available.packages.append(PkgDl(config=cfg, package=desc))
        return available

    def check_all_available(self, pkgs: list[str]) -> bool:
        """Whether every requested package can be found."""
        return not self.get_packages(pkgs).missing

    def all_package_names(self) -> list[str]:
        """The names of all packages in every repository, sorted, without duplicates."""
        return sorted(
            {
                name
                for repo_db in self.db
                for descriptions in repo_db.descriptions_by_source_type.values()
                for name in descriptions
            }
        )


def new_pkg_db(
    urls: list[RepoURL],
    dst: SourceType,
    cfgdb: InstallConfig | None,
    rv: RVersion,
    no_secure: bool = False,
) -> PkgNexus:
    """Fetch the package indexes of all repositories concurrently.

    The repositories keep the order of ``urls``. If any of them fails the
    last failure is raised.
    """
    cfgdb = cfgdb if cfgdb is not None else InstallConfig()
    if not urls:
        raise ValueError("Package database must contain at least one RepoUrl")
    with ThreadPoolExecutor(max_workers=len(urls)) as pool:
        futures = [
            pool.submit(new_repo_db, url, dst, cfgdb.repos.get(url.name), rv, no_secure)
            for url in urls
        ]
    dbs: list[RepoDb] = []
    last_error: Exception | None = None
    for url, future in zip(urls, futures):
        try:
            dbs.append(future.result())
        except Exception as exc:
            logger.error(
                "error downloading repo information: repo=%s url=%s error=%s",
                url.name,
                url.url,
                exc,
            )
            last_error = exc
    if last_error is not None:
        raise last_error
    return PkgNexus(db=dbs, config=cfgdb, default_source_type=dst)