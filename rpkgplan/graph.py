"""Dependency graphs of R packages, layered resolution and installation plans."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .description import Desc
from .models import OutdatedPackage, PkgDl
from .nexus import PkgNexus

logger = logging.getLogger(__name__)

DEFAULT_PACKAGES: dict[str, str] = {
    "base": "base",
    "compiler": "base",
    "datasets": "base",
    "graphics": "base",
    "grDevices": "base",
    "grid": "base",
    "methods": "base",
    "parallel": "base",
    "splines": "base",
    "stats": "base",
    "stats4": "base",
    "tcltk": "base",
    "tools": "base",
    "utils": "base",
    "Matrix": "recommended",
    "boot": "recommended",
    "class": "recommended",
    "cluster": "recommended",
    "codetools": "recommended",
    "foreign": "recommended",
    "KernSmooth": "recommended",
    "lattice": "recommended",
    "MASS": "recommended",
    "mgcv": "recommended",
    "nlme": "recommended",
    "nnet": "recommended",
    "rpart": "recommended",
    "spatial": "recommended",
    "survival": "recommended",
}


class CircularDependencyError(Exception):
    """The graph cannot be layered because some packages depend on each other.

    ``resolved`` holds the layers found before the cycle was hit.
    """

    def __init__(self, resolved: list[list[str]]) -> None:
        super().__init__("Circular dependency found")
        self.resolved = resolved


@dataclass
class Node:
    """A package in the graph together with the packages it requires."""

    name: str
    deps: list[str] = field(default_factory=list)


Graph = dict[str, Node]


@dataclass
class PkgDeps:
    """Which kinds of dependencies to install for a package."""

    depends: bool = False
    imports: bool = False
    suggests: bool = False
    linking_to: bool = False
    no_recommended: bool = False


@dataclass
class InstallDeps:
    """Dependency settings per package, with a default for all others."""

    deps: dict[str, PkgDeps] = field(default_factory=dict)
    default: PkgDeps = field(default_factory=PkgDeps)


@dataclass
class AdditionalPkg:
    """A package installed from a local folder at the end of the installation."""

    install_path: str = ""
    origin_path: str = ""
    type: str = ""


def default_install_deps() -> InstallDeps:
    """Depends, Imports and LinkingTo for every package, but not Suggests."""
    return InstallDeps(
        default=PkgDeps(
            depends=True,
            imports=True,
            linking_to=True,
            suggests=False,
            no_recommended=False,
        )
    )


def all_pkg_deps() -> PkgDeps:
    """Every kind of dependency, Suggests included."""
    return PkgDeps(depends=True, imports=True, linking_to=True, suggests=True)


def is_excluded_package(pkg: str, no_recommended: bool) -> bool:
    """Whether ``pkg`` ships with R and so is never installed.

    Recommended packages are only excluded when ``no_recommended`` is set.
    """
    pkg_type = DEFAULT_PACKAGES.get(pkg)
    if pkg_type is None:
        return False
    if pkg_type == "recommended" and not no_recommended:
        return False
    return True


def display_graph(graph: Graph) -> None:
    """Print every edge of the graph as ``package -> dependency``."""
    for node in graph.values():
        for dep in node.deps:
            print(f"{node.name} -> {dep}")


def resolve_layers(graph: Graph, no_recommended: bool) -> list[list[str]]:
    """Split the graph into layers that depend only on earlier layers.

    Packages within a layer can be installed in parallel. Each layer is
    sorted by name. Raises :class:`CircularDependencyError` when no
    further layer can be formed.
    """
    remaining: dict[str, set[str]] = {
        name: {dep for dep in node.deps if not is_excluded_package(dep, no_recommended)}
        for name, node in graph.items()
    }
    resolved: list[list[str]] = []
    while remaining:
        ready = sorted(name for name, deps in remaining.items() if not deps)
        if not ready:
            raise CircularDependencyError(resolved)
        for name in ready:
            del remaining[name]
        resolved.append(ready)
        ready_set = set(ready)
        for deps in remaining.values():
            deps -= ready_set
    return resolved


def _available_deps(
    owner: str, kind: str, deps: dict, config: PkgDeps, nexus: PkgNexus
) -> list[str]:
    reqs = []
    for name in deps:
        if nexus.get_package(name) is not None and not is_excluded_package(
            name, config.no_recommended
        ):
            reqs.append(name)
        else:
            logger.debug("skipping %s dep %s of %s", kind, name, owner)
    return reqs


def append_to_graph(
    graph: Graph, d: Desc, dependency_configs: InstallDeps, nexus: PkgNexus
) -> None:
    """Add ``d`` and, recursively, the packages it requires to ``graph``.

    Only dependencies found in ``nexus`` are followed. Suggested packages
    are added to the graph without becoming requirements of ``d``.
    """
    config = dependency_configs.deps.get(d.package, dependency_configs.default)
    reqs: list[str] = []
    if config.depends:
        reqs += _available_deps(d.package, "Depends", d.depends, config, nexus)
    if config.imports:
        reqs += _available_deps(d.package, "Imports", d.imports, config, nexus)
    if config.linking_to:
        reqs += _available_deps(d.package, "LinkingTo", d.linking_to, config, nexus)
    graph[d.package] = Node(d.package, reqs)

    follow = list(d.suggests) if config.suggests else []
    follow += reqs
    for name in follow:
        if name == "R" or name in graph:
            continue
        found = nexus.get_package(name)
        if found is not None:
            append_to_graph(graph, found[0], dependency_configs, nexus)


@dataclass
class InstallPlan:
    """What is to be installed, in what order and from where."""

    starting_packages: list[str] = field(default_factory=list)
    dep_db: dict[str, list[str]] = field(default_factory=dict)
    package_downloads: list[PkgDl] = field(default_factory=list)
    outdated_packages: list[OutdatedPackage] = field(default_factory=list)
    installed_packages: dict[str, Desc] = field(default_factory=dict)
    additional_package_sources: dict[str, AdditionalPkg] = field(default_factory=dict)
    create_library: bool = False
    update: bool = False

    def invert_dependencies(self) -> dict[str, list[str]]:
        """For each package, the sorted names of the packages that depend on it."""
        inverted: dict[str, list[str]] = {}
        for pkg, deps in self.dep_db.items():
            for dep in deps:
                inverted.setdefault(dep, []).append(pkg)
        return {dep: sorted(pkgs) for dep, pkgs in inverted.items()}

    def pack(self, nexus: PkgNexus) -> None:
        """Fill ``package_downloads`` for the starting packages and all others."""
        downloads = []
        for name in [*self.starting_packages, *self.dep_db]:
            found = nexus.get_package(name)
            if found is None:
                downloads.append(PkgDl())
            else:
                desc, cfg = found
                downloads.append(PkgDl(config=cfg, package=desc))
        self.package_downloads = downloads

    def all_packages(self) -> list[str]:
        """Starting packages, packages with dependencies, then additional packages."""
        return [
            *self.starting_packages,
            *self.dep_db,
            *self.additional_package_sources,
        ]

    def num_packages_to_install(self) -> int:
        """How many packages an installation would install or update.

        Required packages already installed are not counted, except those
        from additional sources, which are always installed. Outdated
        packages are added when updating.
        """
        required = self.all_packages()
        required_set = set(required)
        installed_required = sum(
            1
            for pkg in self.installed_packages
            if pkg in required_set and pkg not in self.additional_package_sources
        )
        to_update = len(self.outdated_packages) if self.update else 0
        return len(required) - installed_required + to_update