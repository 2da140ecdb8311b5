"""R package DESCRIPTION records and the control-file format they use."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .dependency import Dep, parse_dep

_LIST_STRIP = "\n\r\t "


@dataclass
class Desc:
    """The metadata of one R package."""

    package: str = ""
    source: str = ""
    version: str = ""
    maintainer: str = ""
    description: str = ""
    license: str = ""
    md5sum: str = ""
    needs_compilation: bool = False
    path: str = ""
    priority: str = ""
    remotes: list[str] = field(default_factory=list)
    original_repository: str = ""
    repository: str = ""
    imports: dict[str, Dep] = field(default_factory=dict)
    suggests: dict[str, Dep] = field(default_factory=dict)
    depends: dict[str, Dep] = field(default_factory=dict)
    linking_to: dict[str, Dep] = field(default_factory=dict)
    pkgr_version: str = ""
    pkgr_install_type: str = ""
    pkgr_repository_url: str = ""

    def combined_dependencies(self, suggests: bool) -> dict[str, Dep]:
        """Imports and LinkingTo, plus Suggests when asked for."""
        combined = {**self.imports, **self.linking_to}
        if suggests:
            combined.update(self.suggests)
        return combined


def parse_control(text: str | bytes) -> dict[str, str]:
    """Parse the first paragraph of a control-format text into its fields.

    Continuation lines (starting with a space or tab) are joined to the
    previous field with a newline. Lines starting with ``#`` are comments.
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    fields: dict[str, str] = {}
    current: str | None = None
    for line in text.replace("\r\n", "\n").split("\n"):
        if not line.strip():
            if fields:
                break
            continue
        if line.startswith("#"):
            continue
        if line[0] in " \t":
            if current is None:
                raise ValueError(f"continuation line without a field: {line!r}")
            fields[current] += "\n" + line.strip()
            continue
        key, sep, value = line.partition(":")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"malformed control line: {line!r}")
        current = key
        fields[key] = value.strip()
    return fields


def _split_list(value: str) -> list[str]:
    items = (item.strip(_LIST_STRIP) for item in value.split(","))
    return [item for item in items if item]


def _dep_map(value: str) -> dict[str, Dep]:
    deps = (parse_dep(item) for item in _split_list(value))
    return {dep.name: dep for dep in deps}


def desc_from_fields(fields: dict[str, str]) -> Desc:
    """Build a :class:`Desc` from parsed control fields.

    Field names are matched without regard to case.
    """
    lookup = {key.lower(): value for key, value in fields.items()}

    def get(name: str) -> str:
        return lookup.get(name.lower(), "")

    return Desc(
        package=get("Package"),
        source=get("Source"),
        version=get("Version"),
        maintainer=get("Maintainer"),
        description=get("Description"),
        license=get("License"),
        md5sum=get("MD5sum"),
        needs_compilation=get("NeedsCompilation").lower() == "yes",
        path=get("Path"),
        priority=get("Priority"),
        remotes=_split_list(get("Remotes")),
        repository=get("Repository"),
        imports=_dep_map(get("Imports")),
        suggests=_dep_map(get("Suggests")),
        depends=_dep_map(get("Depends")),
        linking_to=_dep_map(get("LinkingTo")),
        pkgr_version=get("PkgrVersion"),
        pkgr_install_type=get("PkgrInstallType"),
        pkgr_repository_url=get("PkgrRepositoryURL"),
    )


def parse_desc(text: str | bytes) -> Desc:
    """Parse a DESCRIPTION record from text."""
    return desc_from_fields(parse_control(text))


def read_desc(path: str | os.PathLike[str]) -> Desc:
    """Read and parse a DESCRIPTION file."""
    with open(path, "rb") as f:
        return parse_desc(f.read())