"""Package dependencies with optional version constraints."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from .version import Version, parse_version


class Constraint(enum.IntEnum):
    """Version constraint on a dependency, least to most constraining."""

    NONE = 0
    GTE = 1
    GT = 2
    EQUALS = 3
    LTE = 4
    LT = 5

    def __str__(self) -> str:
        return _SYMBOLS.get(self, "Unknown constraint")


_SYMBOLS = {
    Constraint.GT: ">",
    Constraint.GTE: ">=",
    Constraint.LT: "<",
    Constraint.LTE: "<=",
    Constraint.EQUALS: "==",
}

# Checked in this order so that ">=" is found before ">" and "<=" before "<".
_OPERATORS = [
    ("==", Constraint.EQUALS, ""),
    (">=", Constraint.GTE, " "),
    (">", Constraint.GT, " "),
    ("<=", Constraint.LTE, " "),
    ("<", Constraint.LT, " "),
]


@dataclass(frozen=True)
class Dep:
    """A dependency on a named package."""

    name: str = ""
    version: Version = field(default_factory=Version)
    constraint: Constraint = Constraint.NONE

    def __str__(self) -> str:
        return f"{self.name} ({self.constraint} {self.version.string})"


def parse_dep(d: str) -> Dep:
    """Parse a dependency such as ``R (>= 3.5.0)`` or ``rlang``."""
    name, _, rest = d.partition("(")
    name = name.strip()
    if not _:
        return Dep(name=name)
    # Only the text up to the next "(" belongs to this dependency.
    pv = rest.split("(", 1)[0].replace(")", "", 1)
    for op, constraint, replacement in _OPERATORS:
        if op in pv:
            version = parse_version(pv.replace(op, replacement, 1).strip())
            return Dep(name=name, version=version, constraint=constraint)
    raise ValueError(f"unrecognised version constraint: {pv!r}")