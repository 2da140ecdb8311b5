"""R package version numbers: parsing and comparison."""

from __future__ import annotations

import re
from dataclasses import dataclass

_SEPARATOR = re.compile(r"[.-]")
_INTEGER = re.compile(r"[+-]?\d+")


@dataclass(frozen=True)
class Version:
    """A package version split into up to five numeric parts.

    The original text is kept in ``string``.
    """

    major: int = 0
    minor: int = 0
    patch: int = 0
    dev: int = 0
    other: int = 0
    string: str = ""

    def _key(self) -> tuple[int, int, int, int, int]:
        return (self.major, self.minor, self.patch, self.dev, self.other)


def _to_int(text: str) -> int:
    """Convert a version part to an int, treating anything non-numeric as 0."""
    return int(text) if _INTEGER.fullmatch(text) else 0


def parse_version(v: str) -> Version:
    """Parse a version such as ``1.2-3`` into a :class:`Version`.

    Parts may be separated by ``.`` or ``-``. At most four parts are split
    off; a non-numeric part counts as 0.
    """
    parts = _SEPARATOR.split(v, maxsplit=3)
    if len(parts) < 2:
        raise ValueError(f"version needs at least a major and minor part: {v!r}")
    numbers = [_to_int(part) for part in parts]
    numbers.extend([0] * (5 - len(numbers)))
    major, minor, patch, dev, other = numbers[:5]
    return Version(major, minor, patch, dev, other, v)


def compare_versions(v1: Version, v2: Version) -> int:
    """Return -1, 0 or 1 as ``v1`` is lower than, equal to or higher than ``v2``."""
    k1, k2 = v1._key(), v2._key()
    return (k1 > k2) - (k1 < k2)


def compare_version_strings(v1: str, v2: str) -> int:
    """Compare two version strings; see :func:`compare_versions`."""
    return compare_versions(parse_version(v1), parse_version(v2))