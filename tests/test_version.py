import pytest

from rpkgplan.version import (
    Version,
    compare_version_strings,
    compare_versions,
    parse_version,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("1.0.0", Version(1, 0, 0, 0, 0, "1.0.0")),
        ("1.0-0", Version(1, 0, 0, 0, 0, "1.0-0")),
        ("0.1.2.9000", Version(0, 1, 2, 9000, 0, "0.1.2.9000")),
        ("1.2.3.4", Version(1, 2, 3, 4, 0, "1.2.3.4")),
        ("1-2-3-4", Version(1, 2, 3, 4, 0, "1-2-3-4")),
    ],
)
def test_parse_version(text, expected):
    assert parse_version(text) == expected


@pytest.mark.parametrize(
    "v1, v2, expected",
    [
        ("0.1.0", "0.1.1", -1),
        ("0.1.2", "0.1.1", 1),
        ("0.1.1", "0.1.1", 0),
        ("1.0.0", "0.1.1", 1),
        ("0.0.9", "0.1.0", -1),
        ("0.0.0.1", "0.0.0.0", 1),
        ("0.0.0.0", "0.0.0.0", 0),
    ],
)
def test_compare_version_strings(v1, v2, expected):
    assert compare_version_strings(v1, v2) == expected


def test_compare_versions_is_antisymmetric():
    a = parse_version("2.3.1")
    b = parse_version("2.3.1.11")
    assert compare_versions(a, b) == -compare_versions(b, a)
    assert compare_versions(a, b) == -1


def test_two_part_version_has_zero_patch():
    v = parse_version("3.5")
    assert (v.major, v.minor, v.patch) == (3, 5, 0)


def test_version_without_minor_is_rejected():
    with pytest.raises(ValueError):
        parse_version("1")