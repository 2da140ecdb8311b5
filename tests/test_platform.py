import pytest

from rpkgplan.models import RepoType, RepoURL, RVersion, SourceType
from rpkgplan.platform import (
    binary_name,
    cran_binary_url,
    default_type,
    linux_binary_uri,
    parse_os_release,
    read_os_release,
    repo_url_hash,
    supports_binary,
)

UBUNTU = """NAME="Ubuntu"
VERSION="20.04.2 LTS (Focal Fossa)"
ID=ubuntu
ID_LIKE=debian
PRETTY_NAME="Ubuntu 20.04.2 LTS"
VERSION_ID="20.04"
VERSION_CODENAME=focal
UBUNTU_CODENAME=focal
"""

CENTOS = """NAME="CentOS Linux"
VERSION="7 (Core)"
ID="centos"
ID_LIKE="rhel fedora"
VERSION_ID="7"
PRETTY_NAME="CentOS Linux 7 (Core)"
"""


@pytest.mark.parametrize(
    "repo, expected",
    [
        (RepoURL(name="MPN", url="https://mpn.metworx.com/snapshots/stable/2023-05-14"), "MPN-8520d4ecc108"),
        (RepoURL(name="CRAN", url="https://cran.rstudio.com"), "CRAN-739227e5b53e"),
        (RepoURL(name="gh_dev", url="https://metrumresearchgroup.github.io/rpkgs/gh_dev"), "gh_dev-a1f00a415a5e"),
    ],
)
def test_repo_url_hash(repo, expected):
    assert repo_url_hash(repo) == expected


@pytest.mark.parametrize(
    "system, expected",
    [
        ("darwin", SourceType.BINARY),
        ("windows", SourceType.BINARY),
        ("linux", SourceType.SOURCE),
        ("freebsd", SourceType.SOURCE),
    ],
)
def test_default_type(system, expected):
    assert default_type(system) is expected


@pytest.mark.parametrize(
    "repo_type, system, expected",
    [
        (RepoType.CRAN, "darwin", True),
        (RepoType.MPN, "windows", True),
        (RepoType.CRAN, "linux", False),
        (RepoType.RSPM, "linux", False),
        (RepoType.MPN, "freebsd", False),
    ],
)
def test_supports_binary(repo_type, system, expected):
    assert supports_binary(repo_type, system) is expected


@pytest.mark.parametrize(
    "system, expected",
    [
        ("darwin", "R6_2.5.0.tgz"),
        ("windows", "R6_2.5.0.zip"),
        ("freebsd", ""),
    ],
)
def test_binary_name(system, expected):
    assert binary_name("R6", "2.5.0", system) == expected


@pytest.mark.parametrize(
    "rv, system, expected",
    [
        (RVersion(4, 1, 3), "darwin", "macosx"),
        (RVersion(3, 6, 1), "darwin", "macosx/el-capitan"),
        (RVersion(4, 1, 3), "windows", "windows"),
        (RVersion(4, 1, 3), "freebsd", ""),
    ],
)
def test_cran_binary_url(rv, system, expected):
    assert cran_binary_url(rv, system) == expected


def test_parse_os_release_ubuntu():
    release = parse_os_release(UBUNTU)
    assert release.name == "Ubuntu"
    assert release.id == "ubuntu"
    assert release.id_like == "debian"
    assert release.version_id == "20.04"
    assert release.version_codename == "focal"
    assert release.ubuntu_codename == "focal"
    assert release.pretty_name == "Ubuntu 20.04.2 LTS"


def test_parse_os_release_lts_release():
    assert parse_os_release(CENTOS).lts_release == "7"


def test_parse_os_release_ignores_comments_and_blanks():
    release = parse_os_release("# comment\n\nID=debian\nVERSION_ID=\"11\"\n")
    assert release.id == "debian"
    assert release.version_id == "11"
    assert release.name == ""


def test_parse_os_release_rejects_malformed_line():
    with pytest.raises(ValueError):
        parse_os_release("ID=ubuntu\nnot a field\n")


def test_read_os_release(tmp_path):
    path = tmp_path / "os-release"
    path.write_text(CENTOS, encoding="utf-8")
    release = read_os_release(path)
    assert release.id == "centos"
    assert release.version_id == "7"


def test_read_os_release_missing(tmp_path):
    with pytest.raises(OSError):
        read_os_release(tmp_path / "missing")


@pytest.mark.parametrize(
    "text, expected",
    [
        (UBUNTU, "ubuntu/focal"),
        (CENTOS, "centos/7"),
        ('ID="rhel"\nVERSION_ID="8.4"\n', "centos/8"),
        ("ID=debian\nVERSION_ID=11\n", "debian/11"),
        ("NAME=Unknown\n", ""),
    ],
)
def test_linux_binary_uri(text, expected):
    assert linux_binary_uri(parse_os_release(text)) == expected