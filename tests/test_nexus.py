import platformdirs
import pytest

from rpkgplan.description import Desc
from rpkgplan.models import InstallConfig, PkgConfig, RepoURL, RVersion, SourceType
from rpkgplan.nexus import PkgNexus, new_pkg_db, set_type
from rpkgplan.repodb import RepoDb

NEW_REPO = RepoURL(url="https://mpn.metworx.com/snapshots/stable/2023-03-13", name="MPN_2023_03_13")
OLD_REPO = RepoURL(url="https://mpn.metworx.com/snapshots/stable/2022-06-15", name="MPN_2022_06_15")


def _repo_db(repo, packages, st=SourceType.SOURCE):
    return RepoDb(
        descriptions_by_source_type={st: {p: Desc(package=p, version=v) for p, v in packages.items()}},
        repo=repo,
        default_source_type=SourceType.SOURCE,
    )


def _nexus(*dbs):
    return PkgNexus(db=list(dbs), config=InstallConfig(), default_source_type=SourceType.SOURCE)


def test_set_type():
    cfg = PkgConfig()
    set_type(cfg, "source")
    assert cfg.type == SourceType.SOURCE
    set_type(cfg, "binary")
    assert cfg.type == SourceType.BINARY
    with pytest.raises(ValueError, match="^invalid source type: invalid$"):
        set_type(cfg, "invalid")


def test_set_type_ignores_case():
    cfg = PkgConfig()
    set_type(cfg, "BiNaRy")
    assert cfg.type == SourceType.BINARY


def test_set_package_type():
    nexus = _nexus(_repo_db(NEW_REPO, {"mrgsolve": "1.0.9"}))
    _, cfg = nexus.get_package("mrgsolve")
    assert cfg.type == SourceType.SOURCE

    nexus.set_package_type("mrgsolve", "binary")
    assert nexus.config.packages["mrgsolve"].type == SourceType.BINARY
    nexus.set_package_type("mrgsolve", "source")
    assert nexus.config.packages["mrgsolve"].type == SourceType.SOURCE
    with pytest.raises(ValueError, match="^invalid source type: invalid$"):
        nexus.set_package_type("mrgsolve", "invalid")


def test_set_repo():
    nexus = _nexus(
        _repo_db(NEW_REPO, {"mrgsolve": "1.0.9"}),
        _repo_db(OLD_REPO, {"mrgsolve": "1.0.4"}),
    )
    desc, cfg = nexus.get_package("mrgsolve")
    assert cfg.repo.name == "MPN_2023_03_13"
    assert desc.version == "1.0.9"

    nexus.set_package_repo("mrgsolve", "MPN_2022_06_15")
    desc, cfg = nexus.get_package("mrgsolve")
    assert cfg.repo.name == "MPN_2022_06_15"
    assert desc.version == "1.0.4"


def test_set_repo_unknown():
    nexus = _nexus(_repo_db(NEW_REPO, {"mrgsolve": "1.0.9"}))
    with pytest.raises(ValueError, match="no repo: nowhere, detected containing package: mrgsolve"):
        nexus.set_package_repo("mrgsolve", "nowhere")


def test_get_package_respects_configured_type():
    nexus = _nexus(_repo_db(NEW_REPO, {"mrgsolve": "1.0.9"}))
    nexus.set_package_type("mrgsolve", "binary")
    assert nexus.get_package("mrgsolve") is None


def test_get_package_uses_repo_default_type():
    binary_db = RepoDb(
        descriptions_by_source_type={SourceType.BINARY: {"R6": Desc(package="R6", version="2.5.0")}},
        repo=NEW_REPO,
        default_source_type=SourceType.BINARY,
    )
    nexus = _nexus(binary_db)
    _, cfg = nexus.get_package("R6")
    assert cfg.type == SourceType.BINARY


def test_get_package_from_repo():
    nexus = _nexus(
        _repo_db(NEW_REPO, {"mrgsolve": "1.0.9"}),
        _repo_db(OLD_REPO, {"mrgsolve": "1.0.4"}),
    )
    nexus.set_package_type("mrgsolve", "source")
    desc, cfg = nexus.get_package_from_repo("mrgsolve", "MPN_2022_06_15")
    assert desc.version == "1.0.4"
    assert cfg.repo == OLD_REPO
    desc, _ = nexus.get_package_from_repo("mrgsolve", "")
    assert desc.version == "1.0.9"
    assert nexus.get_package_from_repo("mrgsolve", "nowhere") is None


def test_get_packages_and_missing():
    nexus = _nexus(_repo_db(NEW_REPO, {"R6": "2.5.0", "cli": "3.6.1"}))
    available = nexus.get_packages(["R6", "ghost", "cli"])
    assert available.missing == ["ghost"]
    assert [p.package.package for p in available.packages] == ["R6", "", "cli"]
    assert nexus.check_all_available(["R6", "cli"]) is True
    assert nexus.check_all_available(["R6", "ghost"]) is False


def test_all_package_names_deduplicates():
    nexus = _nexus(
        _repo_db(NEW_REPO, {"R6": "2.5.0", "cli": "3.6.1"}),
        _repo_db(OLD_REPO, {"R6": "2.4.0", "glue": "1.6.0"}),
    )
    assert nexus.all_package_names() == ["R6", "cli", "glue"]


def test_new_pkg_db_requires_urls():
    with pytest.raises(ValueError, match="at least one RepoUrl"):
        new_pkg_db([], SourceType.SOURCE, InstallConfig(), RVersion(4, 1, 3))


def test_new_pkg_db_from_local_repos(tmp_path, monkeypatch):
    monkeypatch.setattr(platformdirs, "user_cache_dir", lambda *a, **k: str(tmp_path / "cache"))
    repos = []
    for name, version in (("first", "1.0.9"), ("second", "1.0.4")):
        contrib = tmp_path / name / "src" / "contrib"
        contrib.mkdir(parents=True)
        (contrib / "PACKAGES").write_text(
            f"Package: mrgsolve\nVersion: {version}\nDepends: R (>= 3.5.0)\n\n"
            "Package: future\nVersion: 1.0\nDepends: R (>= 9.0)\n"
        )
        repos.append(RepoURL(url=str(tmp_path / name), name=name))

    nexus = new_pkg_db(repos, SourceType.SOURCE, InstallConfig(), RVersion(4, 1, 3))
    assert [db.repo.name for db in nexus.db] == ["first", "second"]
    desc, cfg = nexus.get_package("mrgsolve")
    assert desc.version == "1.0.9"
    assert cfg.repo.name == "first"
    assert nexus.get_package("future") is None