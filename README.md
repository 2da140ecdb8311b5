# rpkgplan

A library for working with CRAN-like R package repositories. It can:

- parse R `DESCRIPTION` files and repository `PACKAGES` indexes
- parse and compare R package version strings and dependency constraints
- build a package database from one or more repositories, with a local cache
- resolve a dependency graph into install layers, where each layer depends only
  on the layers before it
- download source or binary package archives into a per-repository cache

## Installation

```
pip install rpkgplan
```

## Modules

- `rpkgplan.version`: `Version`, `parse_version`, `compare_versions`,
  `compare_version_strings`
- `rpkgplan.dependency`: `Constraint`, `Dep`, `parse_dep`
- `rpkgplan.description`: `Desc`, `parse_control`, `desc_from_fields`,
  `parse_desc`, `read_desc`
- `rpkgplan.models`: shared data types such as `RepoURL`, `RVersion`,
  `SourceType`, `RepoType`, `PkgConfig`, `InstallConfig`, `PkgDl`, `Download`
  and the thread-safe `PkgMap`
- `rpkgplan.platform`: `default_type`, `supports_binary`, `binary_name`,
  `cran_binary_url`, `linux_binary_uri`, `read_os_release`,
  `parse_os_release`, `repo_url_hash`
- `rpkgplan.repodb`: `RepoDb`, `new_repo_db`, `packages_file_url`,
  `parse_packages_file`, `check_r_version_compatibility`, `RepoFetchError`
- `rpkgplan.nexus`: `PkgNexus`, `new_pkg_db`, `set_type`
- `rpkgplan.download`: `download_package`, `download_packages`,
  `package_download_url`, `DownloadError`
- `rpkgplan.graph`: `append_to_graph`, `resolve_layers`, `InstallPlan`,
  `default_install_deps`, `all_pkg_deps`, `CircularDependencyError`

## Usage

### Versions and dependencies

```python
from rpkgplan.version import parse_version, compare_version_strings
from rpkgplan.dependency import parse_dep

parse_version("0.1.2.9000")
# Version(major=0, minor=1, patch=2, dev=9000, other=0, string='0.1.2.9000')
compare_version_strings("0.1.0", "0.1.1")    # -1
str(parse_dep("R (>= 3.6)"))                 # 'R (>= 3.6)'
```

`parse_dep` raises `ValueError` for a constraint it does not recognise.

### DESCRIPTION files

```python
from rpkgplan.description import read_desc

desc = read_desc("path/to/DESCRIPTION")
print(desc.package, desc.version)
print(sorted(desc.combined_dependencies(suggests=False)))
```

### Package database and layered install order

```python
from rpkgplan.models import RepoURL, InstallConfig, RVersion, SourceType
from rpkgplan.nexus import new_pkg_db
from rpkgplan.graph import default_install_deps, append_to_graph, resolve_layers

repos = [RepoURL(url="https://cran.example.com", name="CRAN")]
nexus = new_pkg_db(repos, SourceType.SOURCE, InstallConfig(), RVersion(4, 1, 3))

graph = {}
found = nexus.get_package("R6")        # (Desc, PkgConfig) or None
if found is not None:
    pkg, cfg = found
    append_to_graph(graph, pkg, default_install_deps(), nexus)
for layer in resolve_layers(graph, no_recommended=False):
    print(layer)
```

Repositories are searched in the order given. `nexus.set_package_repo` and
`nexus.set_package_type` pin a package to a repository or to source/binary;
both raise `ValueError` on an unknown repository or type. `new_pkg_db` raises
the last error if any repository cannot be fetched. Packages that ship with R
are left out of the graph; recommended packages are left out only when
`no_recommended` is true. `resolve_layers` raises `CircularDependencyError` if
packages depend on each other.

A repository can also be a local directory laid out like CRAN
(`src/contrib/PACKAGES`). Repository indexes are cached as JSON under the user
cache directory (`rpkgplan/r_packagedb_caches`) for an hour; set
`R_AVAILABLE_PACKAGES_CACHE_CONTROL_MAX_AGE` (in seconds) to change that.
Packages whose `Depends: R (...)` excludes the given R version are dropped
from the index.

### Downloading

```python
from rpkgplan.download import download_packages

downloads = download_packages(
    nexus.get_packages(["R6"]).packages, "pkgcache", RVersion(4, 1, 3)
)
print(downloads.get("R6"))
```

Files go under `<name>-<url hash>/src` or
`<name>-<url hash>/binary/<R major.minor>` inside the base directory. Files
already present are not downloaded again. Failed downloads are logged and left
out of the result; `download_package` raises `DownloadError` instead.
Passing `no_secure=True` turns off TLS certificate checks.

## What this package does not do

- It has no command-line tool and reads no configuration file.
- It does not install packages into an R library or run R; `InstallPlan`
  only records what would be installed and can count it.
- It does not work out which installed packages are outdated; the
  `outdated_packages` of an `InstallPlan` are filled in by the caller.

## Running the tests

```
pip install -e ".[test]"
pytest
```