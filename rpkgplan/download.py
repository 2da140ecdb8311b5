"""Downloading package files from repositories into a local cache."""

from __future__ import annotations

import dataclasses
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import requests

from .models import Download, PkgDl, PkgMap, RepoURL, RVersion, SourceType
from .platform import binary_name, cran_binary_url, default_type, repo_url_hash

logger = logging.getLogger(__name__)

MAX_CONCURRENT_DOWNLOADS = 10
_CHUNK_SIZE = 64 * 1024


class DownloadError(Exception):
    """A package file could not be downloaded."""


def package_download_url(d: PkgDl, dest: str | os.PathLike[str], rv: RVersion) -> str:
    """Where the file named like ``dest`` is found in the package's repository."""
    base = d.config.repo.url.removesuffix("/")
    filename = os.path.basename(os.fspath(dest))
    if d.config.type == SourceType.SOURCE:
        return f"{base}/src/contrib/{filename}"
    suffix = d.config.repo.suffix
    if suffix:
        return f"{base}/bin/{cran_binary_url(rv)}/{suffix}/contrib/{rv.major_minor()}/{filename}"
    return f"{base}/bin/{cran_binary_url(rv)}/contrib/{rv.major_minor()}/{filename}"


def _copy(chunks, dest: Path) -> int:
    size = 0
    try:
        with open(dest, "wb") as out:
            for chunk in chunks:
                out.write(chunk)
                size += len(chunk)
    except BaseException:
        dest.unlink(missing_ok=True)
        raise
    return size


def _read_file(path: str):
    with open(path, "rb") as f:
        while chunk := f.read(_CHUNK_SIZE):
            yield chunk


def download_package(
    d: PkgDl, dest: str | os.PathLike[str], rv: RVersion, no_secure: bool = False
) -> Download:
    """Download a package file to ``dest`` unless it is already there.

    ``no_secure`` turns off TLS certificate checks.
    """
    dest_path = Path(dest)
    if not dest_path.is_absolute():
        dest_path = Path(os.path.normpath(Path.cwd() / dest_path))
    name = d.package.package
    if dest_path.exists():
        logger.debug("package already downloaded: %s", name)
        return Download(path=str(dest_path), new=False, metadata=d, size=0)

    url = package_download_url(d, dest_path, rv)
    logger.info("downloading package %s", name)
    try:
        if url.startswith("http"):
            try:
                response = requests.get(url, stream=True, verify=not no_secure, timeout=300)
            except requests.RequestException as exc:
                logger.warning("error downloading package %s", name)
                raise DownloadError(f"error downloading {name} from {url}: {exc}") from exc
            with response:
                if response.status_code != 200:
                    logger.warning(
                        "bad server response for %s from %s: %s, body: %s",
                        name,
                        url,
                        response.status_code,
                        response.text,
                    )
                    raise DownloadError(
                        f"bad server response downloading {name} from {url}: "
                        f"{response.status_code} {response.reason}"
                    )
                size = _copy(response.iter_content(_CHUNK_SIZE), dest_path)
        else:
            if not os.path.isfile(url):
                raise DownloadError(f"missing package {name} at {url}")
            size = _copy(_read_file(url), dest_path)
    except OSError as exc:
        logger.warning("error downloading package %s, no file created: %s", name, exc)
        raise DownloadError(f"error writing {name} to {dest_path}: {exc}") from exc
    return Download(path=str(dest_path), new=True, metadata=d, size=size)


def download_packages(
    ds: list[PkgDl],
    base_dir: str | os.PathLike[str],
    rv: RVersion,
    no_secure: bool = False,
) -> PkgMap:
    """Download packages concurrently into ``base_dir``.

    Files go under ``<repo id>/src`` or ``<repo id>/binary/<R major.minor>``.
    Packages that fail to download are logged and left out of the result.
    """
    start = time.monotonic()
    base = Path(base_dir)
    result = PkgMap()
    repos: dict[str, RepoURL] = {d.config.repo.name: d.config.repo for d in ds}
    for repo in repos.values():
        repo_dir = base / repo_url_hash(repo)
        for sub in (repo_dir / "src", repo_dir / "binary" / rv.major_minor()):
            sub.mkdir(parents=True, exist_ok=True)
    logger.info("downloading required packages within directory %s", base)

    def fetch(d: PkgDl) -> None:
        if d.config.type == SourceType.DEFAULT:
            d = dataclasses.replace(d, config=dataclasses.replace(d.config, type=default_type()))
        name, version = d.package.package, d.package.version
        repo_dir = base / repo_url_hash(d.config.repo)
        if d.config.type == SourceType.BINARY:
            dest = repo_dir / "binary" / rv.major_minor() / binary_name(name, version)
        else:
            dest = repo_dir / "src" / f"{name}_{version}.tar.gz"
        started = time.monotonic()
        try:
            dl = download_package(d, dest, rv, no_secure)
        except DownloadError as exc:
            logger.warning("downloading failed for %s: %s", name, exc)
            return
        if dl.new:
            logger.debug(
                "download successful: %s in %.2fs, %.2f MB",
                name,
                time.monotonic() - started,
                dl.megabytes,
            )
        result.put(name, dl)

    with ThreadPoolExecutor(max_workers=MAX_CONCURRENT_DOWNLOADS) as pool:
        list(pool.map(fetch, ds))
    logger.info("all packages downloaded in %.2fs", time.monotonic() - start)
    return result