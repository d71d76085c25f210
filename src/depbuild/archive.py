"""Archive download and strip-one-level extraction."""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
import zipfile
from pathlib import Path, PurePosixPath

import requests

from .errors import DownloadFailed, ExtractFailed

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIXES = (
    ".tar.gz",
    ".tar.bz2",
    ".tar.xz",
    ".tgz",
    ".tbz2",
    ".txz",
    ".tar",
    ".zip",
)

DEFAULT_SUFFIX = ".tar.gz"

# (connect, read); reads may legitimately stall on slow mirrors
_TIMEOUT = (30, None)
_CHUNK_SIZE = 1 << 16
_TAIL_BYTES = 1 << 16


def archive_suffix(name: str) -> str | None:
    """Return the known archive suffix of ``name``, if any."""
    lowered = name.lower()
    for suffix in ARCHIVE_SUFFIXES:
        if lowered.endswith(suffix):
            return suffix
    return None


def download(url: str, dest: Path) -> None:
    """Fetch ``url`` into ``dest``; a partial file never survives a failure."""
    logger.info("Downloading %s -> %s", url, dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    partial = dest.with_name(dest.name + ".part")
    try:
        with requests.get(url, stream=True, timeout=_TIMEOUT) as response:
            response.raise_for_status()
            with partial.open("wb") as fh:
                for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                    fh.write(chunk)
    except (requests.RequestException, OSError) as exc:
        partial.unlink(missing_ok=True)
        raise DownloadFailed(f"{url}: {exc}") from exc
    partial.replace(dest)


def strip_component(name: str) -> str:
    """Drop the first path component of an archive member name."""
    parts = [p for p in PurePosixPath(name).parts if p not in ("", ".", "/")]
    return "/".join(parts[1:])


def _strip_filter(member: tarfile.TarInfo, path: str) -> tarfile.TarInfo | None:
    name = strip_component(member.name)
    if not name:
        return None
    updates = {"name": name}
    if member.islnk():
        linkname = strip_component(member.linkname)
        if not linkname:
            return None
        updates["linkname"] = linkname
    return tarfile.data_filter(member.replace(**updates, deep=False), path)


def _extract_tar(archive: Path, dest: Path) -> None:
    with tarfile.open(archive, "r:*") as tar:
        tar.extractall(dest, filter=_strip_filter)


def _extract_zip(archive: Path, dest: Path) -> None:
    root = dest.resolve()
    with zipfile.ZipFile(archive) as zf:
        for info in zf.infolist():
            name = strip_component(info.filename)
            if not name:
                continue
            target = (dest / name).resolve()
            if not target.is_relative_to(root):
                raise ExtractFailed(f"{archive}: member '{info.filename}' escapes {dest}")
            if info.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(info) as src, target.open("wb") as out:
                shutil.copyfileobj(src, out)
            mode = (info.external_attr >> 16) & 0o777
            if mode:
                target.chmod(mode)


def extract(archive: Path, dest: Path) -> None:
    """Unpack ``archive`` into ``dest``, discarding its top-level folder."""
    logger.info("Extracting %s -> %s", archive, dest)
    dest.mkdir(parents=True, exist_ok=True)
    try:
        if archive_suffix(archive.name) == ".zip":
            _extract_zip(archive, dest)
        else:
            _extract_tar(archive, dest)
    except (tarfile.TarError, zipfile.BadZipFile, EOFError, OSError) as exc:
        raise ExtractFailed(f"{archive}: {exc}") from exc


def tail(path: Path, lines: int = 10) -> list[str]:
    """Return the last ``lines`` lines of a file, decoded leniently.

    Only the final ``_TAIL_BYTES`` of the file are read.
    """
    try:
        with path.open("rb") as fh:
            size = fh.seek(0, os.SEEK_END)
            fh.seek(max(0, size - _TAIL_BYTES))
            data = fh.read()
    except OSError:
        return []
    return data.decode("utf-8", errors="replace").splitlines()[-lines:]
