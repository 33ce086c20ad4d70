"""Tarball download and extraction into a source directory."""

from __future__ import annotations

import lzma
import os
import shutil
import tarfile
import tempfile
import zlib
from pathlib import Path
from typing import BinaryIO
from urllib.error import URLError
from urllib.parse import urlparse
from urllib.request import urlopen

from llvmenv.entry.model import FetchSpec
from llvmenv.errors import FetchError
from llvmenv.observability import ProgressEvent, ProgressObserver, ignore_progress

CHUNK_SIZE = 1 << 20
DOWNLOAD_TIMEOUT = 60.0

_ARCHIVE_ERRORS = (tarfile.TarError, EOFError, lzma.LZMAError, zlib.error, OSError)


def fetch_tarball(
    spec: FetchSpec,
    dest: Path,
    *,
    name: str,
    observer: ProgressObserver = ignore_progress,
) -> Path:
    """Download and unpack ``spec.url`` into ``dest``.

    An existing ``dest`` is returned as is. On any failure the temporary
    download and the staging directory are removed and ``dest`` is not
    created.
    """
    if dest.exists():
        return dest

    dest.parent.mkdir(parents=True, exist_ok=True)
    fd, raw_tmp = tempfile.mkstemp(prefix=f".{dest.name}-", suffix=".download", dir=str(dest.parent))
    archive = Path(raw_tmp)
    staging: Path | None = None
    try:
        with os.fdopen(fd, "wb") as out:
            _download(spec.url, out, name=name, observer=observer)
        if archive.stat().st_size == 0:
            raise FetchError(
                "Downloaded archive is empty.",
                context={"entry": name, "url": spec.url},
            )
        staging = Path(tempfile.mkdtemp(prefix=f".{dest.name}-extract-", dir=str(dest.parent)))
        _extract(archive, staging, name=name, url=spec.url)
        shutil.move(str(hoisted_root(staging)), dest)
    finally:
        archive.unlink(missing_ok=True)
        if staging is not None and staging.exists():
            shutil.rmtree(staging, ignore_errors=True)
    return dest


def hoisted_root(directory: Path) -> Path:
    """Return the single top-level directory of an extracted tree, if there is one."""
    children = list(directory.iterdir())
    if len(children) == 1 and children[0].is_dir() and not children[0].is_symlink():
        return children[0]
    return directory


def filename_from_url(url: str) -> str:
    segments = [segment for segment in urlparse(url).path.split("/") if segment]
    if not segments:
        raise FetchError("URL has no file name.", context={"url": url}, retryable=False)
    return segments[-1]


def _download(url: str, out: BinaryIO, *, name: str, observer: ProgressObserver) -> None:
    label = filename_from_url(url)
    try:
        with urlopen(url, timeout=DOWNLOAD_TIMEOUT) as response:  # noqa: S310 - user-configured source
            length = response.headers.get("Content-Length")
            total = int(length) if length and length.isdigit() else None
            received = 0
            observer(ProgressEvent("download", name, f"Download: {url}", received, total))
            while True:
                chunk = response.read(CHUNK_SIZE)
                if not chunk:
                    break
                out.write(chunk)
                received += len(chunk)
                observer(ProgressEvent("download", name, label, received, total))
    except (URLError, OSError) as exc:
        raise FetchError(
            "Download failed.",
            hint="Check network connectivity and the entry URL.",
            context={"entry": name, "url": url, "cause": str(exc)},
        ) from exc


def _extract(archive: Path, dest: Path, *, name: str, url: str) -> None:
    try:
        with tarfile.open(archive, "r:*") as tar:
            tar.extractall(dest, filter="data")
    except _ARCHIVE_ERRORS as exc:
        raise FetchError(
            "Archive is corrupt or truncated.",
            hint="The download will be retried; persistent failures mean a bad URL or mirror.",
            context={"entry": name, "url": url, "cause": str(exc)},
        ) from exc
