"""Installed builds under the data root, plus the synthetic ``system`` build."""

from __future__ import annotations

import json
import re
import shutil
import tarfile
from collections.abc import Collection
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any

from llvmenv.config import SYSTEM_BUILD
from llvmenv.errors import ConfigError, NotFoundError
from llvmenv.fsutil import atomic_write_text
from llvmenv.process import run_captured

STAMP_NAME = "installed.json"
VERSION_PATTERN = re.compile(r"(\d+)\.(\d+)\.(\d+)")


@dataclass(frozen=True, slots=True)
class Build:
    name: str
    install_prefix: Path
    source_dir: Path | None = None
    build_dir: Path | None = None

    @property
    def is_system(self) -> bool:
        return self.name == SYSTEM_BUILD


class BuildRegistry:
    """Enumerates builds in ``<data>/<name>/`` directories.

    Each build owns ``source/`` (remote entries), ``build/`` (the external
    build tool's scratch tree), ``prefix/`` (install root), and an
    ``installed.json`` stamp written once installation succeeded.
    """

    def __init__(
        self,
        data_dir: str | Path,
        *,
        system_prefix: str | Path = "/usr",
        known_entries: Collection[str] = (),
    ) -> None:
        self.data_dir = Path(data_dir)
        self.system_prefix = Path(system_prefix)
        self.known_entries = frozenset(known_entries)

    def system(self) -> Build:
        return Build(name=SYSTEM_BUILD, install_prefix=self.system_prefix)

    def layout(self, name: str) -> Build:
        if name == SYSTEM_BUILD:
            return self.system()
        root = self._root(name)
        return Build(
            name=name,
            install_prefix=root / "prefix",
            source_dir=root / "source",
            build_dir=root / "build",
        )

    def list(self) -> list[Build]:
        builds = [self.system()]
        if self.data_dir.is_dir():
            names = sorted(
                child.name
                for child in self.data_dir.iterdir()
                if child.is_dir() and self.exists(child.name)
            )
            builds.extend(self.get(name) for name in names)
        return builds

    def exists(self, name: str) -> bool:
        if name == SYSTEM_BUILD:
            return True
        if not _is_safe_name(name):
            return False
        layout = self.layout(name)
        return (self._root(name) / STAMP_NAME).is_file() and layout.install_prefix.is_dir()

    def get(self, name: str) -> Build:
        if not self.exists(name):
            raise NotFoundError(
                "No such build.",
                hint="Build it with `llvmenv build-entry` or list builds with `llvmenv builds`.",
                context={"build": name},
            )
        layout = self.layout(name)
        if layout.is_system:
            return layout
        stamp = self.stamp(name)
        source = stamp.get("source_dir")
        return Build(
            name=name,
            install_prefix=layout.install_prefix,
            source_dir=Path(source) if isinstance(source, str) else layout.source_dir,
            build_dir=layout.build_dir,
        )

    def prefix_of(self, name: str) -> Path:
        if name == SYSTEM_BUILD:
            return self.system_prefix
        if self.exists(name) or name in self.known_entries:
            return self.layout(name).install_prefix
        raise NotFoundError(
            "Name matches no entry or build.",
            hint="List entries with `llvmenv entries`.",
            context={"build": name},
        )

    def stamp(self, name: str) -> dict[str, Any]:
        path = self._root(name) / STAMP_NAME
        try:
            parsed = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            raise ConfigError(
                "Build stamp is not valid JSON.",
                hint="Rebuild the entry to regenerate it.",
                context={"path": str(path)},
            ) from exc
        return parsed if isinstance(parsed, dict) else {}

    def mark_installed(
        self,
        name: str,
        *,
        fingerprint: str,
        source_dir: Path | None = None,
    ) -> Path:
        payload = {
            "name": name,
            "fingerprint": fingerprint,
            "install_prefix": str(self.layout(name).install_prefix),
            "source_dir": str(source_dir) if source_dir is not None else None,
        }
        return atomic_write_text(
            self._root(name) / STAMP_NAME,
            json.dumps(payload, indent=2, sort_keys=True) + "\n",
        )

    def remove(self, name: str, *, keep_source: bool = True) -> None:
        """Delete a build's build tree, install prefix, and stamp."""
        if name == SYSTEM_BUILD:
            raise ConfigError("The system build cannot be removed.")
        root = self._root(name)
        if not root.is_dir():
            raise NotFoundError("No such build.", context={"build": name})
        layout = self.layout(name)
        (root / STAMP_NAME).unlink(missing_ok=True)
        for directory in (layout.build_dir, layout.install_prefix):
            if directory is not None and directory.exists():
                shutil.rmtree(directory)
        if keep_source and layout.source_dir is not None and layout.source_dir.exists():
            return
        shutil.rmtree(root)

    def version(self, name: str) -> tuple[int, int, int]:
        """Probe ``llvm-config`` or ``clang`` inside the build's prefix."""
        prefix = self.get(name).install_prefix
        probes = (
            prefix / "bin" / "llvm-config",
            prefix / "bin" / "clang",
        )
        for tool in probes:
            if not tool.is_file():
                continue
            try:
                result = run_captured([str(tool), "--version"])
            except OSError:
                continue
            if result.ok:
                return parse_version("\n".join(result.tail))
        raise NotFoundError(
            "Neither llvm-config nor clang is installed in the build prefix.",
            context={"build": name, "prefix": str(prefix)},
        )

    def archive(self, name: str, dest_dir: Path) -> Path:
        """Pack the install prefix and stamp into ``<dest_dir>/<name>.tar.xz``."""
        if name == SYSTEM_BUILD:
            raise ConfigError("The system build cannot be archived.")
        build = self.get(name)
        dest_dir.mkdir(parents=True, exist_ok=True)
        archive_path = dest_dir / f"{name}.tar.xz"
        with tarfile.open(archive_path, "w:xz") as tar:
            tar.add(self._root(name) / STAMP_NAME, arcname=f"{name}/{STAMP_NAME}")
            tar.add(build.install_prefix, arcname=f"{name}/prefix")
        return archive_path

    def expand(self, archive: Path) -> Build:
        """Unpack an archive produced by :meth:`archive` into the data root."""
        if not archive.is_file():
            raise NotFoundError("Archive does not exist.", context={"path": str(archive)})
        with tarfile.open(archive, "r:*") as tar:
            tops = {_top_level(member.name) for member in tar.getmembers()}
            if len(tops) != 1:
                raise ConfigError(
                    "Archive must contain exactly one build directory.",
                    context={"path": str(archive)},
                )
            name = tops.pop()
            if not _is_safe_name(name) or name == SYSTEM_BUILD:
                raise ConfigError("Archive has an invalid build name.", context={"build": name})
            if self._root(name).exists():
                raise ConfigError(
                    "A build with this name already exists.",
                    hint="Remove it with `llvmenv remove` first.",
                    context={"build": name},
                )
            self.data_dir.mkdir(parents=True, exist_ok=True)
            tar.extractall(self.data_dir, filter="data")
        return self.get(name)

    def _root(self, name: str) -> Path:
        if not _is_safe_name(name):
            raise ConfigError("Invalid build name.", context={"build": name})
        return self.data_dir / name


def parse_version(output: str) -> tuple[int, int, int]:
    """Extract ``major.minor.patch`` from ``clang --version``-style output.

    >>> parse_version("clang version 6.0.1-svn331815-1~exp1 (branches/release_60)")
    (6, 0, 1)
    """
    match = VERSION_PATTERN.search(output)
    if match is None:
        raise NotFoundError("Failed to parse version output.", context={"output": output[:200]})
    major, minor, patch = (int(group) for group in match.groups())
    return major, minor, patch


def _top_level(member_name: str) -> str:
    parts = [part for part in PurePosixPath(member_name).parts if part != "."]
    return parts[0] if parts else ""


def _is_safe_name(name: str) -> bool:
    return bool(name) and name not in (".", "..") and "/" not in name and "\\" not in name
