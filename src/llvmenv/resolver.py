"""Active-build selection: directory-local marker, global marker, or ``system``.

Precedence is nearest ``.llvmenv`` in the working directory or any ancestor,
then the global marker in the config root, then the ``system`` default. A
marker that names a build which no longer exists is reported as stale; the
resolver never falls back silently.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from llvmenv.config import MARKER_NAME, SYSTEM_BUILD
from llvmenv.errors import ConfigError, NotFoundError, StaleSelectionError
from llvmenv.fsutil import atomic_write_text
from llvmenv.registry import BuildRegistry


class SelectionSource(StrEnum):
    LOCAL = "local"
    GLOBAL = "global"
    DEFAULT = "default"


@dataclass(frozen=True, slots=True)
class Resolution:
    name: str
    prefix: Path
    source: SelectionSource
    marker: Path | None = None


class PrefixResolver:
    def __init__(self, registry: BuildRegistry, *, global_marker: Path) -> None:
        self.registry = registry
        self.global_marker = global_marker

    def resolve(self, cwd: str | Path) -> Resolution:
        marker = find_local_marker(cwd)
        if marker is not None:
            return self._resolution(read_marker(marker), SelectionSource.LOCAL, marker)
        if self.global_marker.is_file():
            return self._resolution(
                read_marker(self.global_marker),
                SelectionSource.GLOBAL,
                self.global_marker,
            )
        return Resolution(
            name=SYSTEM_BUILD,
            prefix=self.registry.system_prefix,
            source=SelectionSource.DEFAULT,
        )

    def set_global(self, name: str) -> Path:
        self._ensure_selectable(name)
        return atomic_write_text(self.global_marker, name + "\n")

    def set_local(self, name: str, directory: str | Path) -> Path:
        target = Path(directory)
        if not target.is_dir():
            raise NotFoundError(
                "Directory does not exist.",
                context={"path": str(target)},
            )
        self._ensure_selectable(name)
        return atomic_write_text(target / MARKER_NAME, name + "\n")

    def _ensure_selectable(self, name: str) -> None:
        if not self.registry.exists(name):
            raise NotFoundError(
                "Cannot select a build that does not exist.",
                hint="List usable builds with `llvmenv builds`.",
                context={"build": name},
            )

    def _resolution(self, name: str, source: SelectionSource, marker: Path) -> Resolution:
        if not self.registry.exists(name):
            raise StaleSelectionError(
                "Selected build does not exist.",
                hint="Rebuild it, or select another build with `llvmenv local`/`llvmenv global`.",
                context={"build": name, "marker": str(marker), "source": source.value},
            )
        return Resolution(
            name=name,
            prefix=self.registry.get(name).install_prefix,
            source=source,
            marker=marker,
        )


def find_local_marker(cwd: str | Path) -> Path | None:
    """Return the nearest ``.llvmenv`` file in ``cwd`` or its ancestors."""
    start = Path(cwd).absolute()
    for directory in (start, *start.parents):
        candidate = directory / MARKER_NAME
        if candidate.is_file():
            return candidate
    return None


def read_marker(path: Path) -> str:
    name = path.read_text(encoding="utf-8").strip()
    if not name:
        raise ConfigError(
            "Marker file is empty.",
            hint="Write a build name into it or delete it.",
            context={"marker": str(path)},
        )
    return name
