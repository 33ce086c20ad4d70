"""Entry typed model: how one LLVM/Clang variant is obtained and configured."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path, PurePosixPath


class FetchKind(StrEnum):
    GIT = "git"
    SVN = "svn"
    TARBALL = "tarball"


class BuildType(StrEnum):
    """Values accepted by ``CMAKE_BUILD_TYPE``."""

    DEBUG = "Debug"
    RELEASE = "Release"
    REL_WITH_DEB_INFO = "RelWithDebInfo"
    MIN_SIZE_REL = "MinSizeRel"


class CMakeGenerator(StrEnum):
    """CMake generator selection (``-G``); ``Platform`` uses CMake's default."""

    PLATFORM = "Platform"
    MAKEFILE = "Makefile"
    NINJA = "Ninja"
    VISUAL_STUDIO = "VisualStudio"

    def configure_args(self) -> tuple[str, ...]:
        if self is CMakeGenerator.MAKEFILE:
            return ("-G", "Unix Makefiles")
        if self is CMakeGenerator.NINJA:
            return ("-G", "Ninja")
        if self is CMakeGenerator.VISUAL_STUDIO:
            return ("-G", "Visual Studio 15 2017")
        return ()

    def build_args(self, jobs: int) -> tuple[str, ...]:
        if self in (CMakeGenerator.MAKEFILE, CMakeGenerator.NINJA):
            return ("--", "-j", str(jobs))
        if self is CMakeGenerator.PLATFORM:
            return ("--parallel", str(jobs))
        return ()


@dataclass(frozen=True, slots=True)
class FetchSpec:
    kind: FetchKind
    url: str
    branch: str | None = None
    rev: str | None = None


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Auxiliary component (e.g. clang) placed inside the primary tree."""

    name: str
    fetch: FetchSpec
    relative_path: str | None = None

    @property
    def placement(self) -> str:
        return self.relative_path or f"tools/{self.name}"


@dataclass(frozen=True, slots=True)
class RemoteSource:
    fetch: FetchSpec
    tools: tuple[ToolSpec, ...] = ()


@dataclass(frozen=True, slots=True)
class LocalSource:
    path: Path


@dataclass(frozen=True, slots=True)
class EntryOptions:
    target_architectures: frozenset[str] = frozenset()
    build_type: BuildType = BuildType.RELEASE
    enable_examples: bool = False
    enable_documentation: bool = False
    options: Mapping[str, str] = field(default_factory=dict)
    generator: CMakeGenerator = CMakeGenerator.PLATFORM
    subdir: str | None = None


@dataclass(frozen=True, slots=True)
class Entry:
    name: str
    source: RemoteSource | LocalSource
    options: EntryOptions = field(default_factory=EntryOptions)

    @property
    def is_local(self) -> bool:
        return isinstance(self.source, LocalSource)

    def cmake_source_dir(self, source_dir: Path) -> Path:
        if self.options.subdir:
            return source_dir / self.options.subdir
        return source_dir


def is_contained_relative_path(value: str) -> bool:
    """True when ``value`` is relative and never climbs above its root."""
    if not value:
        return False
    path = PurePosixPath(value)
    if path.is_absolute() or value.startswith("\\") or ":" in path.parts[0]:
        return False
    depth = 0
    for part in path.parts:
        if part == "..":
            depth -= 1
            if depth < 0:
                return False
        elif part != ".":
            depth += 1
    return depth > 0


__all__ = [
    "BuildType",
    "CMakeGenerator",
    "Entry",
    "EntryOptions",
    "FetchKind",
    "FetchSpec",
    "LocalSource",
    "RemoteSource",
    "ToolSpec",
    "is_contained_relative_path",
]
