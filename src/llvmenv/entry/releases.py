"""Pre-defined entries for official LLVM/Clang source releases."""

from __future__ import annotations

from llvmenv.entry.model import Entry, FetchKind, FetchSpec, RemoteSource, ToolSpec

RELEASE_VERSIONS: tuple[str, ...] = (
    "8.0.0",
    "7.0.0",
    "6.0.1",
    "6.0.0",
    "5.0.2",
    "5.0.1",
    "4.0.1",
    "4.0.0",
    "3.9.1",
    "3.9.0",
)
RELEASE_BASE_URL = "http://releases.llvm.org"


def release_entry(version: str) -> Entry:
    def tarball(component: str) -> FetchSpec:
        return FetchSpec(
            kind=FetchKind.TARBALL,
            url=f"{RELEASE_BASE_URL}/{version}/{component}-{version}.src.tar.xz",
        )

    tools = (
        ToolSpec(name="clang", fetch=tarball("cfe")),
        ToolSpec(name="lld", fetch=tarball("lld")),
    )
    return Entry(name=version, source=RemoteSource(fetch=tarball("llvm"), tools=tools))


def official_releases() -> list[Entry]:
    return [release_entry(version) for version in RELEASE_VERSIONS]
