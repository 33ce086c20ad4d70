"""Entry model, entry table parsing, and the entry store."""

from llvmenv.entry.model import (
    BuildType,
    CMakeGenerator,
    Entry,
    EntryOptions,
    FetchKind,
    FetchSpec,
    LocalSource,
    RemoteSource,
    ToolSpec,
)
from llvmenv.entry.releases import official_releases
from llvmenv.entry.store import (
    EntryStore,
    EntryWarning,
    infer_fetch_kind,
    parse_entries,
    parse_entry,
    parse_generator,
)

__all__ = [
    "BuildType",
    "CMakeGenerator",
    "Entry",
    "EntryOptions",
    "EntryStore",
    "EntryWarning",
    "FetchKind",
    "FetchSpec",
    "LocalSource",
    "RemoteSource",
    "ToolSpec",
    "infer_fetch_kind",
    "official_releases",
    "parse_entries",
    "parse_entry",
    "parse_generator",
]
