"""Public package entrypoint for llvmenv."""

from .config import RetryPolicy, Settings
from .entry import Entry, EntryStore, LocalSource, RemoteSource
from .errors import (
    BuildError,
    ConfigError,
    FetchError,
    LlvmenvError,
    NotFoundError,
    StaleSelectionError,
)
from .manager import Manager
from .registry import Build, BuildRegistry
from .resolver import PrefixResolver, Resolution

__all__ = [
    "Build",
    "BuildError",
    "BuildRegistry",
    "ConfigError",
    "Entry",
    "EntryStore",
    "FetchError",
    "LlvmenvError",
    "LocalSource",
    "Manager",
    "NotFoundError",
    "PrefixResolver",
    "RemoteSource",
    "Resolution",
    "RetryPolicy",
    "Settings",
    "StaleSelectionError",
]
