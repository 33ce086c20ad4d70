"""Entry table parser and the name-indexed entry store."""

from __future__ import annotations

import os
import tomllib
import warnings
from collections.abc import Iterable, Mapping
from enum import StrEnum
from pathlib import Path
from typing import Any, TypeVar
from urllib.parse import urlparse

from llvmenv.config import SYSTEM_BUILD
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
    is_contained_relative_path,
)
from llvmenv.errors import ConfigError, NotFoundError

ENTRY_KEYS = frozenset(
    {
        "url",
        "path",
        "kind",
        "branch",
        "rev",
        "tools",
        "target",
        "option",
        "builder",
        "build_type",
        "example",
        "document",
        "subdir",
    }
)
TOOL_KEYS = frozenset({"name", "url", "kind", "branch", "rev", "relative_path"})

TARBALL_SUFFIXES = (".tar", ".tar.gz", ".tgz", ".tar.xz", ".txz", ".tar.bz2", ".tbz2")
GIT_HOSTS = ("github.com", "gitlab.com", "bitbucket.org")

E = TypeVar("E", bound=StrEnum)


class EntryWarning(UserWarning):
    """Warning raised for entry settings that are accepted but ignored."""


class EntryStore:
    """Named build entries loaded from a configuration table."""

    def __init__(self, entries: Iterable[Entry]) -> None:
        self._entries: dict[str, Entry] = {}
        for entry in entries:
            if entry.name in self._entries:
                raise ConfigError(
                    "Duplicate entry name.",
                    hint="Entry names must be unique, including pre-defined release entries.",
                    context={"entry": entry.name},
                )
            self._entries[entry.name] = entry

    @classmethod
    def from_table(
        cls,
        table: Mapping[str, Any],
        *,
        predefined: Iterable[Entry] = (),
        base_dir: Path | None = None,
    ) -> EntryStore:
        return cls([*parse_entries(table, base_dir=base_dir).values(), *predefined])

    @classmethod
    def from_path(cls, path: str | Path, *, predefined: Iterable[Entry] = ()) -> EntryStore:
        toml_path = Path(path)
        try:
            raw = toml_path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise ConfigError(
                "Entry setting does not exist.",
                hint="Run `llvmenv init` to create the default entry table.",
                context={"path": str(toml_path)},
            ) from exc
        try:
            table = tomllib.loads(raw)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(
                "Entry setting is not valid TOML.",
                hint=str(exc),
                context={"path": str(toml_path)},
            ) from exc
        return cls.from_table(table, predefined=predefined, base_dir=toml_path.parent.absolute())

    def load(self) -> dict[str, Entry]:
        return dict(self._entries)

    def get(self, name: str) -> Entry:
        try:
            return self._entries[name]
        except KeyError:
            raise NotFoundError(
                "No entry is found.",
                hint="List known entries with `llvmenv entries`.",
                context={"entry": name},
            ) from None

    def names(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def parse_entries(table: Mapping[str, Any], *, base_dir: Path | None = None) -> dict[str, Entry]:
    entries: dict[str, Entry] = {}
    for name, setting in table.items():
        if not isinstance(setting, Mapping):
            raise ConfigError("Entry must be a table.", context={"entry": str(name)})
        entries[name] = parse_entry(name, setting, base_dir=base_dir)
    return entries


def parse_entry(name: str, setting: Mapping[str, Any], *, base_dir: Path | None = None) -> Entry:
    """Parse one entry table.

    A relative local ``path`` is anchored at ``base_dir`` (the directory holding
    ``entry.toml``), or the current directory when none is given.
    """
    if not name:
        raise ConfigError("Entry name must be non-empty.")
    if name == SYSTEM_BUILD:
        raise ConfigError(
            "Entry name `system` is reserved for the system-installed LLVM.",
            context={"entry": name},
        )
    if name in (".", "..") or "/" in name or "\\" in name:
        raise ConfigError(
            "Entry name must not contain path separators.",
            context={"entry": name},
        )
    unknown = sorted(set(setting) - ENTRY_KEYS)
    if unknown:
        raise ConfigError(
            "Unknown entry keys.",
            context={"entry": name, "keys": ", ".join(unknown)},
        )
    has_url = "url" in setting
    has_path = "path" in setting
    if has_url and has_path:
        raise ConfigError(
            "Entry has both `url` and `path`.",
            hint="Use `url` for a remote source or `path` for a local one, not both.",
            context={"entry": name},
        )
    if not has_url and not has_path:
        raise ConfigError(
            "Entry has neither `url` nor `path`.",
            hint="Add `url` for a remote source or `path` for a local one.",
            context={"entry": name},
        )

    options = _parse_options(name, setting)
    source: RemoteSource | LocalSource
    if has_path:
        for key in ("kind", "branch", "rev"):
            if key in setting:
                raise ConfigError(
                    f"`{key}` is only valid for remote entries.",
                    context={"entry": name},
                )
        if setting.get("tools"):
            warnings.warn(
                f"Entry `{name}`: 'tools' must be used with `url`, ignored.",
                EntryWarning,
                stacklevel=2,
            )
        raw_path = _required_str(setting, "path", entry=name)
        local_path = Path(os.path.expandvars(os.path.expanduser(raw_path)))
        if not local_path.is_absolute():
            local_path = (base_dir or Path.cwd()) / local_path
        source = LocalSource(path=local_path)
    else:
        tools_raw = setting.get("tools", [])
        if not isinstance(tools_raw, list):
            raise ConfigError("Invalid entry `tools` value.", context={"entry": name})
        tools = tuple(_parse_tool(name, item) for item in tools_raw)
        _ensure_unique_placements(name, tools)
        source = RemoteSource(fetch=_parse_fetch(name, setting), tools=tools)
    return Entry(name=name, source=source, options=options)


def infer_fetch_kind(url: str) -> FetchKind | None:
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    path = parsed.path.lower().rstrip("/")
    if scheme in ("svn", "svn+ssh") or "/svn/" in f"{path}/":
        return FetchKind.SVN
    if path.endswith(TARBALL_SUFFIXES):
        return FetchKind.TARBALL
    if scheme in ("git", "git+ssh", "ssh") or path.endswith(".git"):
        return FetchKind.GIT
    if parsed.hostname in GIT_HOSTS:
        return FetchKind.GIT
    return None


def _parse_fetch(entry: str, setting: Mapping[str, Any]) -> FetchSpec:
    url = _required_str(setting, "url", entry=entry)
    raw_kind = setting.get("kind")
    if raw_kind is None:
        kind = infer_fetch_kind(url)
        if kind is None:
            raise ConfigError(
                "Unable to determine the source kind from URL.",
                hint="Set `kind` to one of git, svn, tarball.",
                context={"entry": entry, "url": url},
            )
    else:
        kind = _parse_enum(FetchKind, raw_kind, key="kind", entry=entry)
    branch = _optional_str(setting, "branch", entry=entry)
    rev = _optional_str(setting, "rev", entry=entry)
    if kind is FetchKind.TARBALL and (branch or rev):
        raise ConfigError(
            "Tarball sources do not accept `branch` or `rev`.",
            context={"entry": entry, "url": url},
        )
    if kind is FetchKind.SVN and branch:
        raise ConfigError(
            "SVN sources do not accept `branch`; put the branch in the URL.",
            context={"entry": entry, "url": url},
        )
    return FetchSpec(kind=kind, url=url, branch=branch, rev=rev)


def _parse_tool(entry: str, item: Any) -> ToolSpec:
    if not isinstance(item, Mapping):
        raise ConfigError("Invalid tool in entry.", context={"entry": entry})
    unknown = sorted(set(item) - TOOL_KEYS)
    if unknown:
        raise ConfigError(
            "Unknown tool keys.",
            context={"entry": entry, "keys": ", ".join(unknown)},
        )
    name = _required_str(item, "name", entry=entry)
    if not is_contained_relative_path(name) or "/" in name:
        raise ConfigError("Invalid tool name.", context={"entry": entry, "tool": name})
    relative_path = _optional_str(item, "relative_path", entry=entry)
    if relative_path is not None and not is_contained_relative_path(relative_path):
        raise ConfigError(
            "Tool `relative_path` must be relative and stay inside the source tree.",
            context={"entry": entry, "tool": name, "relative_path": relative_path},
        )
    return ToolSpec(name=name, fetch=_parse_fetch(entry, item), relative_path=relative_path)


def _ensure_unique_placements(entry: str, tools: tuple[ToolSpec, ...]) -> None:
    seen: set[str] = set()
    for tool in tools:
        placement = os.path.normpath(tool.placement)
        if placement in seen:
            raise ConfigError(
                "Two tools share the same placement path.",
                context={"entry": entry, "tool": tool.name, "placement": placement},
            )
        seen.add(placement)


def _parse_options(entry: str, setting: Mapping[str, Any]) -> EntryOptions:
    targets = setting.get("target", [])
    if not isinstance(targets, list) or not all(isinstance(t, str) and t for t in targets):
        raise ConfigError("Invalid entry `target` value.", context={"entry": entry})
    raw_options = setting.get("option", {})
    if not isinstance(raw_options, Mapping):
        raise ConfigError("Invalid entry `option` value.", context={"entry": entry})
    options: dict[str, str] = {}
    for key, value in raw_options.items():
        if isinstance(value, bool):
            options[key] = "ON" if value else "OFF"
        elif isinstance(value, (str, int, float)):
            options[key] = str(value)
        else:
            raise ConfigError(
                "Entry `option` values must be strings, numbers, or booleans.",
                context={"entry": entry, "option": key},
            )
    subdir = _optional_str(setting, "subdir", entry=entry)
    if subdir is not None and not is_contained_relative_path(subdir):
        raise ConfigError(
            "Entry `subdir` must be relative and stay inside the source tree.",
            context={"entry": entry, "subdir": subdir},
        )
    return EntryOptions(
        target_architectures=frozenset(targets),
        build_type=_parse_enum(
            BuildType, setting.get("build_type", BuildType.RELEASE.value), key="build_type", entry=entry
        ),
        enable_examples=_optional_bool(setting, "example", entry=entry),
        enable_documentation=_optional_bool(setting, "document", entry=entry),
        options=options,
        generator=parse_generator(setting.get("builder", CMakeGenerator.PLATFORM.value), entry=entry),
        subdir=subdir,
    )


def parse_generator(value: Any, *, entry: str | None = None) -> CMakeGenerator:
    aliases = {
        "platform": CMakeGenerator.PLATFORM,
        "makefile": CMakeGenerator.MAKEFILE,
        "ninja": CMakeGenerator.NINJA,
        "visualstudio": CMakeGenerator.VISUAL_STUDIO,
        "vs": CMakeGenerator.VISUAL_STUDIO,
    }
    if isinstance(value, str) and value.lower() in aliases:
        return aliases[value.lower()]
    raise ConfigError(
        f"Unsupported generator: {value}",
        hint="Use one of Platform, Makefile, Ninja, VisualStudio.",
        context={"entry": entry or ""},
    )


def _parse_enum(enum: type[E], value: Any, *, key: str, entry: str) -> E:
    for member in enum:
        if isinstance(value, str) and value.lower() == member.value.lower():
            return member
    allowed = ", ".join(member.value for member in enum)
    raise ConfigError(
        f"Invalid entry `{key}` value.",
        hint=f"Use one of {allowed}.",
        context={"entry": entry, key: str(value)},
    )


def _required_str(payload: Mapping[str, Any], key: str, *, entry: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise ConfigError(f"Invalid entry `{key}` value.", context={"entry": entry})
    return value


def _optional_str(payload: Mapping[str, Any], key: str, *, entry: str) -> str | None:
    if key not in payload:
        return None
    return _required_str(payload, key, entry=entry)


def _optional_bool(payload: Mapping[str, Any], key: str, *, entry: str) -> bool:
    value = payload.get(key, False)
    if not isinstance(value, bool):
        raise ConfigError(f"Invalid entry `{key}` value.", context={"entry": entry})
    return value
