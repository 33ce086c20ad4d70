"""User directories, runtime settings, and the default entry table."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from llvmenv.errors import ConfigError

APP_NAME = "llvmenv"
ENTRY_TOML = "entry.toml"
MARKER_NAME = ".llvmenv"
SYSTEM_BUILD = "system"

DEFAULT_ENTRY_TOML = """\
# Entries describe how to obtain and configure an LLVM/Clang source tree.
#
# Remote entries carry `url` (git, svn, or a tarball); local entries carry
# `path`. Common options: target, build_type, example, document, builder,
# subdir, and an [<name>.option] table of extra CMake definitions.

[llvm-project]
url = "https://github.com/llvm/llvm-project.git"
branch = "main"
subdir = "llvm"
target = ["X86"]

[llvm-project.option]
LLVM_ENABLE_PROJECTS = "clang;lld"

[llvm-mirror]
url = "https://github.com/llvm-mirror/llvm"
target = ["X86"]

[[llvm-mirror.tools]]
name = "clang"
url = "https://github.com/llvm-mirror/clang"

[[llvm-mirror.tools]]
name = "clang-extra"
url = "https://github.com/llvm-mirror/clang-tools-extra"
relative_path = "tools/clang/tools/extra"
"""


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Bounded retry with exponential backoff for transient fetch failures."""

    attempts: int = 3
    backoff: float = 1.0
    factor: float = 2.0

    def delay(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        return self.backoff * (self.factor ** (attempt - 1))


@dataclass(frozen=True, slots=True)
class Settings:
    config_dir: Path
    data_dir: Path
    cache_dir: Path
    system_prefix: Path = Path("/usr")
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        home = Path(env.get("HOME") or Path.home())
        retry = RetryPolicy()
        raw_attempts = env.get("LLVMENV_FETCH_ATTEMPTS")
        if raw_attempts:
            retry = RetryPolicy(attempts=_positive_int(raw_attempts, "LLVMENV_FETCH_ATTEMPTS"))
        return cls(
            config_dir=_xdg_dir(env, "XDG_CONFIG_HOME", home / ".config"),
            data_dir=_xdg_dir(env, "XDG_DATA_HOME", home / ".local" / "share"),
            cache_dir=_xdg_dir(env, "XDG_CACHE_HOME", home / ".cache"),
            system_prefix=Path(env.get("LLVMENV_SYSTEM_PREFIX") or "/usr"),
            retry=retry,
        )

    @property
    def entry_toml(self) -> Path:
        return self.config_dir / ENTRY_TOML

    @property
    def global_marker(self) -> Path:
        return self.config_dir / MARKER_NAME


def init_config(settings: Settings) -> Path:
    """Write the default entry table; refuse to overwrite an existing one."""
    entry = settings.entry_toml
    if entry.exists():
        raise ConfigError(
            "Entry setting already exists.",
            hint="Edit the existing file with `llvmenv edit` instead.",
            context={"path": str(entry)},
        )
    entry.parent.mkdir(parents=True, exist_ok=True)
    entry.write_text(DEFAULT_ENTRY_TOML, encoding="utf-8")
    return entry


def _xdg_dir(env: Mapping[str, str], key: str, fallback: Path) -> Path:
    base = env.get(key)
    # XDG says relative values are invalid and must be ignored
    root = Path(base) if base and Path(base).is_absolute() else fallback
    return root / APP_NAME


def _positive_int(raw: str, key: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(
            f"`{key}` must be an integer.",
            context={"value": raw},
        ) from exc
    if value < 1:
        raise ConfigError(f"`{key}` must be at least 1.", context={"value": raw})
    return value
