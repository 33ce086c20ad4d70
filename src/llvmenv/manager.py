"""Facade wiring entries, fetching, building, and selection for the command surface."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path

from llvmenv.builders import BuildDriver, BuildOutcome
from llvmenv.builders.driver import write_stdout
from llvmenv.config import Settings, init_config
from llvmenv.entry import CMakeGenerator, Entry, EntryStore, official_releases
from llvmenv.errors import ConfigError
from llvmenv.fetch import SourceFetcher
from llvmenv.observability import ProgressObserver, StructuredLogger, ignore_progress
from llvmenv.process import CommandRunner, LineSink, run_streaming
from llvmenv.registry import Build, BuildRegistry
from llvmenv.resolver import PrefixResolver, Resolution
from llvmenv.shell import llvm_sys_variable, shell_script


@dataclass(slots=True)
class Manager:
    settings: Settings
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    observer: ProgressObserver = ignore_progress
    output: LineSink = write_stdout
    runner: CommandRunner = run_streaming
    _store: EntryStore | None = field(init=False, default=None, repr=False)

    @classmethod
    def from_env(
        cls,
        *,
        logger: StructuredLogger | None = None,
        observer: ProgressObserver = ignore_progress,
    ) -> Manager:
        return cls(
            Settings.from_env(),
            logger=logger if logger is not None else StructuredLogger(),
            observer=observer,
        )

    def init_config(self) -> Path:
        path = init_config(self.settings)
        self.logger.log(
            operation="init",
            entry=None,
            stage=None,
            message=f"Create default entry setting: {path}",
        )
        return path

    def store(self) -> EntryStore:
        if self._store is None:
            predefined = official_releases()
            if self.settings.entry_toml.exists():
                self._store = EntryStore.from_path(self.settings.entry_toml, predefined=predefined)
            else:
                self._store = EntryStore(predefined)
        return self._store

    def registry(self) -> BuildRegistry:
        return BuildRegistry(
            self.settings.data_dir,
            system_prefix=self.settings.system_prefix,
            known_entries=self.store().names(),
        )

    def resolver(self) -> PrefixResolver:
        return PrefixResolver(self.registry(), global_marker=self.settings.global_marker)

    def entries(self) -> list[Entry]:
        return list(self.store().load().values())

    def builds(self) -> list[Build]:
        return self.registry().list()

    def build_entry(
        self,
        name: str,
        *,
        update: bool = False,
        clean: bool = False,
        jobs: int | None = None,
        generator: CMakeGenerator | None = None,
    ) -> BuildOutcome:
        """Fetch (when needed), configure, compile, and install one entry."""
        entry = self.store().get(name)
        registry = self.registry()
        layout = registry.layout(entry.name)
        if layout.source_dir is None or layout.build_dir is None:
            raise ConfigError("The system build cannot be built.", context={"entry": entry.name})

        fetcher = SourceFetcher(
            retry=self.settings.retry,
            logger=self.logger,
            observer=self.observer,
        )
        if entry.is_local or update or not layout.source_dir.exists():
            source_dir = fetcher.materialize(entry, layout.source_dir)
        else:
            source_dir = layout.source_dir

        driver = BuildDriver(
            registry=registry,
            jobs=jobs,
            generator=generator,
            runner=self.runner,
            output=self.output,
            logger=self.logger,
        )
        return driver.build(
            entry,
            source_dir,
            layout.build_dir,
            layout.install_prefix,
            clean=clean,
        )

    def current(self, cwd: str | Path) -> Resolution:
        return self.resolver().resolve(cwd)

    def prefix(self, cwd: str | Path) -> Path:
        return self.current(cwd).prefix

    def set_global(self, name: str) -> Path:
        return self.resolver().set_global(name)

    def set_local(self, name: str, directory: str | Path) -> Path:
        return self.resolver().set_local(name, directory)

    def remove(self, name: str, *, keep_source: bool = True) -> None:
        self.registry().remove(name, keep_source=keep_source)

    def version(self, name: str) -> tuple[int, int, int]:
        return self.registry().version(name)

    def llvm_sys_variable(self, name: str) -> str:
        return llvm_sys_variable(self.version(name))

    def archive(self, name: str, dest_dir: Path) -> Path:
        return self.registry().archive(name, dest_dir)

    def expand(self, archive: Path) -> Build:
        return self.registry().expand(archive)

    def shell_script(self, shell: str) -> str:
        return shell_script(shell, self.settings)

    def edit_command(self) -> list[str]:
        editor = os.environ.get("VISUAL") or os.environ.get("EDITOR") or "vi"
        return [*shlex.split(editor), str(self.settings.entry_toml)]
