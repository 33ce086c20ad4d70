"""Configure/compile/install orchestration with resumable state.

The build directory belongs to CMake and the underlying build tool. The
driver only records a fingerprint of the configure inputs next to CMake's
own files and observes exit codes; it never deletes or repairs the build
directory after a failure, so the next invocation resumes from the build
tool's incremental state.
"""

from __future__ import annotations

import os
import shutil
import sys
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from llvmenv.builders.cmake import ConfigureInputs, build_command, configure_command
from llvmenv.builders.fingerprint import (
    clear_marker,
    configure_fingerprint,
    read_marker,
    write_marker,
)
from llvmenv.entry.model import CMakeGenerator, Entry
from llvmenv.errors import BuildError
from llvmenv.observability import LogLevel, StructuredLogger
from llvmenv.process import CommandResult, CommandRunner, LineSink, run_streaming
from llvmenv.registry import BuildRegistry


class BuildState(StrEnum):
    NOT_CONFIGURED = "not_configured"
    CONFIGURING = "configuring"
    CONFIGURED = "configured"
    COMPILING = "compiling"
    INSTALLED = "installed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class BuildOutcome:
    name: str
    state: BuildState
    fingerprint: str
    reconfigured: bool
    transitions: tuple[BuildState, ...]
    install_prefix: Path


def write_stdout(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


@dataclass(slots=True)
class BuildDriver:
    registry: BuildRegistry | None = None
    jobs: int | None = None
    generator: CMakeGenerator | None = None
    runner: CommandRunner = run_streaming
    output: LineSink = write_stdout
    logger: StructuredLogger = field(default_factory=StructuredLogger)

    def job_count(self) -> int:
        if self.jobs is not None and self.jobs > 0:
            return self.jobs
        return os.cpu_count() or 1

    def build(
        self,
        entry: Entry,
        source_dir: Path,
        build_dir: Path,
        install_prefix: Path,
        *,
        clean: bool = False,
    ) -> BuildOutcome:
        if clean and build_dir.exists():
            self._log(entry, None, f"Remove build dir: {build_dir}")
            shutil.rmtree(build_dir)
        build_dir.mkdir(parents=True, exist_ok=True)

        inputs = ConfigureInputs.for_entry(
            entry,
            source_dir=source_dir,
            install_prefix=install_prefix,
            generator=self.generator,
        )
        fingerprint = configure_fingerprint(inputs)
        stored = read_marker(build_dir)
        state = BuildState.CONFIGURED if stored == fingerprint else BuildState.NOT_CONFIGURED
        transitions = [state]
        reconfigured = False

        if state is BuildState.NOT_CONFIGURED:
            if stored is not None:
                self._log(entry, state, "Configure options changed; reconfiguring.")
            clear_marker(build_dir)
            transitions.append(BuildState.CONFIGURING)
            self._run(entry, BuildState.CONFIGURING, configure_command(inputs), build_dir)
            write_marker(build_dir, inputs)
            transitions.append(BuildState.CONFIGURED)
            reconfigured = True
        else:
            self._log(entry, state, "Configure fingerprint unchanged; skipping configure.")

        transitions.append(BuildState.COMPILING)
        command = build_command(build_dir, inputs.generator, self.job_count())
        self._run(entry, BuildState.COMPILING, command, build_dir)

        if self.registry is not None:
            self.registry.mark_installed(entry.name, fingerprint=fingerprint, source_dir=source_dir)
        transitions.append(BuildState.INSTALLED)
        self._log(entry, BuildState.INSTALLED, f"Installed into {install_prefix}.")
        return BuildOutcome(
            name=entry.name,
            state=BuildState.INSTALLED,
            fingerprint=fingerprint,
            reconfigured=reconfigured,
            transitions=tuple(transitions),
            install_prefix=install_prefix,
        )

    def _run(self, entry: Entry, stage: BuildState, argv: list[str], cwd: Path) -> CommandResult:
        self._log(entry, stage, " ".join(argv))
        try:
            result = self.runner(argv, cwd=cwd, on_line=self.output)
        except FileNotFoundError as exc:
            self._log(entry, BuildState.FAILED, f"{argv[0]} not found.", level="error")
            raise BuildError(
                f"{argv[0]} is not installed.",
                stage=stage.value,
                returncode=127,
                hint=f"Install {argv[0]} and ensure it is available in PATH.",
                context={"entry": entry.name},
            ) from exc
        if not result.ok:
            self._log(
                entry,
                BuildState.FAILED,
                f"{stage.value} exited with {result.returncode}.",
                level="error",
            )
            hint = "Fix the problem and run the build again; it resumes where it stopped."
            if stage is BuildState.CONFIGURING:
                hint = "Check the entry options, or rebuild with --clean for a fresh build directory."
            raise BuildError(
                f"Build step `{stage.value}` failed.",
                stage=stage.value,
                returncode=result.returncode,
                tail=result.tail,
                hint=hint,
                context={"entry": entry.name, "command": result.command},
            )
        return result

    def _log(
        self,
        entry: Entry,
        stage: BuildState | None,
        message: str,
        *,
        level: LogLevel = "info",
    ) -> None:
        self.logger.log(
            operation="build",
            entry=entry.name,
            stage=stage.value if stage is not None else None,
            message=message,
            level=level,
        )
