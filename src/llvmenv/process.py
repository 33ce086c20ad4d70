"""Child-process execution with live, line-by-line output relay."""

from __future__ import annotations

import subprocess
from collections import deque
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

DEFAULT_TAIL_LINES = 50

LineSink = Callable[[str], None]


@dataclass(frozen=True, slots=True)
class CommandResult:
    argv: tuple[str, ...]
    returncode: int
    tail: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command(self) -> str:
        return " ".join(self.argv)


class CommandRunner(Protocol):
    def __call__(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        on_line: LineSink | None = None,
    ) -> CommandResult:
        """Run ``argv`` to completion, relaying each output line to ``on_line``."""


def run_streaming(
    argv: Sequence[str],
    *,
    cwd: Path | None = None,
    on_line: LineSink | None = None,
    env: Mapping[str, str] | None = None,
    tail_lines: int = DEFAULT_TAIL_LINES,
) -> CommandResult:
    """Run a command, merging stderr into stdout and relaying lines as they arrive.

    Only the last ``tail_lines`` lines are kept for error reporting. A missing
    executable surfaces as ``FileNotFoundError`` from ``subprocess``.
    """
    tail: deque[str] = deque(maxlen=tail_lines)
    command = tuple(str(arg) for arg in argv)
    # Text mode uses universal newlines, so `\r` progress updates arrive as lines.
    with subprocess.Popen(
        command,
        cwd=str(cwd) if cwd is not None else None,
        env=dict(env) if env is not None else None,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        errors="replace",
        bufsize=1,
    ) as proc:
        for raw in proc.stdout or ():
            line = raw.rstrip("\n")
            if not line:
                continue
            tail.append(line)
            if on_line is not None:
                on_line(line)
        returncode = proc.wait()
    return CommandResult(argv=command, returncode=returncode, tail=tuple(tail))


def run_captured(argv: Sequence[str], *, cwd: Path | None = None) -> CommandResult:
    """Run a short query command and keep its whole stdout as ``tail``."""
    command = tuple(str(arg) for arg in argv)
    completed = subprocess.run(
        command,
        cwd=str(cwd) if cwd is not None else None,
        check=False,
        text=True,
        capture_output=True,
    )
    output = completed.stdout if completed.returncode == 0 else completed.stderr
    return CommandResult(
        argv=command,
        returncode=completed.returncode,
        tail=tuple(output.strip().splitlines()),
    )
