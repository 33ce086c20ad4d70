"""Helpers shared by the test modules: a fake cmake runner and git repo builders."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Sequence
from pathlib import Path

from llvmenv.process import CommandResult, LineSink


class FakeRunner:
    """Stands in for cmake; records every command and fails on request.

    ``fail_on`` maps a command marker (``"configure"`` or ``"build"``) to the
    exit code to return the next time that step runs. A successful build step
    installs a fake ``llvm-config`` reporting ``version`` into the prefix.
    """

    def __init__(self, *, version: str = "7.0.1") -> None:
        self.calls: list[list[str]] = []
        self.fail_on: dict[str, int] = {}
        self.version = version
        self.install_prefix: Path | None = None

    def __call__(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        on_line: LineSink | None = None,
    ) -> CommandResult:
        command = [str(arg) for arg in argv]
        self.calls.append(command)
        step = "build" if "--build" in command else "configure"
        if step == "configure":
            for arg in command:
                if arg.startswith("-DCMAKE_INSTALL_PREFIX="):
                    self.install_prefix = Path(arg.split("=", 1)[1])
        if on_line is not None:
            on_line(f"fake {step}")
        code = self.fail_on.pop(step, 0)
        if code:
            return CommandResult(argv=tuple(command), returncode=code, tail=(f"{step} failed",))
        if step == "build" and self.install_prefix is not None:
            install_fake_llvm(self.install_prefix, self.version)
        return CommandResult(argv=tuple(command), returncode=0, tail=(f"{step} ok",))

    def steps(self) -> list[str]:
        return ["build" if "--build" in call else "configure" for call in self.calls]


def install_fake_llvm(prefix: Path, version: str = "7.0.1") -> Path:
    bin_dir = prefix / "bin"
    bin_dir.mkdir(parents=True, exist_ok=True)
    tool = bin_dir / "llvm-config"
    tool.write_text(f"#!/bin/sh\necho {version}\n", encoding="utf-8")
    tool.chmod(0o755)
    return tool


def run_git(argv: list[str], *, cwd: Path) -> str:
    env = {
        **os.environ,
        "GIT_AUTHOR_NAME": "llvmenv test",
        "GIT_AUTHOR_EMAIL": "llvmenv@example.com",
        "GIT_COMMITTER_NAME": "llvmenv test",
        "GIT_COMMITTER_EMAIL": "llvmenv@example.com",
    }
    completed = subprocess.run(
        ["git", *argv],
        cwd=cwd,
        check=False,
        text=True,
        capture_output=True,
        env=env,
    )
    if completed.returncode != 0:
        raise RuntimeError(f"git {' '.join(argv)} failed: {completed.stderr.strip()}")
    return completed.stdout.strip()


def create_repo(path: Path, files: dict[str, str] | None = None) -> str:
    """Initialise a repository on ``main`` with one commit; return its hash."""
    path.mkdir(parents=True, exist_ok=True)
    run_git(["init", "--quiet"], cwd=path)
    run_git(["checkout", "--quiet", "-b", "main"], cwd=path)
    for name, content in (files or {"CMakeLists.txt": "project(fake)\n"}).items():
        target = path / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    run_git(["add", "--all"], cwd=path)
    run_git(["commit", "--quiet", "-m", "initial"], cwd=path)
    return run_git(["rev-parse", "HEAD"], cwd=path)


def commit_file(repo: Path, name: str, content: str) -> str:
    (repo / name).write_text(content, encoding="utf-8")
    run_git(["add", name], cwd=repo)
    run_git(["commit", "--quiet", "-m", f"update {name}"], cwd=repo)
    return run_git(["rev-parse", "HEAD"], cwd=repo)


FAKE_SVN = """#!/bin/sh
echo "$@" >> "$LLVMENV_FAKE_SVN_LOG"
command=$1
for last; do :; done
case "$command" in
  checkout)
    mkdir -p "$last/.svn"
    echo trunk > "$last/README"
    ;;
  update)
    echo updated >> "$last/README"
    ;;
esac
"""


def install_fake_svn(bin_dir: Path) -> Path:
    """Write an ``svn`` stand-in that logs its arguments and mimics checkout/update."""
    bin_dir.mkdir(parents=True, exist_ok=True)
    tool = bin_dir / "svn"
    tool.write_text(FAKE_SVN, encoding="utf-8")
    tool.chmod(0o755)
    return tool
