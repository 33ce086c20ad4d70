"""Git clone/update of a source tree at a requested branch, tag, or revision."""

from __future__ import annotations

import shutil
import tempfile
from collections.abc import Sequence
from pathlib import Path

from llvmenv.entry.model import FetchSpec
from llvmenv.errors import FetchError
from llvmenv.process import CommandResult, LineSink, run_captured, run_streaming


def fetch_git(
    spec: FetchSpec,
    dest: Path,
    *,
    name: str,
    on_line: LineSink | None = None,
) -> Path:
    """Clone ``spec`` into ``dest`` or bring an existing checkout up to date.

    A fresh clone goes to a sibling staging directory first, so a failed
    clone never leaves ``dest`` behind.
    """
    if dest.exists():
        if not is_git_checkout(dest):
            raise FetchError(
                "Destination exists but is not a git checkout.",
                hint="Remove the directory or point the entry at a git repository.",
                context={"entry": name, "path": str(dest)},
                retryable=False,
            )
        _update(spec, dest, name=name, on_line=on_line)
        return dest

    dest.parent.mkdir(parents=True, exist_ok=True)
    staging = Path(tempfile.mkdtemp(prefix=f".{dest.name}-clone-", dir=str(dest.parent)))
    try:
        argv = ["clone", "--progress"]
        if spec.branch:
            argv.extend(["--branch", spec.branch])
        argv.extend([spec.url, str(staging)])
        _run_git(argv, name=name, on_line=on_line)
        if spec.rev:
            _run_git(["checkout", "--quiet", spec.rev], cwd=staging, name=name, on_line=on_line)
        shutil.move(str(staging), dest)
    finally:
        if staging.exists():
            shutil.rmtree(staging, ignore_errors=True)
    return dest


def is_git_checkout(path: Path) -> bool:
    try:
        result = run_captured(["git", "rev-parse", "--show-toplevel"], cwd=path)
    except (FileNotFoundError, NotADirectoryError):
        return False
    if not result.ok or not result.tail:
        return False
    return Path(result.tail[0]).resolve() == path.resolve()


def head_commit(path: Path) -> str:
    result = run_captured(["git", "rev-parse", "HEAD"], cwd=path)
    if not result.ok or not result.tail:
        raise FetchError("Unable to read git HEAD.", context={"path": str(path)})
    return result.tail[0]


def _update(spec: FetchSpec, dest: Path, *, name: str, on_line: LineSink | None) -> None:
    if spec.rev:
        _run_git(["fetch", "--progress", "--tags", "origin"], cwd=dest, name=name, on_line=on_line)
        _run_git(["checkout", "--quiet", "--detach", spec.rev], cwd=dest, name=name, on_line=on_line)
    elif spec.branch:
        _run_git(
            ["fetch", "--progress", "origin", spec.branch],
            cwd=dest,
            name=name,
            on_line=on_line,
        )
        _run_git(
            ["checkout", "--quiet", "--detach", "FETCH_HEAD"],
            cwd=dest,
            name=name,
            on_line=on_line,
        )
    else:
        _run_git(["pull", "--progress", "--ff-only"], cwd=dest, name=name, on_line=on_line)


def _run_git(
    argv: Sequence[str],
    *,
    name: str,
    cwd: Path | None = None,
    on_line: LineSink | None = None,
) -> CommandResult:
    command = ["git", *argv]
    try:
        result = run_streaming(command, cwd=cwd, on_line=on_line)
    except FileNotFoundError as exc:
        raise FetchError(
            "git is not installed.",
            hint="Install git and ensure it is available in PATH.",
            context={"entry": name, "argv": " ".join(command)},
            retryable=False,
        ) from exc
    if not result.ok:
        raise FetchError(
            "Git command failed.",
            hint="Check that the repository URL and branch/revision are reachable.",
            context={
                "entry": name,
                "argv": result.command,
                "returncode": str(result.returncode),
                "output": "\n".join(result.tail[-10:]),
            },
        )
    return result
