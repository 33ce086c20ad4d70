"""Subversion checkout/update."""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path

from llvmenv.entry.model import FetchSpec
from llvmenv.errors import FetchError
from llvmenv.process import LineSink, run_streaming


def fetch_svn(
    spec: FetchSpec,
    dest: Path,
    *,
    name: str,
    on_line: LineSink | None = None,
) -> Path:
    revision = ["--revision", spec.rev] if spec.rev else []
    if dest.exists():
        if not (dest / ".svn").is_dir():
            raise FetchError(
                "Destination exists but is not an SVN working copy.",
                hint="Remove the directory or point the entry at an SVN repository.",
                context={"entry": name, "path": str(dest)},
                retryable=False,
            )
        _run_svn(["update", "--non-interactive", *revision, str(dest)], name=name, on_line=on_line)
        return dest

    dest.parent.mkdir(parents=True, exist_ok=True)
    staging = Path(tempfile.mkdtemp(prefix=f".{dest.name}-checkout-", dir=str(dest.parent)))
    try:
        _run_svn(
            ["checkout", "--non-interactive", *revision, spec.url, str(staging)],
            name=name,
            on_line=on_line,
        )
        shutil.move(str(staging), dest)
    finally:
        if staging.exists():
            shutil.rmtree(staging, ignore_errors=True)
    return dest


def _run_svn(argv: list[str], *, name: str, on_line: LineSink | None) -> None:
    command = ["svn", *argv]
    try:
        result = run_streaming(command, on_line=on_line)
    except FileNotFoundError as exc:
        raise FetchError(
            "svn is not installed.",
            hint="Install Subversion and ensure it is available in PATH.",
            context={"entry": name, "argv": " ".join(command)},
            retryable=False,
        ) from exc
    if not result.ok:
        raise FetchError(
            "SVN command failed.",
            hint="Check that the repository URL and revision are reachable.",
            context={
                "entry": name,
                "argv": result.command,
                "returncode": str(result.returncode),
                "output": "\n".join(result.tail[-10:]),
            },
        )
