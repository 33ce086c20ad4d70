"""Materialize an entry's source tree, including auxiliary tools."""

from __future__ import annotations

import shutil
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path

from llvmenv.config import RetryPolicy
from llvmenv.entry.model import Entry, FetchKind, FetchSpec, LocalSource
from llvmenv.errors import FetchError
from llvmenv.fetch.git import fetch_git
from llvmenv.fetch.retry import Sleeper, call_with_retries
from llvmenv.fetch.svn import fetch_svn
from llvmenv.fetch.tarball import fetch_tarball
from llvmenv.observability import (
    ProgressEvent,
    ProgressObserver,
    StructuredLogger,
    ignore_progress,
)


@dataclass(slots=True)
class SourceFetcher:
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    observer: ProgressObserver = ignore_progress
    sleep: Sleeper = time.sleep

    def materialize(self, entry: Entry, dest: Path) -> Path:
        """Return the directory holding ``entry``'s source.

        Local entries are validated and returned untouched. Remote entries are
        fetched into ``dest``: a fresh tree (main source plus tools) is
        assembled in a staging directory and moved into place only when
        complete; an existing tree is updated in place.
        """
        if isinstance(entry.source, LocalSource):
            return self._local(entry, entry.source)

        source = entry.source
        if dest.exists():
            self.logger.log(
                operation="fetch_update",
                entry=entry.name,
                stage="fetch",
                message=f"Updating source in {dest}.",
            )
            self._fetch(entry.name, source.fetch, dest)
            for tool in source.tools:
                self._fetch(f"{entry.name}/{tool.name}", tool.fetch, dest / tool.placement)
            return dest

        self.logger.log(
            operation="fetch_start",
            entry=entry.name,
            stage="fetch",
            message=f"Fetching {source.fetch.kind} source {source.fetch.url}.",
        )
        dest.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{dest.name}-staging-", dir=str(dest.parent)))
        try:
            tree = staging / "tree"
            self._fetch(entry.name, source.fetch, tree)
            for tool in source.tools:
                tool_dest = tree / tool.placement
                tool_dest.parent.mkdir(parents=True, exist_ok=True)
                self._fetch(f"{entry.name}/{tool.name}", tool.fetch, tool_dest)
            shutil.move(str(tree), dest)
        finally:
            shutil.rmtree(staging, ignore_errors=True)
        self.logger.log(
            operation="fetch_complete",
            entry=entry.name,
            stage="fetch",
            message=f"Source ready in {dest}.",
        )
        return dest

    def _local(self, entry: Entry, source: LocalSource) -> Path:
        if not source.path.is_dir():
            raise FetchError(
                "Local source path is not a directory.",
                hint="Fix `path` in the entry setting.",
                context={"entry": entry.name, "path": str(source.path)},
                retryable=False,
            )
        return source.path

    def _fetch(self, name: str, spec: FetchSpec, dest: Path) -> Path:
        def relay(line: str) -> None:
            self.observer(ProgressEvent(str(spec.kind), name, line))

        def operation() -> Path:
            if spec.kind is FetchKind.GIT:
                return fetch_git(spec, dest, name=name, on_line=relay)
            if spec.kind is FetchKind.SVN:
                return fetch_svn(spec, dest, name=name, on_line=relay)
            return fetch_tarball(spec, dest, name=name, observer=self.observer)

        return call_with_retries(
            operation,
            policy=self.retry,
            name=name,
            logger=self.logger,
            sleep=self.sleep,
        )
