"""Structured logging and progress reporting helpers."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from llvmenv.fsutil import atomic_write_text


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """One step of a long-running fetch, e.g. bytes downloaded or a VCS line."""

    operation: str
    name: str
    message: str
    current: int | None = None
    total: int | None = None


ProgressObserver = Callable[[ProgressEvent], None]


def ignore_progress(event: ProgressEvent) -> None:
    return None


LogLevel = Literal["debug", "info", "warning", "error"]
LogSink = Callable[[dict[str, Any]], None]


@dataclass(slots=True)
class StructuredLogger:
    """Collects one dict per event; ``sink`` also sees each record as it is logged."""

    records: list[dict[str, Any]] = field(default_factory=list)
    sink: LogSink | None = None

    def log(
        self,
        *,
        operation: str,
        entry: str | None,
        stage: str | None,
        message: str,
        level: LogLevel = "info",
        extra: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        record: dict[str, Any] = {
            "level": level,
            "operation": operation,
            "entry": entry,
            "stage": stage,
            "message": message,
        }
        if extra is not None:
            record["extra"] = extra
        self.records.append(record)
        if self.sink is not None:
            self.sink(record)
        return record

    def records_for_entry(self, entry: str, *, stage: str | None = None) -> list[dict[str, Any]]:
        return [
            record
            for record in self.records
            if record.get("entry") == entry and (stage is None or record.get("stage") == stage)
        ]

    def to_json_lines(self, path: str | Path) -> Path:
        lines = "".join(json.dumps(record, sort_keys=True) + "\n" for record in self.records)
        return atomic_write_text(Path(path), lines)


def format_record(record: dict[str, Any]) -> str:
    """Render a log record as a single human-readable line."""
    scope = record.get("entry") or "-"
    stage = record.get("stage")
    prefix = f"[{record['level']}] {scope}"
    if stage:
        prefix += f" ({stage})"
    return f"{prefix}: {record['message']}"
