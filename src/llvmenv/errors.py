"""Typed error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across the command surface."""

    CONFIG = "E_CONFIG"
    NOT_FOUND = "E_NOT_FOUND"
    FETCH = "E_FETCH"
    BUILD = "E_BUILD"
    STALE_SELECTION = "E_STALE_SELECTION"


EXIT_CODES: Mapping[str, int] = {
    ErrorCode.CONFIG.value: 3,
    ErrorCode.NOT_FOUND.value: 4,
    ErrorCode.FETCH.value: 5,
    ErrorCode.BUILD.value: 6,
    ErrorCode.STALE_SELECTION.value: 7,
}


class LlvmenvError(Exception):
    """Base error class that carries code, optional hint, and context.

    Multi-line context values, such as a build tool's output tail, are
    rendered indented under their key.
    """

    code: str
    message: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.message = message
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        lines = [self.message]
        if self.hint:
            lines.append(f"Hint: {self.hint}")
        lines.extend(_context_lines(self.context))
        return "\n".join(lines)

    @property
    def exit_code(self) -> int:
        return EXIT_CODES.get(self.code, 1)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "exit_code": self.exit_code,
            "message": self.message,
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


def _context_lines(context: Mapping[str, str]) -> Iterator[str]:
    for key, value in context.items():
        if not value:
            continue
        if "\n" in value:
            yield f"  {key}:"
            yield from (f"    {line}" for line in value.strip("\n").splitlines())
        else:
            yield f"  {key}: {value}"


class ConfigError(LlvmenvError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.CONFIG, hint=hint, context=context)


class NotFoundError(LlvmenvError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.NOT_FOUND, hint=hint, context=context)


class FetchError(LlvmenvError):
    """Fetching a source failed.

    ``retryable`` is False for failures another attempt cannot fix, such as a
    missing VCS tool or a destination that is not a working copy.
    """

    retryable: bool

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
        retryable: bool = True,
    ) -> None:
        super().__init__(message, code=ErrorCode.FETCH, hint=hint, context=context)
        self.retryable = retryable


class BuildError(LlvmenvError):
    """External configure/compile/install step exited non-zero.

    ``stage`` names the build state that failed and ``tail`` keeps the last
    lines the external tool printed.
    """

    stage: str
    returncode: int
    tail: tuple[str, ...]

    def __init__(
        self,
        message: str,
        *,
        stage: str,
        returncode: int,
        tail: Sequence[str] = (),
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        merged = {"stage": stage, "returncode": str(returncode), **dict(context or {})}
        if tail:
            merged["output"] = "\n".join(tail) + "\n"
        super().__init__(message, code=ErrorCode.BUILD, hint=hint, context=merged)
        self.stage = stage
        self.returncode = returncode
        self.tail = tuple(tail)


class StaleSelectionError(LlvmenvError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.STALE_SELECTION, hint=hint, context=context)


def exit_code_for(error: LlvmenvError) -> int:
    return error.exit_code


__all__ = [
    "EXIT_CODES",
    "BuildError",
    "ConfigError",
    "ErrorCode",
    "FetchError",
    "LlvmenvError",
    "NotFoundError",
    "StaleSelectionError",
    "exit_code_for",
]
