"""Typed error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across the generator and snapshot APIs."""

    VALIDATION = "E_VALIDATION"
    EXHAUSTED_INPUT = "E_EXHAUSTED_INPUT"
    FILESYSTEM = "E_FILESYSTEM"
    CAPABILITY = "E_CAPABILITY"
    SNAPSHOT = "E_SNAPSHOT"


class RandomDirError(Exception):
    """Base error class that carries code, optional hint, and context."""

    code: str
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
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.context:
            for k, v in self.context.items():
                if v:
                    parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class ValidationError(RandomDirError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.VALIDATION, hint=hint, context=context)


class ExhaustedInputError(RandomDirError):
    def __init__(
        self,
        message: str = "Decision source is exhausted.",
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.EXHAUSTED_INPUT, hint=hint, context=context)


class FilesystemOperationError(RandomDirError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
        code: ErrorCode = ErrorCode.FILESYSTEM,
    ) -> None:
        super().__init__(message, code=code, hint=hint, context=context)


class CapabilityUnavailableError(FilesystemOperationError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, hint=hint, context=context, code=ErrorCode.CAPABILITY)


class SnapshotMismatchError(RandomDirError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.SNAPSHOT, hint=hint, context=context)


class HardLinkInvariantError(AssertionError):
    """A hard link to a known non-directory entry could not be created.

    Not a ``RandomDirError``: the link pool only ever holds entries created
    earlier in the same run, so this signals a broken environment rather
    than a recoverable condition.
    """


def filesystem_error(operation: str, path: str | bytes, exc: OSError) -> FilesystemOperationError:
    """Wrap ``exc`` raised by ``operation`` on ``path``; chain it with ``from exc``."""
    return FilesystemOperationError(
        f"Filesystem operation `{operation}` failed: {exc.strerror or exc}",
        context={
            "operation": operation,
            "path": _display(path),
            "errno": str(exc.errno) if exc.errno is not None else "",
        },
    )


def _display(path: str | bytes) -> str:
    if isinstance(path, bytes):
        return path.decode("utf-8", errors="backslashreplace")
    return path.encode("utf-8", errors="surrogateescape").decode("utf-8", errors="backslashreplace")


__all__ = [
    "CapabilityUnavailableError",
    "ErrorCode",
    "ExhaustedInputError",
    "FilesystemOperationError",
    "HardLinkInvariantError",
    "RandomDirError",
    "SnapshotMismatchError",
    "ValidationError",
    "filesystem_error",
]
