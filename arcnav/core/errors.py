from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

Severity = Literal["error", "warning", "information"]

DEFAULT_SEVERITY_BY_CODE: dict[str, Severity] = {
    "paste_nothing": "information",
}


@dataclass
class ArcnavError(Exception):
    code: str
    message: str
    detail: str | None = None
    severity: Severity = "error"

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message} ({self.detail})"
        return self.message


@dataclass
class BackendError(ArcnavError):
    """Failure reported by the archive engine behind the browse session."""

    operation: str = ""


@dataclass
class InvariantViolation(ArcnavError):
    """Internal state drifted out of its documented bounds."""


def format_error(error: BaseException) -> tuple[str, Severity]:
    if isinstance(error, ArcnavError):
        prefix = f"[{error.code}] " if error.code else ""
        severity = DEFAULT_SEVERITY_BY_CODE.get(error.code, error.severity)
        return f"{prefix}{error}", severity
    return f"{error}", "error"


def wrap_backend_error(
    error: BaseException,
    *,
    operation: str,
    code: str = "backend_failed",
    message: str | None = None,
) -> BackendError:
    if isinstance(error, BackendError):
        if not error.operation:
            error.operation = operation
        return error
    if isinstance(error, ArcnavError):
        return BackendError(
            code=error.code,
            message=error.message,
            detail=error.detail,
            severity=error.severity,
            operation=operation,
        )
    return BackendError(
        code=code,
        message=message or f"{operation.capitalize()} failed.",
        detail=str(error) or type(error).__name__,
        operation=operation,
    )
