"""Error taxonomy and explicit result values returned by the figure engines."""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """Single structural issue with a stable code."""

    code: str
    message: str


class FigureEngineError(Exception):
    """Base class for recoverable engine failures."""

    code = "figure_engine_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MalformedFigureError(FigureEngineError):
    """A figure violates a structural invariant."""

    code = "malformed_figure"

    def __init__(self, issues: tuple[ValidationIssue, ...] | list[ValidationIssue]) -> None:
        self.issues = tuple(issues)
        message = "Malformed figure: " + "; ".join(issue.message for issue in self.issues)
        super().__init__(message)


class UnsupportedGeometryError(FigureEngineError):
    """The figure is well formed but the operation's preconditions are unmet."""

    code = "unsupported_geometry"


class InvalidDartSpecError(FigureEngineError):
    """The dart legs and apex do not describe a dart on the outline."""

    code = "invalid_dart_spec"


@dataclass(frozen=True)
class EngineResult(Generic[T]):
    """Outcome of a public engine call: either a value or an error."""

    value: T | None = None
    error: FigureEngineError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    @classmethod
    def success(cls, value: T) -> "EngineResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: FigureEngineError) -> "EngineResult[T]":
        return cls(error=error)


def fail_closed(operation: str) -> Callable[[Callable[..., T]], Callable[..., EngineResult[T]]]:
    """Turn engine exceptions into explicit failure results for ``operation``."""

    def decorator(func: Callable[..., T]) -> Callable[..., EngineResult[T]]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> EngineResult[T]:
            try:
                value = func(*args, **kwargs)
            except FigureEngineError as exc:
                logger.warning("%s failed [%s]: %s", operation, exc.code, exc.message)
                return EngineResult.failure(exc)
            return EngineResult.success(value)

        return wrapper

    return decorator


__all__ = [
    "EngineResult",
    "FigureEngineError",
    "InvalidDartSpecError",
    "MalformedFigureError",
    "UnsupportedGeometryError",
    "ValidationIssue",
    "fail_closed",
]
