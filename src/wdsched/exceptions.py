"""Custom exceptions for wdsched."""

from __future__ import annotations

from collections.abc import Sequence


class WdschedError(Exception):
    """Base exception for all wdsched errors."""

    pass


class ValidationError(WdschedError):
    """Raised when validation fails."""

    pass


class InvalidTaskError(ValidationError):
    """Raised when a task record violates its own invariants."""

    pass


class DuplicateTaskError(ValidationError):
    """Raised when two task records share an id."""

    pass


class CircularDependencyError(ValidationError):
    """Raised when a circular dependency is detected.

    The offending cycles are kept on the exception so callers can report them.
    """

    def __init__(self, message: str, cycles: Sequence[tuple[int, ...]] = ()) -> None:
        super().__init__(message)
        self.cycles: list[tuple[int, ...]] = list(cycles)


class ParseError(WdschedError):
    """Raised when YAML parsing fails."""

    pass
