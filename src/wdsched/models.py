"""Data models for wdsched."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .exceptions import InvalidTaskError


def _empty_ids() -> frozenset[int]:
    return frozenset()


@dataclass(frozen=True)
class TaskRecord:
    """A unit of work to be placed on the serial timeline.

    Records are immutable snapshots handed to the scheduler for one run.
    Timing values (earliest start, end) are produced by the scheduler into
    result objects and never stored here.

    Attributes:
        id: Unique identifier, assigned by whoever owns the task store
        weight: Positive importance; the scheduler maximizes the sum of these
        duration: Time units needed once started (0 completes instantly)
        deadline: Time unit by which the task must finish, None for no deadline
        dependencies: Ids that must complete first. Ids not present in the
            scheduled set are treated as already satisfied.
        name: Optional display label
    """

    id: int
    weight: int
    duration: int
    deadline: int | None = None
    dependencies: frozenset[int] = field(default_factory=_empty_ids)
    name: str = ""

    def __post_init__(self) -> None:
        # Accept any iterable of ids; store a frozenset so records stay hashable
        if not isinstance(self.dependencies, frozenset):
            object.__setattr__(self, "dependencies", frozenset(self.dependencies))

        if self.duration < 0:
            raise InvalidTaskError(f"Task {self.id} has negative duration {self.duration}")
        if self.weight <= 0:
            raise InvalidTaskError(f"Task {self.id} must have a positive weight, got {self.weight}")
        if self.id in self.dependencies:
            raise InvalidTaskError(f"Task {self.id} cannot depend on itself")

    @property
    def has_deadline(self) -> bool:
        return self.deadline is not None

    @property
    def label(self) -> str:
        """Human readable label for log and CLI output."""
        if self.name:
            return f"{self.id} ({self.name})"
        return str(self.id)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TaskRecord:
        """Build a record from a plain mapping.

        Expected keys: id, weight, duration, and optionally deadline,
        dependencies and name.
        """
        deps: Iterable[int] = data.get("dependencies") or ()
        deadline = data.get("deadline")
        return cls(
            id=int(data["id"]),
            weight=int(data["weight"]),
            duration=int(data["duration"]),
            deadline=None if deadline is None else int(deadline),
            dependencies=frozenset(int(d) for d in deps),
            name=str(data.get("name") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain mapping (inverse of from_dict)."""
        data: dict[str, Any] = {
            "id": self.id,
            "weight": self.weight,
            "duration": self.duration,
            "deadline": self.deadline,
            "dependencies": sorted(self.dependencies),
        }
        if self.name:
            data["name"] = self.name
        return data
