"""Core dataclasses for the scheduling system."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def _default_str_list() -> list[str]:
    return []


def _default_dict() -> dict[str, Any]:
    return {}


class SchedulingStatus(str, Enum):
    """Outcome of a scheduling run."""

    SCHEDULED = "scheduled"  # At least one task selected
    EMPTY = "empty"  # Nothing could be scheduled (or nothing was given)


@dataclass
class ScheduledTask:
    """A task placed on the timeline."""

    task_id: int
    start: int
    end: int
    weight: int
    deadline: int | None  # Effective deadline after flexibility, None = no deadline
    deadline_violated: bool = False

    @property
    def duration(self) -> int:
        return self.end - self.start


@dataclass
class CycleReport:
    """Cycles found in the dependency graph and, if broken, the dropped edges.

    Each cycle lists task ids along ``depends_on`` edges without repeating the
    first id at the end: ``(1, 3, 2)`` means 1 -> 3 -> 2 -> 1, and the last id
    depends on the first. format_cycle() adds the closing id for display.
    Broken edges are ``(dependent, prerequisite)`` pairs.
    """

    cycles: list[tuple[int, ...]] = field(default_factory=list)
    broken_edges: list[tuple[int, int]] = field(default_factory=list)

    @property
    def has_cycles(self) -> bool:
        return bool(self.cycles)

    @staticmethod
    def format_cycle(cycle: tuple[int, ...]) -> str:
        """Render a cycle as ``1 -> 2 -> 3 -> 1``."""
        return " -> ".join(str(task_id) for task_id in (*cycle, cycle[0]))

    def describe(self) -> str:
        return "; ".join(self.format_cycle(cycle) for cycle in self.cycles)


@dataclass
class FeasibilityResult:
    """Earliest start times and deadline feasibility for one run."""

    earliest_start: dict[int, int]
    effective_deadlines: dict[int, int | None]
    feasible: list[int]  # In topological order
    deadline_infeasible: set[int] = field(default_factory=set)
    unreachable: set[int] = field(default_factory=set)
    blocked: set[int] = field(default_factory=set)
    exclusion_reasons: dict[int, str] = field(default_factory=dict)

    def is_feasible(self, task_id: int) -> bool:
        return task_id not in self.exclusion_reasons and task_id in self.earliest_start

    @property
    def excluded(self) -> set[int]:
        return self.deadline_infeasible | self.unreachable | self.blocked


@dataclass
class OptimizerResult:
    """Result from an optimizer: a precedence-consistent execution order."""

    order: list[int]
    total_weight: int
    metadata: dict[str, Any] = field(default_factory=_default_dict)


@dataclass
class SchedulingResult:
    """Complete result of a scheduling run."""

    status: SchedulingStatus
    scheduled_tasks: list[ScheduledTask]
    total_weight: int
    excluded: dict[int, str] = field(default_factory=dict)
    cycle_report: CycleReport = field(default_factory=CycleReport)
    warnings: list[str] = field(default_factory=_default_str_list)
    algorithm_metadata: dict[str, Any] = field(default_factory=_default_dict)

    @property
    def order(self) -> list[int]:
        """Selected task ids sorted by start time."""
        return [st.task_id for st in self.scheduled_tasks]

    @property
    def is_empty(self) -> bool:
        return self.status == SchedulingStatus.EMPTY

    def by_id(self) -> dict[int, ScheduledTask]:
        return {st.task_id: st for st in self.scheduled_tasks}

    def start_times(self) -> dict[int, int]:
        return {st.task_id: st.start for st in self.scheduled_tasks}

    def end_times(self) -> dict[int, int]:
        return {st.task_id: st.end for st in self.scheduled_tasks}

    @classmethod
    def empty(cls, **kwargs: Any) -> SchedulingResult:
        return cls(status=SchedulingStatus.EMPTY, scheduled_tasks=[], total_weight=0, **kwargs)
