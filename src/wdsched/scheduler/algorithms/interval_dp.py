"""Dynamic-programming optimizer for inputs without dependencies."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from wdsched.logger import get_logger

from ...models import TaskRecord
from ..core import OptimizerResult
from ..graph import DependencyGraph

logger = get_logger()


@dataclass(frozen=True)
class _Choice:
    """One include decision, linked back to the decision before it."""

    task_id: int
    previous: _Choice | None


@dataclass(frozen=True)
class _State:
    """Best weight reachable with a given amount of busy time."""

    busy_until: int
    weight: int
    last: _Choice | None


def _sort_key(task: TaskRecord, deadlines: Mapping[int, int | None]) -> tuple[float, int]:
    deadline = deadlines.get(task.id)
    return (math.inf if deadline is None else deadline, task.id)


def _pareto(states: list[_State]) -> list[_State]:
    """Keep only states not dominated by an earlier-finishing, heavier state."""
    states.sort(key=lambda s: (s.busy_until, -s.weight))
    front: list[_State] = []
    for state in states:
        if front and state.weight <= front[-1].weight:
            continue
        front.append(state)
    return front


class IntervalDPOptimizer:
    """Exact optimizer for precedence-free inputs.

    On a single resource with no precedence, a subset of tasks can meet all
    its deadlines exactly when it does so in earliest-due-date order. So the
    candidates are sorted by effective deadline and each one is either
    included (appended at the current busy time) or skipped, the classic
    include/exclude recurrence ``dp[i] = max(dp[i-1], w[i] + dp[prev])``.
    States are keyed by busy time and pruned to the Pareto front of
    (busy time, weight), which keeps the table small without bounding time.

    Inputs with dependencies are rejected; use the branch-and-bound optimizer.
    """

    def optimize(
        self,
        candidates: Sequence[TaskRecord],
        graph: DependencyGraph,
        deadlines: Mapping[int, int | None],
    ) -> OptimizerResult:
        """Select the maximum-weight subset that meets every deadline.

        Raises:
            ValueError: If the candidates have dependencies between them
        """
        ids = [task.id for task in candidates]
        if graph.restricted_to(ids).has_edges:
            raise ValueError("Interval DP requires candidates without dependencies")

        ordered = sorted(candidates, key=lambda task: _sort_key(task, deadlines))
        front = [_State(busy_until=0, weight=0, last=None)]

        for task in ordered:
            deadline = deadlines.get(task.id)
            extended: list[_State] = []
            for state in front:
                end = state.busy_until + task.duration
                if deadline is not None and end > deadline:
                    continue
                extended.append(
                    _State(
                        busy_until=end,
                        weight=state.weight + task.weight,
                        last=_Choice(task.id, state.last),
                    )
                )
            front = _pareto(front + extended)
            logger.debug(f"  DP after task {task.id}: {len(front)} states")

        best = max(front, key=lambda s: (s.weight, -s.busy_until))

        order: list[int] = []
        choice = best.last
        while choice is not None:
            order.append(choice.task_id)
            choice = choice.previous
        order.reverse()

        logger.changes(f"Interval DP selected {len(order)} tasks with weight {best.weight}")
        return OptimizerResult(
            order=order,
            total_weight=best.weight,
            metadata={"algorithm": "interval_dp", "states": len(front)},
        )
