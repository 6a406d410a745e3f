"""Exact branch-and-bound optimizer for weighted deadline scheduling."""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from wdsched.logger import checks_enabled, get_logger

from ...models import TaskRecord
from ..config import SchedulingConfig
from ..core import OptimizerResult
from ..feasibility import meets_deadline
from ..graph import DependencyGraph
from .interval_dp import IntervalDPOptimizer

logger = get_logger()

# How often (in nodes) the wall clock is consulted when a time limit is set
_TIME_CHECK_INTERVAL = 256


@dataclass
class _SearchState:
    """Partial schedule at one node of the search tree.

    Tasks always start when the previous one finishes: every prerequisite of
    a newly available task is already scheduled, so it has finished by
    ``clock``. The clock is therefore fully determined by the scheduled set.
    """

    clock: int = 0
    order: list[int] = field(default_factory=list)
    scheduled: set[int] = field(default_factory=set)
    weight: int = 0
    available: set[int] = field(default_factory=set)


@dataclass(frozen=True)
class _Incumbent:
    """Best schedule found so far."""

    order: tuple[int, ...] = ()
    weight: int = 0


@dataclass
class _Frame:
    """Branches still to try at one level of the search."""

    task_id: int | None  # Task scheduled to reach this level (None at the root)
    unlocked: list[int]  # Tasks made available by scheduling task_id
    choices: list[int]
    next_index: int = 0


class _Budget:
    """Node and wall-clock limits for one search."""

    def __init__(self, max_nodes: int | None, time_limit_seconds: float | None):
        self.max_nodes = max_nodes
        self.stop_at = (
            time.monotonic() + time_limit_seconds if time_limit_seconds is not None else None
        )
        self.nodes = 0
        self.exhausted = False

    def tick(self) -> bool:
        """Count a node; return False once the budget is spent."""
        self.nodes += 1
        if self.max_nodes is not None and self.nodes > self.max_nodes:
            self.exhausted = True
        elif (
            self.stop_at is not None
            and self.nodes % _TIME_CHECK_INTERVAL == 0
            and time.monotonic() >= self.stop_at
        ):
            self.exhausted = True
        return not self.exhausted


class BranchAndBoundOptimizer:
    """Exhaustive search over precedence-consistent sequences with pruning.

    At every node the current weight is compared against the incumbent. The
    node is pruned when the current weight plus the weight of every task that
    could still be scheduled from here cannot beat the incumbent. Branches
    try available tasks heaviest first, only where the task still finishes by
    its effective deadline. Stopping at any node is itself a candidate
    schedule, which covers skipping tasks.

    The search is iterative (explicit frame stack) and remembers which
    scheduled sets it has already expanded, since two orders of the same set
    lead to identical subtrees.
    """

    def __init__(self, config: SchedulingConfig | None = None):
        self.config = config or SchedulingConfig()

    def optimize(
        self,
        candidates: Sequence[TaskRecord],
        graph: DependencyGraph,
        deadlines: Mapping[int, int | None],
    ) -> OptimizerResult:
        """Find a maximum-weight schedule of the candidates.

        Args:
            candidates: Feasible tasks in topological order
            graph: Dependency graph (restricted to the candidates internally)
            deadlines: Effective deadline per task id

        Returns:
            OptimizerResult with the best order found (empty if none)
        """
        tasks = {task.id: task for task in candidates}
        if not tasks:
            return OptimizerResult(
                order=[], total_weight=0, metadata={"algorithm": "branch_and_bound"}
            )

        local_graph = graph.restricted_to(tasks)

        if not local_graph.has_edges and self.config.search.use_interval_fast_path:
            logger.changes("No dependencies between candidates, using interval DP")
            result = IntervalDPOptimizer().optimize(candidates, local_graph, deadlines)
            result.metadata["fast_path"] = True
            return result

        search = _Search(tasks, local_graph, deadlines, self.config)
        best = search.run()

        logger.changes(
            f"Branch and bound explored {search.budget.nodes} nodes, "
            f"best weight {best.weight} with {len(best.order)} tasks"
        )
        if search.budget.exhausted:
            logger.warning(
                "Search budget exhausted after %d nodes; returning best schedule found",
                search.budget.nodes,
            )

        return OptimizerResult(
            order=list(best.order),
            total_weight=best.weight,
            metadata={
                "algorithm": "branch_and_bound",
                "nodes": search.budget.nodes,
                "budget_exhausted": search.budget.exhausted,
                "fast_path": False,
            },
        )


class _Search:
    """State for a single branch-and-bound run."""

    def __init__(
        self,
        tasks: dict[int, TaskRecord],
        graph: DependencyGraph,
        deadlines: Mapping[int, int | None],
        config: SchedulingConfig,
    ):
        self.tasks = tasks
        self.graph = graph
        self.deadlines = {task_id: deadlines.get(task_id) for task_id in tasks}
        self.budget = _Budget(config.search.max_nodes, config.search.time_limit_seconds)
        self.topo_order, _ = graph.topological_order()
        self.expanded: set[frozenset[int]] = set()

    def run(self) -> _Incumbent:
        state = _SearchState(available=set(self.graph.roots()))
        best = _Incumbent()

        best, root_choices = self._visit(state, best)
        if root_choices is None:
            return best

        stack = [_Frame(task_id=None, unlocked=[], choices=root_choices)]
        while stack:
            frame = stack[-1]
            if frame.next_index >= len(frame.choices):
                stack.pop()
                if frame.task_id is not None:
                    self._unschedule(state, frame.task_id, frame.unlocked)
                continue

            task_id = frame.choices[frame.next_index]
            frame.next_index += 1

            if not self.budget.tick():
                break

            unlocked = self._schedule(state, task_id)
            best, choices = self._visit(state, best)
            if choices is None:
                self._unschedule(state, task_id, unlocked)
                continue
            stack.append(_Frame(task_id=task_id, unlocked=unlocked, choices=choices))

        return best

    def _visit(self, state: _SearchState, best: _Incumbent) -> tuple[_Incumbent, list[int] | None]:
        """Evaluate a node.

        Returns:
            Tuple of (possibly improved incumbent, branches to explore or None
            when the node is pruned, already expanded, or terminal)
        """
        if state.weight > best.weight:
            best = _Incumbent(order=tuple(state.order), weight=state.weight)
            logger.changes(
                f"Found better schedule with weight {best.weight} and {len(best.order)} tasks"
            )

        key = frozenset(state.scheduled)
        if key in self.expanded:
            return best, None
        self.expanded.add(key)

        if state.weight + self._reachable_weight(state) <= best.weight:
            logger.debug(f"  Pruned at clock {state.clock} with weight {state.weight}")
            return best, None

        choices = self._choices(state)
        if not choices:
            return best, None
        return best, choices

    def _choices(self, state: _SearchState) -> list[int]:
        """Available tasks that still finish on time, heaviest first."""
        choices: list[int] = []
        for task_id in sorted(state.available, key=lambda t: (-self.tasks[t].weight, t)):
            task = self.tasks[task_id]
            end = state.clock + task.duration
            if meets_deadline(end, self.deadlines[task_id]):
                choices.append(task_id)
            elif checks_enabled():
                logger.checks(
                    f"  Task {task.label} rejected at clock {state.clock}: "
                    f"end={end} > deadline={self.deadlines[task_id]}"
                )
        return choices

    def _reachable_weight(self, state: _SearchState) -> int:
        """Upper bound on the weight that can still be added from this state.

        Sums every unscheduled task that could finish on time if started now
        and whose prerequisites are scheduled or themselves still reachable.
        """
        reachable: set[int] = set()
        total = 0
        for task_id in self.topo_order:
            if task_id in state.scheduled:
                continue
            task = self.tasks[task_id]
            if not meets_deadline(state.clock + task.duration, self.deadlines[task_id]):
                continue
            deps = self.graph.depends_on[task_id]
            if all(dep in state.scheduled or dep in reachable for dep in deps):
                reachable.add(task_id)
                total += task.weight
        return total

    def _schedule(self, state: _SearchState, task_id: int) -> list[int]:
        """Apply a branch; return the tasks it made available."""
        task = self.tasks[task_id]
        state.order.append(task_id)
        state.scheduled.add(task_id)
        state.weight += task.weight
        state.clock += task.duration
        state.available.discard(task_id)

        unlocked: list[int] = []
        for dependent in sorted(self.graph.dependents[task_id]):
            if dependent in state.scheduled or dependent in state.available:
                continue
            if all(dep in state.scheduled for dep in self.graph.depends_on[dependent]):
                unlocked.append(dependent)
        state.available.update(unlocked)
        return unlocked

    def _unschedule(self, state: _SearchState, task_id: int, unlocked: list[int]) -> None:
        """Undo a branch applied by _schedule."""
        task = self.tasks[task_id]
        state.available.difference_update(unlocked)
        state.available.add(task_id)
        state.clock -= task.duration
        state.weight -= task.weight
        state.scheduled.discard(task_id)
        state.order.pop()
