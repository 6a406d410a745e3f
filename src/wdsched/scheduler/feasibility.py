"""Earliest start times and deadline feasibility."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable

from ..logger import get_logger
from ..models import TaskRecord
from .config import SchedulingConfig
from .core import FeasibilityResult
from .graph import DependencyGraph

logger = get_logger()


def effective_deadline(task: TaskRecord, config: SchedulingConfig) -> int | None:
    """Deadline after applying the configured flexibility.

    ``deadline + trunc(deadline * flexibility)``, where flexibility is the
    global fraction plus the high-priority extra for tasks at or above the
    weight threshold. Tasks without a deadline stay unbounded (None).
    """
    if task.deadline is None:
        return None

    flexibility = config.deadline_flexibility
    if task.weight >= config.high_priority_weight_threshold:
        flexibility += config.high_priority_extra_flexibility

    return task.deadline + int(task.deadline * flexibility)


def meets_deadline(end: int, deadline: int | None) -> bool:
    return deadline is None or end <= deadline


class FeasibilityAnalyzer:
    """Classify tasks as schedulable before the optimizer runs.

    This analyzer:
    1. Propagates earliest start times (EST) forward in topological order,
       treating prerequisites as if they ran back to back with nothing else
    2. Marks tasks whose EST + duration overshoots their effective deadline
    3. Reports tasks never reached by the traversal (behind a cycle) as unreachable
    4. Excludes everything that transitively depends on an excluded task

    EST is a lower bound only: the optimizer and materializer add the
    serialization of the single resource on top of it.
    """

    def __init__(
        self,
        tasks: Iterable[TaskRecord],
        graph: DependencyGraph,
        config: SchedulingConfig | None = None,
    ):
        self.tasks = {task.id: task for task in tasks}
        self.graph = graph
        self.config = config or SchedulingConfig()

    def analyze(self) -> FeasibilityResult:
        """Run the analysis.

        Returns:
            FeasibilityResult with EST, effective deadlines and exclusions
        """
        earliest_start, topo_order = self._compute_earliest_start()
        deadlines = {
            task_id: effective_deadline(task, self.config) for task_id, task in self.tasks.items()
        }

        result = FeasibilityResult(
            earliest_start=earliest_start,
            effective_deadlines=deadlines,
            feasible=[],
        )

        processed = set(topo_order)
        for task_id in sorted(self.tasks):
            if task_id not in processed:
                result.unreachable.add(task_id)
                result.exclusion_reasons[task_id] = "unreachable: waits on a dependency cycle"
                logger.checks(f"Task {self.tasks[task_id].label} is unreachable")

        if not self.config.ignores_deadlines:
            for task_id in topo_order:
                task = self.tasks[task_id]
                end = earliest_start[task_id] + task.duration
                deadline = deadlines[task_id]
                feasible = meets_deadline(end, deadline)
                logger.checks(
                    f"Task {task.label}: EST={earliest_start[task_id]}, duration={task.duration}, "
                    f"end={end}, deadline={task.deadline}, effective deadline={deadline}, "
                    f"feasible={feasible}"
                )
                if not feasible:
                    result.deadline_infeasible.add(task_id)
                    result.exclusion_reasons[task_id] = (
                        f"cannot meet deadline: earliest end {end} > {deadline}"
                    )

        roots = result.deadline_infeasible | result.unreachable
        for task_id in sorted(self.graph.descendants(roots)):
            if task_id in result.exclusion_reasons:
                continue
            result.blocked.add(task_id)
            result.exclusion_reasons[task_id] = "blocked: depends on an excluded task"
            logger.checks(f"Task {self.tasks[task_id].label} is blocked by an excluded dependency")

        result.feasible = [
            task_id for task_id in topo_order if task_id not in result.exclusion_reasons
        ]
        logger.changes(
            f"Feasibility: {len(result.feasible)} of {len(self.tasks)} tasks are candidates"
        )
        return result

    def _compute_earliest_start(self) -> tuple[dict[int, int], list[int]]:
        """Kahn traversal computing EST for every task it reaches.

        Returns:
            Tuple of (EST by id for processed tasks, processing order)
        """
        in_degree = {task_id: len(self.graph.depends_on[task_id]) for task_id in self.tasks}
        earliest_start: dict[int, int] = {}
        queue: deque[int] = deque()

        for task_id in sorted(self.tasks):
            if in_degree[task_id] == 0:
                earliest_start[task_id] = 0
                queue.append(task_id)

        order: list[int] = []
        while queue:
            task_id = queue.popleft()
            order.append(task_id)
            end = earliest_start[task_id] + self.tasks[task_id].duration

            for dependent in sorted(self.graph.dependents[task_id]):
                previous = earliest_start.get(dependent, 0)
                earliest_start[dependent] = max(previous, end)
                logger.debug(
                    f"  Dependent {dependent}: previous EST={previous}, "
                    f"new EST={earliest_start[dependent]}"
                )
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        # Tasks stuck behind a cycle may have a partial EST; drop it
        processed = set(order)
        return {k: v for k, v in earliest_start.items() if k in processed}, order
