"""Final timing pass over the optimizer's selection."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from ..logger import get_logger
from ..models import TaskRecord
from .core import ScheduledTask
from .feasibility import meets_deadline
from .graph import DependencyGraph

logger = get_logger()


class ScheduleMaterializer:
    """Compute authoritative start and end times for selected tasks.

    One pass in execution order: each task starts at the later of the running
    clock and the end of its selected prerequisites, and the clock moves to
    its end. Reported timings come only from here, never from the optimizer's
    own bookkeeping.
    """

    def __init__(self, tasks: Mapping[int, TaskRecord], graph: DependencyGraph):
        self.tasks = tasks
        self.graph = graph

    def materialize(
        self,
        order: Sequence[int],
        deadlines: Mapping[int, int | None] | None = None,
    ) -> list[ScheduledTask]:
        """Place the selected tasks on the timeline.

        Args:
            order: Selected ids in intended execution order. If the order is
                not consistent with the dependency graph, a topological order
                of the selected ids is used instead.
            deadlines: Effective deadline per id, used to flag violations

        Returns:
            Scheduled tasks sorted by start time
        """
        deadlines = deadlines or {}
        execution_order = self._execution_order(order)

        end_times: dict[int, int] = {}
        scheduled: list[ScheduledTask] = []
        clock = 0

        for task_id in execution_order:
            task = self.tasks[task_id]
            start = clock
            for dep_id in self.graph.depends_on.get(task_id, ()):
                if dep_id in end_times:
                    start = max(start, end_times[dep_id])
            end = start + task.duration
            end_times[task_id] = end
            clock = end

            deadline = deadlines.get(task_id, task.deadline)
            violated = not meets_deadline(end, deadline)
            if violated:
                logger.warning(
                    "Task %s ends at %d, after its deadline %s", task.label, end, deadline
                )
            scheduled.append(
                ScheduledTask(
                    task_id=task_id,
                    start=start,
                    end=end,
                    weight=task.weight,
                    deadline=deadline,
                    deadline_violated=violated,
                )
            )

        # Stable sort keeps execution order among equal starts (zero-duration tasks)
        scheduled.sort(key=lambda st: st.start)
        return scheduled

    def _execution_order(self, order: Sequence[int]) -> list[int]:
        selected = list(dict.fromkeys(order))
        if self._respects_precedence(selected):
            return selected

        logger.warning("Selected order violates dependencies; using topological order instead")
        topo, stalled = self.graph.restricted_to(selected).topological_order()
        return topo + sorted(stalled)

    def _respects_precedence(self, order: list[int]) -> bool:
        position = {task_id: index for index, task_id in enumerate(order)}
        for task_id in order:
            for dep_id in self.graph.depends_on.get(task_id, ()):
                if dep_id in position and position[dep_id] > position[task_id]:
                    return False
        return True
