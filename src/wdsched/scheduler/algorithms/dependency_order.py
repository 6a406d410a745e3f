"""Deadline-ignoring optimizer that runs every candidate in dependency order."""

from collections.abc import Mapping, Sequence

from wdsched.logger import get_logger

from ...models import TaskRecord
from ..core import OptimizerResult
from ..graph import DependencyGraph

logger = get_logger()


class DependencyOrderOptimizer:
    """Select every candidate and run them in topological order.

    Deadlines are not consulted; overruns are reported by the service as
    warnings on the materialized schedule.
    """

    def optimize(
        self,
        candidates: Sequence[TaskRecord],
        graph: DependencyGraph,
        deadlines: Mapping[int, int | None],
    ) -> OptimizerResult:
        tasks = {task.id: task for task in candidates}
        order, stalled = graph.restricted_to(tasks).topological_order()
        if stalled:
            # Only possible if a cycle slipped past the gate; run those last
            logger.warning("Tasks outside topological order: %s", sorted(stalled))
            order.extend(sorted(stalled))

        total_weight = sum(tasks[task_id].weight for task_id in order)
        logger.changes(f"Dependency order scheduled all {len(order)} candidates")
        return OptimizerResult(
            order=order,
            total_weight=total_weight,
            metadata={"algorithm": "dependency_order"},
        )
