"""Protocol definitions for the scheduling system."""

from collections.abc import Mapping, Sequence
from typing import Protocol

from ..models import TaskRecord
from .core import OptimizerResult
from .graph import DependencyGraph


class Optimizer(Protocol):
    """Protocol for subset/order selection algorithms."""

    def optimize(
        self,
        candidates: Sequence[TaskRecord],
        graph: DependencyGraph,
        deadlines: Mapping[int, int | None],
    ) -> OptimizerResult:
        """Choose which candidates to run and in what order.

        Args:
            candidates: Feasible tasks, in topological order
            graph: Dependency graph (edges outside the candidates are ignored)
            deadlines: Effective deadline per task id, None for no deadline

        Returns:
            OptimizerResult whose order is consistent with the graph. An empty
            order is a valid result and never an error.
        """
        ...
