"""High-level scheduling service."""

from __future__ import annotations

from collections.abc import Iterable

from ..exceptions import CircularDependencyError, DuplicateTaskError
from ..logger import get_logger
from ..models import TaskRecord
from .algorithms import create_optimizer
from .config import CyclePolicy, SchedulingConfig
from .core import (
    CycleReport,
    FeasibilityResult,
    ScheduledTask,
    SchedulingResult,
    SchedulingStatus,
)
from .cycles import CycleDetector, break_cycles
from .feasibility import FeasibilityAnalyzer
from .graph import DependencyGraph
from .materializer import ScheduleMaterializer

logger = get_logger()


class SchedulingService:
    """Run the full scheduling pipeline on one snapshot of tasks.

    This service coordinates:
    - DependencyGraph (forward and reverse adjacency)
    - CycleDetector (gate, fail fast or break cycles per config)
    - FeasibilityAnalyzer (EST and deadline filtering)
    - Optimizer (subset and order selection)
    - ScheduleMaterializer (final timings)

    Each call to schedule() recomputes everything from the snapshot; nothing
    is shared between runs.
    """

    def __init__(self, tasks: Iterable[TaskRecord], config: SchedulingConfig | None = None):
        """Initialize the scheduling service.

        Args:
            tasks: Task records to schedule
            config: Optional scheduling configuration

        Raises:
            DuplicateTaskError: If two records share an id
        """
        self.tasks = list(tasks)
        self.config = config or SchedulingConfig()
        self.task_by_id: dict[int, TaskRecord] = {}
        for task in self.tasks:
            if task.id in self.task_by_id:
                raise DuplicateTaskError(f"Duplicate task id: {task.id}")
            self.task_by_id[task.id] = task

    def analyze(self) -> tuple[DependencyGraph, CycleReport, FeasibilityResult]:
        """Run the pipeline up to feasibility analysis.

        Returns:
            Tuple of (graph used for scheduling, cycle report, feasibility result)

        Raises:
            CircularDependencyError: If cycles exist and the policy is fail fast
        """
        graph = DependencyGraph.build(self.tasks)
        graph, cycle_report = self._gate_cycles(graph)
        feasibility = FeasibilityAnalyzer(self.tasks, graph, self.config).analyze()
        return graph, cycle_report, feasibility

    def schedule(self) -> SchedulingResult:
        """Schedule the tasks.

        Returns:
            SchedulingResult with the ordered schedule, total weight and warnings

        Raises:
            CircularDependencyError: If cycles exist and the policy is fail fast
        """
        if not self.tasks:
            logger.changes("No tasks to schedule")
            return SchedulingResult.empty()

        logger.changes(
            f"Scheduling {len(self.tasks)} tasks with {self.config.algorithm.type.value}, "
            f"deadline flexibility {self.config.deadline_flexibility}"
        )

        graph, cycle_report, feasibility = self.analyze()

        warnings: list[str] = [
            f"Dropped dependency of task {dependent} on task {prerequisite} to break a cycle"
            for dependent, prerequisite in cycle_report.broken_edges
        ]
        warnings.extend(
            f"Task {self.task_by_id[task_id].label} excluded: {reason}"
            for task_id, reason in sorted(feasibility.exclusion_reasons.items())
        )

        candidates = [self.task_by_id[task_id] for task_id in feasibility.feasible]
        if not candidates:
            logger.changes("No tasks can meet their deadlines after considering dependencies")
            return SchedulingResult.empty(
                excluded=dict(feasibility.exclusion_reasons),
                cycle_report=cycle_report,
                warnings=warnings,
            )

        optimizer = create_optimizer(self.config)
        optimizer_result = optimizer.optimize(
            candidates, graph.restricted_to(feasibility.feasible), feasibility.effective_deadlines
        )

        if optimizer_result.metadata.get("budget_exhausted"):
            warnings.append("Search budget exhausted; schedule may not be optimal")

        scheduled = ScheduleMaterializer(self.task_by_id, graph).materialize(
            optimizer_result.order, feasibility.effective_deadlines
        )
        for st in scheduled:
            if st.deadline_violated:
                warnings.append(
                    f"Task {self.task_by_id[st.task_id].label} finishes at {st.end}, "
                    f"after its deadline {st.deadline}"
                )

        total_weight = sum(st.weight for st in scheduled)
        status = SchedulingStatus.SCHEDULED if scheduled else SchedulingStatus.EMPTY
        self._log_final_schedule(scheduled, total_weight)

        return SchedulingResult(
            status=status,
            scheduled_tasks=scheduled,
            total_weight=total_weight,
            excluded=dict(feasibility.exclusion_reasons),
            cycle_report=cycle_report,
            warnings=warnings,
            algorithm_metadata=optimizer_result.metadata,
        )

    def _gate_cycles(self, graph: DependencyGraph) -> tuple[DependencyGraph, CycleReport]:
        """Check for cycles and apply the configured policy."""
        cycles = CycleDetector(graph).find_cycles()
        if not cycles:
            return graph, CycleReport()

        report = CycleReport(cycles=cycles)
        if self.config.cycle_policy == CyclePolicy.FAIL_FAST:
            raise CircularDependencyError(
                f"Circular dependencies detected: {report.describe()}", cycles
            )

        logger.warning("Circular dependencies detected: %s", report.describe())
        return break_cycles(graph)

    def _log_final_schedule(self, scheduled: list[ScheduledTask], total_weight: int) -> None:
        logger.changes("Final schedule:")
        for st in scheduled:
            logger.changes(
                f"  Task {self.task_by_id[st.task_id].label} (weight {st.weight}, "
                f"start {st.start}, end {st.end}, deadline {st.deadline})"
            )
        logger.changes(f"Total weight: {total_weight}")


def schedule_tasks(
    tasks: Iterable[TaskRecord], config: SchedulingConfig | None = None
) -> SchedulingResult:
    """Convenience wrapper: build a service and run it once."""
    return SchedulingService(tasks, config).schedule()
