"""CP-SAT optimizer using Google OR-Tools."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from ortools.sat.python import cp_model

from wdsched.logger import changes_enabled, get_logger

from ...models import TaskRecord
from ..config import SchedulingConfig
from ..core import OptimizerResult
from ..graph import DependencyGraph

logger = get_logger()

# Type alias for per-task variable dictionaries
TaskVarsDict = dict[int, dict[str, Any]]


class _SolutionProgressCallback(cp_model.CpSolverSolutionCallback):
    """Callback to log progress when new solutions are found."""

    def __init__(self) -> None:
        super().__init__()
        self._solution_count = 0

    def on_solution_callback(self) -> None:
        self._solution_count += 1
        logger.changes(
            "CP-SAT: Solution #%d found - weight=%d, bound=%d, time=%.1fs",
            self._solution_count,
            self.objective_value,
            self.best_objective_bound,
            self.wall_time,
        )


class CPSATOptimizer:
    """Exact optimizer expressed as a CP-SAT model.

    Every candidate gets an optional interval on one no-overlap timeline.
    A present task forces its in-scope prerequisites to be present and to end
    before it starts, and must end by its effective deadline. The objective
    maximizes the total weight of present tasks.
    """

    def __init__(self, config: SchedulingConfig | None = None):
        self.config = config or SchedulingConfig()

    def optimize(
        self,
        candidates: Sequence[TaskRecord],
        graph: DependencyGraph,
        deadlines: Mapping[int, int | None],
    ) -> OptimizerResult:
        """Solve the model and return the selected tasks in execution order."""
        tasks = {task.id: task for task in candidates}
        if not tasks:
            return OptimizerResult(
                order=[], total_weight=0, metadata={"algorithm": "cpsat", "status": "no_tasks"}
            )

        local_graph = graph.restricted_to(tasks)
        topo_order, _ = local_graph.topological_order()
        horizon = sum(task.duration for task in tasks.values())

        model = cp_model.CpModel()
        task_vars = self._create_task_variables(model, tasks, deadlines, horizon)
        self._add_precedence_constraints(model, task_vars, local_graph)
        model.add_no_overlap([vars_dict["interval"] for vars_dict in task_vars.values()])
        model.maximize(
            sum(
                tasks[task_id].weight * vars_dict["present"]
                for task_id, vars_dict in task_vars.items()
            )
        )

        solver, status_name = self._solve_model(model)
        if status_name not in ("OPTIMAL", "FEASIBLE"):
            logger.warning("CP-SAT finished without a solution (status %s)", status_name)
            return OptimizerResult(
                order=[],
                total_weight=0,
                metadata={
                    "algorithm": "cpsat",
                    "status": status_name,
                    "budget_exhausted": status_name == "UNKNOWN",
                },
            )

        order = self._extract_order(solver, task_vars, topo_order)
        total_weight = sum(tasks[task_id].weight for task_id in order)
        logger.changes(
            f"CP-SAT selected {len(order)} tasks with weight {total_weight} ({status_name})"
        )

        return OptimizerResult(
            order=order,
            total_weight=total_weight,
            metadata={
                "algorithm": "cpsat",
                "status": status_name,
                "objective_value": solver.objective_value,
                "solve_time_seconds": solver.wall_time,
                # FEASIBLE means the solver stopped at its limit before proving optimality
                "budget_exhausted": status_name == "FEASIBLE",
            },
        )

    def _create_task_variables(
        self,
        model: cp_model.CpModel,
        tasks: dict[int, TaskRecord],
        deadlines: Mapping[int, int | None],
        horizon: int,
    ) -> TaskVarsDict:
        """Create presence, start, end and interval variables per task."""
        task_vars: TaskVarsDict = {}
        for task_id, task in tasks.items():
            present = model.new_bool_var(f"present_{task_id}")
            start = model.new_int_var(0, horizon, f"start_{task_id}")
            end = model.new_int_var(0, horizon, f"end_{task_id}")
            interval = model.new_optional_interval_var(
                start, task.duration, end, present, f"interval_{task_id}"
            )

            deadline = deadlines.get(task_id)
            if deadline is not None:
                model.add(end <= deadline).only_enforce_if(present)

            task_vars[task_id] = {
                "present": present,
                "start": start,
                "end": end,
                "interval": interval,
            }
        return task_vars

    def _add_precedence_constraints(
        self, model: cp_model.CpModel, task_vars: TaskVarsDict, graph: DependencyGraph
    ) -> None:
        """A present task needs its prerequisites present and finished first."""
        for task_id, dep_id in graph.edges():
            present = task_vars[task_id]["present"]
            model.add_implication(present, task_vars[dep_id]["present"])
            model.add(task_vars[task_id]["start"] >= task_vars[dep_id]["end"]).only_enforce_if(
                present
            )

    def _solve_model(self, model: cp_model.CpModel) -> tuple[cp_model.CpSolver, str]:
        """Configure and run the CP-SAT solver.

        Raises:
            ValueError: If OR-Tools rejects the model
        """
        cpsat_config = self.config.cpsat
        solver = cp_model.CpSolver()
        solver.parameters.random_seed = cpsat_config.random_seed
        if cpsat_config.num_workers is not None:
            solver.parameters.num_workers = cpsat_config.num_workers
        if cpsat_config.time_limit_seconds is not None:
            solver.parameters.max_time_in_seconds = cpsat_config.time_limit_seconds

        callback = _SolutionProgressCallback() if changes_enabled() else None
        status = solver.solve(model, callback)
        status_name = solver.status_name(status)

        if status_name == "MODEL_INVALID":
            msg = "CP-SAT model is invalid."
            raise ValueError(msg)

        return solver, status_name

    def _extract_order(
        self, solver: cp_model.CpSolver, task_vars: TaskVarsDict, topo_order: list[int]
    ) -> list[int]:
        """Present tasks sorted by solved end time.

        Zero-duration intervals may sit inside another interval, so end time
        (not start) gives an order that packs back to back without pushing
        anything past its solved end. Ties fall back to topological position.
        """
        position = {task_id: index for index, task_id in enumerate(topo_order)}
        selected = [
            task_id
            for task_id, vars_dict in task_vars.items()
            if solver.value(vars_dict["present"])
        ]
        return sorted(
            selected,
            key=lambda task_id: (
                solver.value(task_vars[task_id]["end"]),
                position[task_id],
            ),
        )
