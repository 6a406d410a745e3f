"""Tests for optimizer selection, CP-SAT and dependency order."""

from unittest.mock import patch

from ortools.sat.python import cp_model

from wdsched.models import TaskRecord
from wdsched.scheduler import (
    AlgorithmConfig,
    AlgorithmType,
    BranchAndBoundOptimizer,
    CPSATConfig,
    CPSATOptimizer,
    DependencyGraph,
    DependencyOrderOptimizer,
    Optimizer,
    OptimizerResult,
    ScheduleMaterializer,
    SchedulingConfig,
    SchedulingService,
    create_optimizer,
)
from tests.conftest import task


def _run(optimizer: Optimizer, tasks: list[TaskRecord]) -> OptimizerResult:
    deadlines = {t.id: t.deadline for t in tasks}
    return optimizer.optimize(tasks, DependencyGraph.build(tasks), deadlines)


class TestCreateOptimizer:
    """Test the optimizer factory."""

    def test_default_is_branch_and_bound(self) -> None:
        assert isinstance(create_optimizer(), BranchAndBoundOptimizer)

    def test_cpsat(self) -> None:
        config = SchedulingConfig(algorithm=AlgorithmConfig(type=AlgorithmType.CP_SAT))
        assert isinstance(create_optimizer(config), CPSATOptimizer)

    def test_dependency_order(self) -> None:
        config = SchedulingConfig(algorithm=AlgorithmConfig(type=AlgorithmType.DEPENDENCY_ORDER))
        assert isinstance(create_optimizer(config), DependencyOrderOptimizer)


class TestCPSATOptimizer:
    """Test CPSATOptimizer directly."""

    def test_empty(self) -> None:
        result = _run(CPSATOptimizer(), [])
        assert result.order == []
        assert result.metadata["status"] == "no_tasks"

    def test_chain_optimal(self) -> None:
        tasks = [
            task(1, weight=5, duration=1, deadline=3),
            task(2, weight=10, duration=1, deadline=5, deps=[1]),
            task(3, weight=3, duration=2, deadline=8, deps=[2]),
            task(4, weight=8, duration=3, deadline=12, deps=[3]),
        ]
        result = _run(CPSATOptimizer(), tasks)

        assert result.order == [1, 2, 3, 4]
        assert result.total_weight == 26
        assert result.metadata["status"] == "OPTIMAL"

    def test_zero_duration_dependents_follow_prerequisites(self) -> None:
        tasks = [
            task(1, weight=1, duration=0),
            task(2, weight=1, duration=0, deps=[1]),
            task(3, weight=5, duration=2, deadline=2),
            task(4, weight=1, duration=0, deps=[2, 3]),
        ]
        result = _run(CPSATOptimizer(), tasks)
        scheduled = ScheduleMaterializer(
            {t.id: t for t in tasks}, DependencyGraph.build(tasks)
        ).materialize(result.order, {t.id: t.deadline for t in tasks})

        assert result.total_weight == 8
        assert result.order.index(1) < result.order.index(2) < result.order.index(4)
        assert result.order.index(3) < result.order.index(4)
        assert not any(st.deadline_violated for st in scheduled)

    def test_optimal_solve_does_not_exhaust_budget(self) -> None:
        result = _run(CPSATOptimizer(), [task(1, weight=2), task(2, weight=3, deps=[1])])
        assert result.metadata["budget_exhausted"] is False

    def test_time_limited_solve_reports_exhausted_budget(self) -> None:
        """A solve stopped by the time limit is FEASIBLE rather than OPTIMAL."""
        solve = CPSATOptimizer._solve_model

        def stopped_at_limit(
            self: CPSATOptimizer, model: cp_model.CpModel
        ) -> tuple[cp_model.CpSolver, str]:
            solver, _ = solve(self, model)
            return solver, "FEASIBLE"

        tasks = [task(1, weight=2, duration=1, deadline=5), task(2, weight=3, deps=[1])]
        config = SchedulingConfig(algorithm=AlgorithmConfig(type=AlgorithmType.CP_SAT))
        with patch.object(CPSATOptimizer, "_solve_model", stopped_at_limit):
            result = SchedulingService(tasks, config).schedule()

        assert result.algorithm_metadata["budget_exhausted"] is True
        assert "Search budget exhausted; schedule may not be optimal" in result.warnings
        assert result.order == [1, 2]

    def test_solver_settings_applied(self) -> None:
        config = SchedulingConfig(
            cpsat=CPSATConfig(time_limit_seconds=5.0, random_seed=7, num_workers=1)
        )
        result = _run(CPSATOptimizer(config), [task(1, weight=2), task(2, weight=3, deps=[1])])
        assert result.total_weight == 5


class TestDependencyOrderOptimizer:
    """Test DependencyOrderOptimizer."""

    def test_selects_everything_in_topological_order(self) -> None:
        tasks = [
            task(3, deps=[1, 2]),
            task(2, duration=9, deadline=1),
            task(1),
        ]
        result = _run(DependencyOrderOptimizer(), tasks)

        assert result.order == [1, 2, 3]
        assert result.total_weight == 3
        assert result.metadata == {"algorithm": "dependency_order"}
