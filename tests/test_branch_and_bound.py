"""Tests for the branch-and-bound optimizer."""

from wdsched.models import TaskRecord
from wdsched.scheduler import (
    BranchAndBoundOptimizer,
    DependencyGraph,
    OptimizerResult,
    SchedulingConfig,
    SchedulingService,
    SearchConfig,
    effective_deadline,
)
from tests.conftest import assert_valid_schedule, task


def _optimize(tasks: list[TaskRecord], config: SchedulingConfig | None = None) -> OptimizerResult:
    config = config or SchedulingConfig()
    deadlines = {t.id: effective_deadline(t, config) for t in tasks}
    return BranchAndBoundOptimizer(config).optimize(tasks, DependencyGraph.build(tasks), deadlines)


class TestBranchAndBound:
    """Test BranchAndBoundOptimizer."""

    def test_empty_candidates(self) -> None:
        result = _optimize([])
        assert result.order == []
        assert result.total_weight == 0

    def test_linear_chain(self) -> None:
        tasks = [
            task(1, weight=5, duration=1, deadline=3),
            task(2, weight=10, duration=1, deadline=5, deps=[1]),
            task(3, weight=3, duration=2, deadline=8, deps=[2]),
            task(4, weight=8, duration=3, deadline=12, deps=[3]),
        ]
        result = _optimize(tasks)

        assert result.order == [1, 2, 3, 4]
        assert result.total_weight == 26
        assert result.metadata["algorithm"] == "branch_and_bound"
        assert result.metadata["fast_path"] is False
        assert result.metadata["budget_exhausted"] is False

    def test_light_prerequisite_unlocks_heavy_task(self) -> None:
        """A branch whose available tasks are light must not be pruned when a
        heavy task becomes reachable behind them."""
        tasks = [
            task(1, weight=10, duration=1, deadline=1, name="X"),
            task(2, weight=50, duration=1, deadline=2, deps=[1], name="Z"),
            task(3, weight=1, duration=1, deadline=1, name="A"),
            task(4, weight=1, duration=1, deadline=2, deps=[3], name="B"),
            task(5, weight=100, duration=1, deadline=3, deps=[4], name="C"),
        ]
        result = _optimize(tasks)

        assert result.total_weight == 102
        assert result.order == [3, 4, 5]

    def test_skips_task_to_fit_heavier_one(self) -> None:
        # Running 2 first pushes 3 past its deadline
        tasks = [
            task(1, weight=1, duration=0),
            task(2, weight=3, duration=4, deadline=10, deps=[1]),
            task(3, weight=9, duration=3, deadline=3, deps=[1]),
        ]
        result = _optimize(tasks)

        assert result.total_weight == 13
        assert result.order == [1, 3, 2]

    def test_order_respects_dependencies(self) -> None:
        tasks = [
            task(1, weight=1, duration=1),
            task(2, weight=1, duration=1),
            task(3, weight=20, duration=1, deps=[1, 2]),
        ]
        result = _optimize(tasks)

        assert set(result.order) == {1, 2, 3}
        assert result.order[-1] == 3

    def test_uses_fast_path_without_dependencies(self) -> None:
        tasks = [
            task(1, weight=5, duration=2, deadline=2),
            task(2, weight=4, duration=2, deadline=4),
        ]
        result = _optimize(tasks)

        assert result.metadata["algorithm"] == "interval_dp"
        assert result.metadata["fast_path"] is True
        assert result.order == [1, 2]

    def test_fast_path_can_be_disabled(self) -> None:
        tasks = [
            task(1, weight=5, duration=2, deadline=2),
            task(2, weight=4, duration=2, deadline=4),
        ]
        config = SchedulingConfig(search=SearchConfig(use_interval_fast_path=False))
        result = _optimize(tasks, config)

        assert result.metadata["algorithm"] == "branch_and_bound"
        assert result.total_weight == 9

    def test_node_budget_returns_best_so_far(self) -> None:
        tasks = [
            task(1, weight=2, duration=1, deadline=5),
            task(2, weight=3, duration=1, deadline=5),
            task(3, weight=4, duration=1, deadline=5, deps=[1]),
        ]
        config = SchedulingConfig(search=SearchConfig(max_nodes=1))
        result = _optimize(tasks, config)

        assert result.metadata["budget_exhausted"] is True
        # One branch was explored: the heaviest available task
        assert result.order == [2]
        assert result.total_weight == 3

    def test_time_limit_returns_best_so_far(self) -> None:
        """Fourteen unit tasks with room for seven leave thousands of subsets to try."""
        tasks = [task(i, weight=1, duration=1, deadline=7) for i in range(1, 15)]
        config = SchedulingConfig(
            search=SearchConfig(time_limit_seconds=1e-9, use_interval_fast_path=False)
        )
        result = _optimize(tasks, config)

        assert result.metadata["budget_exhausted"] is True
        # The clock is consulted every 256 nodes
        assert result.metadata["nodes"] == 256
        # The first descent already filled the seven slots
        assert result.total_weight == 7
        assert len(result.order) == 7

    def test_time_limit_schedule_is_valid(self) -> None:
        tasks = [task(i, weight=i, duration=1, deadline=7) for i in range(1, 15)]
        config = SchedulingConfig(
            search=SearchConfig(time_limit_seconds=1e-9, use_interval_fast_path=False)
        )
        result = SchedulingService(tasks, config).schedule()

        assert result.algorithm_metadata["budget_exhausted"] is True
        assert "Search budget exhausted; schedule may not be optimal" in result.warnings
        assert_valid_schedule(result, tasks, config)

    def test_generous_budget_not_exhausted(self) -> None:
        tasks = [task(1, duration=1), task(2, duration=1, deps=[1])]
        config = SchedulingConfig(search=SearchConfig(max_nodes=1000))
        result = _optimize(tasks, config)

        assert result.metadata["budget_exhausted"] is False
        assert result.order == [1, 2]

    def test_long_chain_does_not_recurse(self) -> None:
        count = 1200
        tasks = [task(1)] + [task(i, deps=[i - 1]) for i in range(2, count + 1)]
        result = _optimize(tasks)

        assert result.order == list(range(1, count + 1))
        assert result.total_weight == count

    def test_deterministic(self) -> None:
        tasks = [
            task(1, weight=4, duration=2, deadline=6),
            task(2, weight=4, duration=2, deadline=6),
            task(3, weight=4, duration=2, deadline=6, deps=[1]),
            task(4, weight=4, duration=2, deadline=6, deps=[2]),
        ]
        first = _optimize(tasks)
        second = _optimize(list(reversed(tasks)))

        assert first.order == second.order
        assert first.total_weight == 12
