"""Pytest configuration and fixtures for wdsched tests."""

from __future__ import annotations

import random
from collections.abc import Callable, Iterator, Sequence
from typing import Any

import pytest

from wdsched.logger import reset_logger
from wdsched.models import TaskRecord
from wdsched.scheduler import (
    AlgorithmConfig,
    AlgorithmType,
    SchedulingConfig,
    SchedulingResult,
    SearchConfig,
    effective_deadline,
)

# Optimizer variants that must all return optimal schedules
OPTIMIZER_VARIANTS: list[SchedulingConfig] = [
    SchedulingConfig(),
    SchedulingConfig(search=SearchConfig(use_interval_fast_path=False)),
    SchedulingConfig(algorithm=AlgorithmConfig(type=AlgorithmType.CP_SAT)),
]

OPTIMIZER_IDS = ["branch-and-bound", "branch-and-bound-no-fast-path", "cpsat"]


@pytest.fixture(params=OPTIMIZER_VARIANTS, ids=OPTIMIZER_IDS)
def optimizer_config(request: pytest.FixtureRequest) -> SchedulingConfig:
    """Configuration selecting the optimizer under test."""
    return request.param  # type: ignore[return-value]


@pytest.fixture(autouse=True)
def clean_logger() -> Iterator[None]:
    """Reset the logger around each test for isolation."""
    reset_logger()
    yield
    reset_logger()


def task(  # noqa: PLR0913 - mirrors TaskRecord fields
    task_id: int,
    weight: int = 1,
    duration: int = 1,
    deadline: int | None = None,
    deps: Sequence[int] = (),
    name: str = "",
) -> TaskRecord:
    """Shorthand for building a TaskRecord in tests.

    Example:
        task(2, weight=10, duration=1, deadline=5, deps=[1])
    """
    return TaskRecord(
        id=task_id,
        weight=weight,
        duration=duration,
        deadline=deadline,
        dependencies=frozenset(deps),
        name=name,
    )


@pytest.fixture
def make_task() -> Callable[..., TaskRecord]:
    """Factory fixture for task records."""
    return task


def random_tasks(
    seed: int,
    count: int = 7,
    *,
    edge_probability: float = 0.3,
    max_deadline: int = 14,
) -> list[TaskRecord]:
    """Generate a random acyclic task set (dependencies only on lower ids)."""
    rng = random.Random(seed)
    tasks: list[TaskRecord] = []
    for task_id in range(1, count + 1):
        deps = [other for other in range(1, task_id) if rng.random() < edge_probability]
        deadline = None if rng.random() < 0.15 else rng.randint(1, max_deadline)
        tasks.append(
            task(
                task_id,
                weight=rng.randint(1, 10),
                duration=rng.randint(0, 4),
                deadline=deadline,
                deps=deps,
            )
        )
    return tasks


def brute_force_best_weight(
    tasks: Sequence[TaskRecord], config: SchedulingConfig | None = None
) -> int:
    """Exhaustively enumerate every precedence-consistent sequence.

    A sequence is valid when each task's in-scope dependencies appear earlier
    and every task finishes by its effective deadline when run back to back.
    """
    config = config or SchedulingConfig()
    by_id = {t.id: t for t in tasks}
    deadlines = {t.id: effective_deadline(t, config) for t in tasks}
    deps = {t.id: {d for d in t.dependencies if d in by_id} for t in tasks}
    best = 0

    def extend(done: set[int], clock: int, weight: int) -> None:
        nonlocal best
        best = max(best, weight)
        for task_id, t in by_id.items():
            if task_id in done or not deps[task_id] <= done:
                continue
            end = clock + t.duration
            deadline = deadlines[task_id]
            if deadline is not None and end > deadline:
                continue
            done.add(task_id)
            extend(done, end, weight + t.weight)
            done.remove(task_id)

    extend(set(), 0, 0)
    return best


def assert_valid_schedule(
    result: SchedulingResult,
    tasks: Sequence[TaskRecord],
    config: SchedulingConfig | None = None,
    *,
    check_deadlines: bool = True,
) -> None:
    """Assert precedence, deadline and single-resource invariants.

    Does not check which of several equal-weight schedules was chosen.
    """
    config = config or SchedulingConfig()
    by_id = {t.id: t for t in tasks}
    scheduled = result.by_id()

    for st in result.scheduled_tasks:
        t = by_id[st.task_id]
        assert st.end - st.start == t.duration
        assert st.start >= 0
        for dep_id in t.dependencies:
            if dep_id not in by_id:
                continue
            assert dep_id in scheduled, f"Task {t.id} scheduled without dependency {dep_id}"
            assert scheduled[dep_id].end <= st.start, (
                f"Task {t.id} starts at {st.start} but dependency {dep_id} "
                f"ends at {scheduled[dep_id].end}"
            )
        if check_deadlines:
            deadline = effective_deadline(t, config)
            assert deadline is None or st.end <= deadline, (
                f"Task {t.id} ends at {st.end} after deadline {deadline}"
            )

    # One resource: no two tasks overlap
    ordered = sorted(result.scheduled_tasks, key=lambda st: (st.start, st.end))
    for earlier, later in zip(ordered, ordered[1:]):
        assert later.start >= earlier.end, (
            f"Tasks {earlier.task_id} and {later.task_id} overlap"
        )

    assert result.total_weight == sum(st.weight for st in result.scheduled_tasks)
    assert result.order == [st.task_id for st in result.scheduled_tasks]


def ids(result: Any) -> set[int]:
    """Selected task ids of a SchedulingResult."""
    return set(result.order)
