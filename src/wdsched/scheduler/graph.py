"""Dependency graph over a set of task records."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass

from ..logger import get_logger
from ..models import TaskRecord

logger = get_logger()


@dataclass(frozen=True)
class DependencyGraph:
    """Forward and reverse adjacency keyed by task id.

    ``depends_on[a]`` holds the direct prerequisites of ``a`` and
    ``dependents[a]`` the tasks that directly require ``a``. Both mappings
    contain every task id and only ever reference ids present in the input.
    """

    depends_on: dict[int, set[int]]
    dependents: dict[int, set[int]]

    @classmethod
    def build(cls, tasks: Iterable[TaskRecord]) -> DependencyGraph:
        """Build the graph from task records.

        Dependency ids that do not belong to the input are dropped; they are
        outside this run and count as already satisfied.
        """
        task_list = list(tasks)
        present = {task.id for task in task_list}

        depends_on: dict[int, set[int]] = {task.id: set() for task in task_list}
        dependents: dict[int, set[int]] = {task.id: set() for task in task_list}

        for task in task_list:
            for dep_id in task.dependencies:
                if dep_id not in present:
                    logger.debug(f"Task {task.id}: ignoring external dependency {dep_id}")
                    continue
                depends_on[task.id].add(dep_id)
                dependents[dep_id].add(task.id)

        return cls(depends_on=depends_on, dependents=dependents)

    @classmethod
    def from_edges(
        cls, task_ids: Iterable[int], edges: Iterable[tuple[int, int]]
    ) -> DependencyGraph:
        """Build a graph from ``(dependent, prerequisite)`` pairs."""
        ids = list(task_ids)
        depends_on: dict[int, set[int]] = {task_id: set() for task_id in ids}
        dependents: dict[int, set[int]] = {task_id: set() for task_id in ids}
        for dependent, prerequisite in edges:
            if dependent in depends_on and prerequisite in depends_on:
                depends_on[dependent].add(prerequisite)
                dependents[prerequisite].add(dependent)
        return cls(depends_on=depends_on, dependents=dependents)

    @property
    def task_ids(self) -> list[int]:
        return sorted(self.depends_on)

    @property
    def edge_count(self) -> int:
        return sum(len(deps) for deps in self.depends_on.values())

    @property
    def has_edges(self) -> bool:
        return any(self.depends_on.values())

    def edges(self) -> list[tuple[int, int]]:
        """All ``(dependent, prerequisite)`` pairs in deterministic order."""
        return [
            (task_id, dep_id)
            for task_id in sorted(self.depends_on)
            for dep_id in sorted(self.depends_on[task_id])
        ]

    def roots(self) -> list[int]:
        """Ids with no in-scope prerequisite, ascending."""
        return sorted(task_id for task_id, deps in self.depends_on.items() if not deps)

    def without_edges(self, removed: Iterable[tuple[int, int]]) -> DependencyGraph:
        """Return a copy with the given ``(dependent, prerequisite)`` edges removed."""
        drop = set(removed)
        return DependencyGraph.from_edges(
            self.depends_on, (edge for edge in self.edges() if edge not in drop)
        )

    def restricted_to(self, task_ids: Iterable[int]) -> DependencyGraph:
        """Return the subgraph induced by ``task_ids``."""
        keep = set(task_ids) & set(self.depends_on)
        return DependencyGraph.from_edges(
            sorted(keep),
            (edge for edge in self.edges() if edge[0] in keep and edge[1] in keep),
        )

    def topological_order(self) -> tuple[list[int], set[int]]:
        """Kahn's algorithm, ties broken by ascending id.

        Returns:
            Tuple of (processed ids in topological order, ids never reached
            because they sit on or behind a cycle)
        """
        in_degree = {task_id: len(deps) for task_id, deps in self.depends_on.items()}
        queue = deque(sorted(task_id for task_id, degree in in_degree.items() if degree == 0))
        order: list[int] = []

        while queue:
            task_id = queue.popleft()
            order.append(task_id)
            for dependent in sorted(self.dependents[task_id]):
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        stalled = set(self.depends_on) - set(order)
        return order, stalled

    def descendants(self, sources: Iterable[int]) -> set[int]:
        """Transitive closure over ``dependents`` (sources excluded unless reached)."""
        seen: set[int] = set()
        stack = [dep for source in sources for dep in self.dependents.get(source, ())]
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self.dependents.get(current, ()))
        return seen
