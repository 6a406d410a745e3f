"""Cycle detection and deterministic cycle breaking."""

from __future__ import annotations

from collections.abc import Iterator

from ..logger import get_logger
from .core import CycleReport
from .graph import DependencyGraph

logger = get_logger()


def _canonical(cycle: tuple[int, ...]) -> tuple[int, ...]:
    """Rotate a cycle so its smallest id comes first (used for de-duplication)."""
    pivot = cycle.index(min(cycle))
    return cycle[pivot:] + cycle[:pivot]


class CycleDetector:
    """Find cycles in a dependency graph without modifying it.

    A DFS is started from every node (ascending id) with a fresh visited set.
    Whenever the walk reaches a node that is still on the recursion stack, the
    suffix of the current path starting at that node is a cycle. The walk uses
    an explicit stack so long chains do not hit the interpreter's recursion
    limit.
    """

    def __init__(self, graph: DependencyGraph):
        self.graph = graph

    def find_cycles(self) -> list[tuple[int, ...]]:
        """Return every distinct cycle found, in discovery order.

        Each cycle is a tuple of ids following ``depends_on`` edges; the last
        id depends on the first. Rotations of the same cycle are reported once.
        """
        cycles: list[tuple[int, ...]] = []
        seen: set[tuple[int, ...]] = set()

        for start in self.graph.task_ids:
            for cycle in self._walk(start):
                key = _canonical(cycle)
                if key in seen:
                    continue
                seen.add(key)
                cycles.append(cycle)

        return cycles

    def has_cycles(self) -> bool:
        return bool(self.find_cycles())

    def _walk(self, start: int) -> Iterator[tuple[int, ...]]:
        visited: set[int] = {start}
        on_stack: set[int] = {start}
        path: list[int] = [start]
        stack: list[tuple[int, Iterator[int]]] = [(start, self._neighbors(start))]

        while stack:
            node, neighbors = stack[-1]
            advanced = False
            for neighbor in neighbors:
                if neighbor not in visited:
                    visited.add(neighbor)
                    on_stack.add(neighbor)
                    path.append(neighbor)
                    stack.append((neighbor, self._neighbors(neighbor)))
                    advanced = True
                    break
                if neighbor in on_stack:
                    yield tuple(path[path.index(neighbor) :])

            if not advanced:
                stack.pop()
                on_stack.discard(node)
                path.pop()

    def _neighbors(self, task_id: int) -> Iterator[int]:
        return iter(sorted(self.graph.depends_on.get(task_id, ())))


def break_cycles(graph: DependencyGraph) -> tuple[DependencyGraph, CycleReport]:
    """Make the graph acyclic by dropping the edge that closes each cycle.

    For a reported cycle ``(n0, ..., nk)`` the closing edge is "``nk`` depends
    on ``n0``". Detection is repeated on the reduced graph until no cycle is
    left, so overlapping cycles are all resolved.

    Returns:
        Tuple of (acyclic graph, report with every cycle seen and every edge
        dropped, in order)
    """
    report = CycleReport()
    current = graph

    while True:
        cycles = CycleDetector(current).find_cycles()
        if not cycles:
            break

        dropped: list[tuple[int, int]] = []
        for cycle in cycles:
            report.cycles.append(cycle)
            edge = (cycle[-1], cycle[0])
            if edge in dropped:
                continue
            dropped.append(edge)
            logger.changes(
                f"Breaking cycle {CycleReport.format_cycle(cycle)}: "
                f"task {edge[0]} no longer waits for task {edge[1]}"
            )

        report.broken_edges.extend(dropped)
        current = current.without_edges(dropped)

    return current, report
