"""Graph walks over dependency edges: reachability and build ordering."""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from typing import Callable, Hashable, Iterable, TypeVar

from knapsac.errors import CyclicDependencyError

logger = logging.getLogger(__name__)

__all__ = ["find_path", "build_order"]

Node = TypeVar("Node", bound=Hashable)


def find_path(
    start: Node,
    goal: Node,
    successors: Callable[[Node], Iterable[Node]],
) -> list[Node] | None:
    """Return a path ``start -> ... -> goal`` following ``successors``, or None.

    Iterative depth-first search with a visited set, so deep chains cannot
    exhaust the call stack. ``start == goal`` yields ``[start]``.
    """
    if start == goal:
        return [start]

    parents: dict[Node, Node | None] = {start: None}
    stack: list[Node] = [start]
    while stack:
        node = stack.pop()
        for nxt in successors(node):
            if nxt in parents:
                continue
            parents[nxt] = node
            if nxt == goal:
                return _unwind(parents, nxt)
            stack.append(nxt)
    return None


def _unwind(parents: dict[Node, Node | None], last: Node) -> list[Node]:
    path: list[Node] = [last]
    current = parents[last]
    while current is not None:
        path.append(current)
        current = parents[current]
    path.reverse()
    return path


def build_order(edges: dict[str, set[str]]) -> list[str]:
    """Order nodes so that every node comes after the nodes it depends on.

    Uses Kahn's topological sort. Edges pointing outside ``edges`` are ignored.

    Args:
        edges: Mapping of node -> nodes it depends on.

    Raises:
        CyclicDependencyError: If the nodes contain a cycle.
    """
    if not edges:
        return []

    dependents: dict[str, set[str]] = defaultdict(set)
    in_degree: dict[str, int] = {node: 0 for node in edges}

    for node, deps in edges.items():
        for dep in deps:
            if dep not in edges:
                continue
            dependents[dep].add(node)
            in_degree[node] += 1

    # Sorted for determinism
    queue: deque[str] = deque(sorted(node for node, degree in in_degree.items() if degree == 0))

    order: list[str] = []
    while queue:
        node = queue.popleft()
        order.append(node)
        for dependent in sorted(dependents.get(node, set())):
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    if len(order) < len(edges):
        remaining = {node for node in edges if node not in set(order)}
        raise CyclicDependencyError(cycle_path=_extract_cycle(edges, remaining))

    return order


def _extract_cycle(edges: dict[str, set[str]], remaining: set[str]) -> list[str]:
    """Follow edges among the unordered nodes until one repeats."""
    start = min(remaining)
    visited: list[str] = [start]
    current = start

    while True:
        nexts = sorted(dep for dep in edges.get(current, set()) if dep in remaining)
        if not nexts:
            break
        nxt = nexts[0]
        if nxt in visited:
            idx = visited.index(nxt)
            return visited[idx:] + [nxt]
        visited.append(nxt)
        current = nxt

    return sorted(remaining) + [start]
