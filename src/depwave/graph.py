"""Dependency graph construction and scheduling.

Every function here is pure: it reads a snapshot and returns new values.
Traversals use explicit stacks so long dependency chains cannot exhaust the
interpreter's recursion limit.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from .errors import CycleDetectedError
from .models import DependencyGraph, ExecutionOrder, Issue

logger = logging.getLogger(__name__)


def build_graph(issues: Iterable[Issue]) -> DependencyGraph:
    """Build a graph from an issue snapshot.

    Dependencies on ids outside the snapshot stay in ``edges`` but are left
    out of ``reverse_edges``; they count as externally satisfied.
    """
    nodes: dict[str, Issue] = {}
    for issue in issues:
        if issue.id in nodes:
            logger.warning("duplicate issue id %s in snapshot; keeping first record", issue.id)
            continue
        nodes[issue.id] = issue

    edges: dict[str, tuple[str, ...]] = {}
    dependents: dict[str, list[str]] = {issue_id: [] for issue_id in nodes}
    for issue_id, issue in nodes.items():
        deps = tuple(dict.fromkeys(issue.depends_on))
        edges[issue_id] = deps
        for dep in deps:
            if dep in dependents:
                dependents[dep].append(issue_id)

    return DependencyGraph(
        nodes=nodes,
        edges=edges,
        reverse_edges={issue_id: tuple(ids) for issue_id, ids in dependents.items()},
    )


def detect_cycles(graph: DependencyGraph) -> list[list[str]]:
    """Return every dependency loop found by a depth-first walk.

    Each cycle is listed from the node where the walk first entered it, in
    dependency direction. Output is deterministic for a given snapshot order.
    """
    cycles: list[list[str]] = []
    visited: set[str] = set()

    for start in graph.nodes:
        if start in visited:
            continue
        visited.add(start)
        path: list[str] = [start]
        position: dict[str, int] = {start: 0}
        stack: list[Iterator[str]] = [iter(graph.dependencies(start))]

        while stack:
            dep = next(stack[-1], None)
            if dep is None:
                stack.pop()
                del position[path.pop()]
                continue
            if dep in position:
                cycles.append(path[position[dep]:])
                continue
            if dep in visited:
                continue
            visited.add(dep)
            position[dep] = len(path)
            path.append(dep)
            stack.append(iter(graph.dependencies(dep)))

    if cycles:
        logger.debug("found %d dependency cycle(s)", len(cycles))
    return cycles


def _waves(graph: DependencyGraph) -> list[tuple[str, ...]]:
    order = {issue_id: index for index, issue_id in enumerate(graph.nodes)}
    remaining = {issue_id: len(graph.dependencies(issue_id)) for issue_id in graph.nodes}

    waves: list[tuple[str, ...]] = []
    wave = [issue_id for issue_id, count in remaining.items() if count == 0]
    while wave:
        waves.append(tuple(wave))
        unlocked: list[str] = []
        for issue_id in wave:
            for dependent in graph.dependents(issue_id):
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    unlocked.append(dependent)
        wave = sorted(unlocked, key=order.__getitem__)
    return waves


def compute_execution_order(graph: DependencyGraph) -> ExecutionOrder:
    """Group the graph into parallel waves.

    Wave ``n`` holds every issue whose in-graph dependencies all sit in waves
    ``< n``; members keep snapshot order. Issues that can never be placed
    (they sit on or behind a cycle) are returned in ``unresolved`` instead of
    raising. The critical path is taken over the placed issues only.
    """
    waves = _waves(graph)
    sequential = tuple(issue_id for wave in waves for issue_id in wave)
    placed = set(sequential)
    unresolved = frozenset(issue_id for issue_id in graph.nodes if issue_id not in placed)

    if unresolved:
        logger.warning(
            "%d issue(s) could not be scheduled; the dependency graph has a cycle",
            len(unresolved),
        )
        critical = find_critical_path(graph.subgraph(sequential))
    else:
        critical = find_critical_path(graph)

    return ExecutionOrder(
        parallel=tuple(waves),
        sequential=sequential,
        critical_path=tuple(critical),
        unresolved=unresolved,
    )


def topological_order(graph: DependencyGraph) -> list[str]:
    """Strict variant of the scheduler: raises when anything is left unplaced."""
    waves = _waves(graph)
    sequential = [issue_id for wave in waves for issue_id in wave]
    if len(sequential) != len(graph.nodes):
        placed = set(sequential)
        cycles = detect_cycles(graph.subgraph(i for i in graph.nodes if i not in placed))
        raise CycleDetectedError(cycles[0] if cycles else [])
    return sequential


def find_critical_path(graph: DependencyGraph) -> list[str]:
    """Longest dependency chain by hop count, dependencies first.

    Requires an acyclic graph; re-entering a node that is still on the walk
    raises ``CycleDetectedError``. Ties keep the earliest candidate in
    snapshot / declaration order.
    """
    length: dict[str, int] = {}
    best_dep: dict[str, str | None] = {}

    for root in graph.nodes:
        if root in length:
            continue
        path: list[str] = [root]
        on_path: dict[str, int] = {root: 0}
        stack: list[Iterator[str]] = [iter(graph.dependencies(root))]

        while stack:
            dep = next(stack[-1], None)
            if dep is None:
                node = path.pop()
                del on_path[node]
                stack.pop()
                chosen: str | None = None
                for candidate in graph.dependencies(node):
                    if chosen is None or length[candidate] > length[chosen]:
                        chosen = candidate
                best_dep[node] = chosen
                length[node] = 1 + (length[chosen] if chosen is not None else 0)
                continue
            if dep in on_path:
                raise CycleDetectedError(path[on_path[dep]:])
            if dep in length:
                continue
            on_path[dep] = len(path)
            path.append(dep)
            stack.append(iter(graph.dependencies(dep)))

    end: str | None = None
    for issue_id in graph.nodes:
        if end is None or length[issue_id] > length[end]:
            end = issue_id

    chain: list[str] = []
    while end is not None:
        chain.append(end)
        end = best_dep[end]
    chain.reverse()
    return chain


def dependency_path(graph: DependencyGraph, start: str, target: str) -> list[str] | None:
    """Chain of in-graph dependencies leading from ``start`` to ``target``, if any."""
    if start not in graph.nodes:
        return None
    if start == target:
        return [start]
    parent: dict[str, str] = {}
    seen = {start}
    stack = [start]
    while stack:
        node = stack.pop()
        for dep in graph.dependencies(node):
            if dep in seen:
                continue
            seen.add(dep)
            parent[dep] = node
            if dep == target:
                chain = [dep]
                while chain[-1] != start:
                    chain.append(parent[chain[-1]])
                chain.reverse()
                return chain
            stack.append(dep)
    return None


__all__ = [
    "build_graph",
    "compute_execution_order",
    "dependency_path",
    "detect_cycles",
    "find_critical_path",
    "topological_order",
]
