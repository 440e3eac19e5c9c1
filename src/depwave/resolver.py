"""Resolver facade: pulls a snapshot from an issue source and runs the algorithms on it."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import replace
from pathlib import Path

from . import graph as dag
from .config import load_config, open_store
from .errors import CycleDetectedError, IssueNotFoundError, StoreUnavailableError
from .models import (
    DependencyGraph,
    ExecutionOrder,
    ExecutionValidation,
    Issue,
    ParallelExecutionSet,
    ReadyIssues,
)
from .readiness import classify, compute_parallel_execution_set, validate_execution
from .stores.base import IssueSource

logger = logging.getLogger(__name__)


class DependencyResolver:
    """Stateless apart from the store handle and the last snapshot that loaded.

    Every query builds its own graph, so one resolver can serve concurrent
    callers.
    """

    def __init__(self, store: IssueSource, *, working_dir: Path | None = None) -> None:
        self.store = store
        self.working_dir = working_dir
        self._lock = threading.Lock()
        self._last_snapshot: tuple[Issue, ...] = ()

    @classmethod
    def from_workdir(cls, working_dir: Path | None = None) -> DependencyResolver:
        root = (working_dir or Path.cwd()).resolve()
        config = load_config(root)
        if config.error:
            logger.warning("config: %s", config.error)
        return cls(open_store(config, cwd=root), working_dir=root)

    @property
    def last_snapshot(self) -> tuple[Issue, ...]:
        with self._lock:
            return self._last_snapshot

    def snapshot(self) -> list[Issue]:
        """Current open/in-progress issues, or the last good snapshot if the store is down."""
        try:
            issues = list(self.store.list_open_issues())
        except StoreUnavailableError as exc:
            fallback = self.last_snapshot
            logger.warning(
                "issue store unavailable (%s); using last known snapshot of %d issue(s)",
                exc,
                len(fallback),
            )
            return list(fallback)
        with self._lock:
            self._last_snapshot = tuple(issues)
        return issues

    def build_graph(self, issues: Iterable[Issue] | None = None) -> DependencyGraph:
        return dag.build_graph(self.snapshot() if issues is None else issues)

    def get_ready_issues(self) -> ReadyIssues:
        return classify(self.snapshot())

    def get_execution_order(self) -> ExecutionOrder:
        graph = self.build_graph()
        order = dag.compute_execution_order(graph)
        if order.unresolved:
            cycles = dag.detect_cycles(graph.subgraph(order.unresolved))
            order = replace(order, cycles=tuple(tuple(cycle) for cycle in cycles))
        return order

    def detect_cycles(self) -> list[list[str]]:
        return dag.detect_cycles(self.build_graph())

    def find_critical_path(self) -> list[str]:
        return dag.find_critical_path(self.build_graph())

    def get_parallel_execution_set(self) -> ParallelExecutionSet:
        return compute_parallel_execution_set(self.get_ready_issues().ready)

    def _get_issue(self, issue_id: str) -> Issue | None:
        try:
            issue = self.store.get_issue(issue_id)
        except StoreUnavailableError as exc:
            logger.warning("issue store unavailable (%s); looking up %s in last snapshot", exc, issue_id)
            for cached in self.last_snapshot:
                if cached.id == issue_id:
                    return cached
            return None
        if issue is not None and issue.id != issue_id:
            logger.warning("issue store returned %s when asked for %s; ignoring it", issue.id, issue_id)
            return None
        return issue

    def validate_execution(self, issue_id: str) -> ExecutionValidation:
        issue = self._get_issue(issue_id)
        if issue is None:
            return validate_execution(issue_id, {})
        known = {issue.id: issue}
        for dep in issue.depends_on:
            dep_issue = self._get_issue(dep)
            if dep_issue is not None:
                known[dep] = dep_issue
        return validate_execution(issue_id, known)

    def add_dependency(self, issue_id: str, depends_on_id: str) -> bool:
        """Record ``issue_id -> depends_on_id`` unless it would close a loop."""
        if issue_id == depends_on_id:
            raise CycleDetectedError([issue_id])
        issue = self._get_issue(issue_id)
        if issue is None:
            raise IssueNotFoundError(issue_id)

        issues = {item.id: item for item in self.snapshot()}
        issues[issue.id] = issue
        path = dag.dependency_path(dag.build_graph(issues.values()), depends_on_id, issue_id)
        if path is not None:
            raise CycleDetectedError([issue_id, *path[:-1]])

        added = self.store.add_dependency(issue_id, depends_on_id)
        if added:
            logger.info("added dependency %s -> %s", issue_id, depends_on_id)
        return added

    def remove_dependency(self, issue_id: str, depends_on_id: str) -> bool:
        removed = self.store.remove_dependency(issue_id, depends_on_id)
        if removed:
            logger.info("removed dependency %s -> %s", issue_id, depends_on_id)
        return removed


_resolver_cache: dict[Path, DependencyResolver] = {}
_cache_lock = threading.Lock()


def get_dependency_resolver(working_dir: Path | str | None = None) -> DependencyResolver:
    """Return the shared resolver for ``working_dir`` (default: cwd)."""
    root = Path(working_dir or Path.cwd()).resolve()
    with _cache_lock:
        resolver = _resolver_cache.get(root)
        if resolver is None:
            resolver = DependencyResolver.from_workdir(root)
            _resolver_cache[root] = resolver
        return resolver


def clear_resolver_cache() -> None:
    with _cache_lock:
        _resolver_cache.clear()


__all__ = [
    "DependencyResolver",
    "clear_resolver_cache",
    "get_dependency_resolver",
]
