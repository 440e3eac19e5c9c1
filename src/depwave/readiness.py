"""Readiness classification, parallel-set planning and execution pre-flight."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from .models import (
    BlockedIssue,
    Blocker,
    ExecutionValidation,
    Issue,
    ParallelExecutionSet,
    ReadyIssues,
)

logger = logging.getLogger(__name__)


def _index(issues: Iterable[Issue]) -> dict[str, Issue]:
    by_id: dict[str, Issue] = {}
    for issue in issues:
        by_id.setdefault(issue.id, issue)
    return by_id


def open_blockers(issue: Issue, known: Mapping[str, Issue]) -> list[str]:
    """Dependencies of ``issue`` that are known and not closed yet."""
    return [
        dep
        for dep in issue.depends_on
        if dep in known and not known[dep].is_closed
    ]


def classify(issues: Iterable[Issue]) -> ReadyIssues:
    """Split a snapshot into ready, blocked and in-progress issues.

    A dependency counts as satisfied when it is closed or absent from the
    snapshot. Closed issues themselves appear in none of the buckets.
    """
    known = _index(issues)
    ready: list[Issue] = []
    blocked: list[BlockedIssue] = []
    in_progress: list[Issue] = []

    for issue in known.values():
        if issue.status == "in_progress":
            in_progress.append(issue)
            continue
        if not issue.is_open:
            continue
        blockers = open_blockers(issue, known)
        if blockers:
            blocked.append(BlockedIssue(issue=issue, blockers=tuple(blockers)))
        else:
            ready.append(issue)

    return ReadyIssues(
        ready=tuple(ready),
        blocked=tuple(blocked),
        in_progress=tuple(in_progress),
    )


def compute_parallel_execution_set(ready: Sequence[Issue]) -> ParallelExecutionSet:
    """Decide which ready issues may start together right now.

    Any ready issue linked to another ready issue, as dependent or as
    dependency, is routed to the sequential list.
    """
    if not ready:
        return ParallelExecutionSet(reasoning="No issues are ready for execution")
    if len(ready) == 1:
        return ParallelExecutionSet(
            must_run_sequential=tuple(ready),
            reasoning="Only one issue is ready, no parallelization possible",
        )

    ready_ids = {issue.id for issue in ready}
    linked: set[str] = set()
    for issue in ready:
        for dep in issue.depends_on:
            if dep in ready_ids and dep != issue.id:
                linked.add(issue.id)
                linked.add(dep)

    parallel = tuple(issue for issue in ready if issue.id not in linked)
    sequential = tuple(issue for issue in ready if issue.id in linked)
    if sequential:
        logger.debug(
            "ready set has inter-dependencies: %s",
            ", ".join(issue.id for issue in sequential),
        )
    return ParallelExecutionSet(
        can_run_parallel=parallel,
        must_run_sequential=sequential,
        reasoning=(
            f"{len(parallel)} issues can run in parallel, "
            f"{len(sequential)} have inter-dependencies"
        ),
    )


def validate_execution(issue_id: str, issues: Mapping[str, Issue] | Iterable[Issue]) -> ExecutionValidation:
    known = dict(issues) if isinstance(issues, Mapping) else _index(issues)
    issue = known.get(issue_id)
    if issue is None:
        return ExecutionValidation(
            issue_id=issue_id,
            blockers=(Blocker("not_found", f"Issue {issue_id} not found"),),
        )

    blockers: list[Blocker] = []
    warnings: list[str] = []
    if issue.status == "in_progress":
        warnings.append("Issue is already in progress")
    if issue.is_closed:
        blockers.append(Blocker("already_closed", "Issue is already closed"))
    for dep in open_blockers(issue, known):
        blockers.append(
            Blocker(
                "blocked_by",
                f"Blocked by {dep}: {known[dep].title}",
                dependency_id=dep,
            )
        )

    return ExecutionValidation(
        issue_id=issue_id,
        blockers=tuple(blockers),
        warnings=tuple(warnings),
    )


__all__ = [
    "classify",
    "compute_parallel_execution_set",
    "open_blockers",
    "validate_execution",
]
