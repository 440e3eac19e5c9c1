"""Value objects shared by the graph algorithms, the stores and the CLI."""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from .errors import (
    IssueAlreadyClosedError,
    IssueBlockedError,
    IssueNotFoundError,
    IssueRecordError,
)


ISSUE_STATUSES = ("open", "in_progress", "closed")
ISSUE_TYPES = ("task", "bug", "feature", "epic")
DEFAULT_PRIORITY = 2
DEFAULT_TYPE = "task"

BlockerKind = Literal["not_found", "already_closed", "blocked_by"]


def normalize_status(status: str) -> str:
    value = str(status).strip().lower().replace("-", "_")
    if value not in ISSUE_STATUSES:
        raise IssueRecordError(f"invalid status: {status}")
    return value


def normalize_type(issue_type: str) -> str:
    value = str(issue_type).strip().lower()
    if value not in ISSUE_TYPES:
        raise IssueRecordError(f"invalid issue type: {issue_type}")
    return value


def _normalize_priority(priority: object) -> int:
    if isinstance(priority, bool):
        raise IssueRecordError(f"invalid priority: {priority!r}")
    try:
        return int(priority)  # type: ignore[call-overload]
    except (TypeError, ValueError, OverflowError):
        raise IssueRecordError(f"invalid priority: {priority!r}") from None


def _normalize_created_at(value: object) -> int:
    if value is None or value == "":
        return int(time.time())
    if isinstance(value, bool):
        raise IssueRecordError(f"invalid created_at: {value!r}")
    text = str(value).strip()
    try:
        return int(float(value if isinstance(value, (int, float)) else text))
    except OverflowError:
        raise IssueRecordError(f"invalid created_at: {value!r}") from None
    except ValueError:
        # NaN or not numeric; try an ISO timestamp next.
        pass
    try:
        return int(datetime.fromisoformat(text.replace("Z", "+00:00")).timestamp())
    except ValueError:
        raise IssueRecordError(f"invalid created_at: {value!r}") from None


def _dedupe(ids: Iterable[object]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for item in ids:
        text = str(item).strip()
        if text:
            seen.setdefault(text, None)
    return tuple(seen)


def _first(row: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in row and row[key] is not None:
            return row[key]
    return None


@dataclass(frozen=True)
class Issue:
    id: str
    title: str = ""
    status: str = "open"
    priority: int = DEFAULT_PRIORITY
    type: str = DEFAULT_TYPE
    description: str | None = None
    depends_on: tuple[str, ...] = ()
    created_at: int = 0

    @property
    def is_open(self) -> bool:
        return self.status == "open"

    @property
    def is_closed(self) -> bool:
        return self.status == "closed"

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> Issue:
        """Parse one store record.

        Accepts the snake_case layout written by the JSONL store as well as
        the camelCase/beads spellings. Raises ``IssueRecordError`` when the
        record cannot describe a valid issue.
        """
        if not isinstance(row, Mapping):
            raise IssueRecordError(f"issue record must be an object, got {type(row).__name__}")
        issue_id = str(row.get("id") or "").strip()
        if not issue_id:
            raise IssueRecordError("issue record is missing an id")

        deps = _first(row, "depends_on", "dependsOn", "dependencies") or ()
        if isinstance(deps, str):
            deps = [deps]
        if not isinstance(deps, (list, tuple)):
            raise IssueRecordError(f"{issue_id}: depends_on must be a list of ids")
        dep_ids = [dep.get("id") if isinstance(dep, Mapping) else dep for dep in deps]

        description = _first(row, "description", "body")
        priority = _first(row, "priority")
        return cls(
            id=issue_id,
            title=str(row.get("title") or ""),
            status=normalize_status(_first(row, "status") or "open"),
            priority=DEFAULT_PRIORITY if priority is None else _normalize_priority(priority),
            type=normalize_type(_first(row, "type", "issue_type", "issueType") or DEFAULT_TYPE),
            description=str(description) if description else None,
            depends_on=_dedupe(dep for dep in dep_ids if dep is not None),
            created_at=_normalize_created_at(_first(row, "created_at", "createdAt")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status,
            "priority": self.priority,
            "type": self.type,
            "description": self.description,
            "depends_on": list(self.depends_on),
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class DependencyGraph:
    """Snapshot graph: ``edges`` point at dependencies, ``reverse_edges`` at dependents.

    Edge tuples keep declaration order. ``edges`` may name ids that are not
    in ``nodes``; ``reverse_edges`` never does.
    """

    nodes: dict[str, Issue] = field(default_factory=dict)
    edges: dict[str, tuple[str, ...]] = field(default_factory=dict)
    reverse_edges: dict[str, tuple[str, ...]] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, issue_id: object) -> bool:
        return issue_id in self.nodes

    def dependencies(self, issue_id: str) -> tuple[str, ...]:
        """In-graph dependencies of ``issue_id``; dangling references are dropped."""
        return tuple(dep for dep in self.edges.get(issue_id, ()) if dep in self.nodes)

    def dependents(self, issue_id: str) -> tuple[str, ...]:
        return self.reverse_edges.get(issue_id, ())

    def subgraph(self, ids: Iterable[str]) -> DependencyGraph:
        keep = {issue_id for issue_id in ids if issue_id in self.nodes}
        nodes = {issue_id: issue for issue_id, issue in self.nodes.items() if issue_id in keep}
        return DependencyGraph(
            nodes=nodes,
            edges={issue_id: self.edges.get(issue_id, ()) for issue_id in nodes},
            reverse_edges={
                issue_id: tuple(dep for dep in self.reverse_edges.get(issue_id, ()) if dep in keep)
                for issue_id in nodes
            },
        )


@dataclass(frozen=True)
class ExecutionOrder:
    parallel: tuple[tuple[str, ...], ...] = ()
    sequential: tuple[str, ...] = ()
    critical_path: tuple[str, ...] = ()
    unresolved: frozenset[str] = frozenset()
    cycles: tuple[tuple[str, ...], ...] = ()

    @property
    def is_complete(self) -> bool:
        return not self.unresolved

    def to_dict(self) -> dict[str, Any]:
        return {
            "parallel": [list(wave) for wave in self.parallel],
            "sequential": list(self.sequential),
            "critical_path": list(self.critical_path),
            "unresolved": sorted(self.unresolved),
            "cycles": [list(cycle) for cycle in self.cycles],
        }


@dataclass(frozen=True)
class BlockedIssue:
    issue: Issue
    blockers: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"issue": self.issue.to_dict(), "blockers": list(self.blockers)}


@dataclass(frozen=True)
class ReadyIssues:
    ready: tuple[Issue, ...] = ()
    blocked: tuple[BlockedIssue, ...] = ()
    in_progress: tuple[Issue, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "ready": [issue.to_dict() for issue in self.ready],
            "blocked": [item.to_dict() for item in self.blocked],
            "in_progress": [issue.to_dict() for issue in self.in_progress],
        }


@dataclass(frozen=True)
class ParallelExecutionSet:
    can_run_parallel: tuple[Issue, ...] = ()
    must_run_sequential: tuple[Issue, ...] = ()
    reasoning: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "can_run_parallel": [issue.to_dict() for issue in self.can_run_parallel],
            "must_run_sequential": [issue.to_dict() for issue in self.must_run_sequential],
            "reasoning": self.reasoning,
        }


@dataclass(frozen=True)
class Blocker:
    kind: BlockerKind
    message: str
    dependency_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "dependency_id": self.dependency_id,
        }


@dataclass(frozen=True)
class ExecutionValidation:
    issue_id: str
    blockers: tuple[Blocker, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def can_execute(self) -> bool:
        return not self.blockers

    def raise_for_blockers(self) -> None:
        """Raise the typed error matching the first blocker, if any."""
        if not self.blockers:
            return
        kinds = {blocker.kind for blocker in self.blockers}
        if "not_found" in kinds:
            raise IssueNotFoundError(self.issue_id)
        if "already_closed" in kinds:
            raise IssueAlreadyClosedError(self.issue_id)
        raise IssueBlockedError(
            self.issue_id,
            [blocker.dependency_id or blocker.message for blocker in self.blockers],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "issue_id": self.issue_id,
            "can_execute": self.can_execute,
            "blockers": [blocker.message for blocker in self.blockers],
            "blocker_details": [blocker.to_dict() for blocker in self.blockers],
            "warnings": list(self.warnings),
        }
