"""Error taxonomy for dependency resolution."""

from __future__ import annotations

from collections.abc import Sequence


class DepwaveError(RuntimeError):
    pass


class IssueNotFoundError(DepwaveError):
    def __init__(self, issue_id: str) -> None:
        super().__init__(f"Issue {issue_id} not found")
        self.issue_id = issue_id


class IssueAlreadyClosedError(DepwaveError):
    def __init__(self, issue_id: str) -> None:
        super().__init__(f"Issue {issue_id} is already closed")
        self.issue_id = issue_id


class IssueBlockedError(DepwaveError):
    def __init__(self, issue_id: str, blockers: Sequence[str]) -> None:
        joined = ", ".join(blockers)
        super().__init__(f"Issue {issue_id} is blocked by {joined}")
        self.issue_id = issue_id
        self.blockers = tuple(blockers)


class CycleDetectedError(DepwaveError):
    """An acyclic-only operation ran into a circular dependency."""

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = tuple(cycle)
        chain = " -> ".join([*self.cycle, self.cycle[0]]) if self.cycle else "?"
        super().__init__(f"Circular dependency detected: {chain}")


class StoreUnavailableError(DepwaveError):
    pass


class IssueRecordError(ValueError):
    """A single issue record from a store could not be parsed."""


__all__ = [
    "CycleDetectedError",
    "DepwaveError",
    "IssueAlreadyClosedError",
    "IssueBlockedError",
    "IssueNotFoundError",
    "IssueRecordError",
    "StoreUnavailableError",
]
