from __future__ import annotations

from typing import Protocol

from ..models import Issue


class IssueSource(Protocol):
    """Narrow view of an issue tracker used by the resolver.

    Implementations raise ``StoreUnavailableError`` when the backing tracker
    cannot be reached at all.
    """

    def list_open_issues(self) -> list[Issue]:
        """Open and in-progress issues."""
        ...

    def get_issue(self, issue_id: str) -> Issue | None: ...

    def add_dependency(self, issue_id: str, depends_on_id: str) -> bool: ...

    def remove_dependency(self, issue_id: str, depends_on_id: str) -> bool: ...
