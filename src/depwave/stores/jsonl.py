"""JSONL-backed issue tracker stored in .depwave/issues.jsonl."""

from __future__ import annotations

import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any

from ..errors import IssueNotFoundError, IssueRecordError, StoreUnavailableError
from ..models import DEFAULT_PRIORITY, DEFAULT_TYPE, Issue, normalize_status, normalize_type
from ..util import json_dumps_compact
from .state import now_ts, resolve_state_dir

logger = logging.getLogger(__name__)

DEFAULT_ISSUES_FILE = "issues.jsonl"


def short_id() -> str:
    return uuid.uuid4().hex[:8]


def read_jsonl(path: Path) -> list[dict]:
    """Read one JSON object per line; undecodable lines are skipped with a warning."""
    if not path.exists():
        return []
    rows: list[dict] = []
    try:
        with open(path, encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    row = json.loads(line)
                except json.JSONDecodeError as exc:
                    logger.warning("%s:%d: skipping undecodable line (%s)", path, lineno, exc)
                    continue
                if not isinstance(row, dict):
                    logger.warning("%s:%d: skipping non-object record", path, lineno)
                    continue
                rows.append(row)
    except OSError as exc:
        raise StoreUnavailableError(f"cannot read {path}: {exc}") from exc
    return rows


def write_jsonl(path: Path, rows: list[dict]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        for row in rows:
            f.write(json_dumps_compact(row) + "\n")
    os.replace(tmp, path)


def parse_issues(rows: list[dict], *, source: str) -> list[Issue]:
    issues: list[Issue] = []
    for row in rows:
        try:
            issues.append(Issue.from_dict(row))
        except IssueRecordError as exc:
            logger.warning("%s: skipping malformed issue record: %s", source, exc)
    return issues


class JsonlIssueStore:
    def __init__(self, path: Path) -> None:
        self.path = path

    @classmethod
    def from_workdir(
        cls,
        root: Path | None = None,
        *,
        filename: str = DEFAULT_ISSUES_FILE,
        create: bool = True,
    ) -> JsonlIssueStore:
        return cls(resolve_state_dir(root, create=create) / filename)

    def _load(self) -> list[dict]:
        return read_jsonl(self.path)

    def _save(self, rows: list[dict]) -> None:
        write_jsonl(self.path, rows)

    def _find(self, rows: list[dict], issue_id: str) -> dict | None:
        for row in rows:
            if row.get("id") == issue_id:
                return row
        return None

    def create(
        self,
        title: str,
        *,
        issue_type: str = DEFAULT_TYPE,
        priority: int = DEFAULT_PRIORITY,
        description: str | None = None,
        depends_on: list[str] | None = None,
        status: str = "open",
    ) -> Issue:
        issue = Issue(
            id=f"dw-{short_id()}",
            title=title,
            status=normalize_status(status),
            priority=int(priority),
            type=normalize_type(issue_type),
            description=description or None,
            depends_on=tuple(dict.fromkeys(depends_on or ())),
            created_at=now_ts(),
        )
        rows = self._load()
        rows.append(issue.to_dict())
        self._save(rows)
        return issue

    def list_issues(self, *, status: str | None = None) -> list[Issue]:
        issues = parse_issues(self._load(), source=str(self.path))
        if status:
            wanted = normalize_status(status)
            issues = [issue for issue in issues if issue.status == wanted]
        return issues

    def list_open_issues(self) -> list[Issue]:
        return [issue for issue in self.list_issues() if not issue.is_closed]

    def get_issue(self, issue_id: str) -> Issue | None:
        row = self._find(self._load(), issue_id)
        if row is None:
            return None
        parsed = parse_issues([row], source=str(self.path))
        return parsed[0] if parsed else None

    def _update(self, issue_id: str, **fields: Any) -> Issue:
        rows = self._load()
        row = self._find(rows, issue_id)
        if row is None:
            raise IssueNotFoundError(issue_id)
        for key, value in fields.items():
            if key == "id":
                continue
            row[key] = value
        issue = Issue.from_dict(row)
        self._save(rows)
        return issue

    def set_status(self, issue_id: str, status: str) -> Issue:
        return self._update(issue_id, status=normalize_status(status))

    def close(self, issue_id: str) -> Issue:
        return self.set_status(issue_id, "closed")

    def add_dependency(self, issue_id: str, depends_on_id: str) -> bool:
        """Record that ``issue_id`` depends on ``depends_on_id``. Returns True if added."""
        rows = self._load()
        row = self._find(rows, issue_id)
        if row is None:
            raise IssueNotFoundError(issue_id)
        deps = [str(dep) for dep in row.get("depends_on") or []]
        if depends_on_id in deps:
            return False
        deps.append(depends_on_id)
        row["depends_on"] = deps
        self._save(rows)
        return True

    def remove_dependency(self, issue_id: str, depends_on_id: str) -> bool:
        """Remove one dependency edge. Returns True if an edge was removed."""
        rows = self._load()
        row = self._find(rows, issue_id)
        if row is None:
            raise IssueNotFoundError(issue_id)
        before = [str(dep) for dep in row.get("depends_on") or []]
        after = [dep for dep in before if dep != depends_on_id]
        changed = len(after) != len(before)
        if changed:
            row["depends_on"] = after
            self._save(rows)
        return changed
