"""Issue source backed by the beads (``bd``) command line tracker."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from ..errors import IssueRecordError, StoreUnavailableError
from ..models import Issue
from ..util import CommandError, run_capture

logger = logging.getLogger(__name__)

DEFAULT_BEADS_BIN = "bd"
DEFAULT_BEADS_TIMEOUT = 30.0
_LISTING_RE = re.compile(r"\[P(\d)\]\s+\[(\w+)\]\s+([\w.-]+):\s+(.+)")

RunFn = Callable[..., str]


def _beads_row(row: dict[str, Any]) -> dict[str, Any]:
    # bd reports edges as {"depends_on_id": ..., "type": ...} objects.
    deps = row.get("depends_on")
    if deps is None:
        deps = []
        for dep in row.get("dependencies") or []:
            if isinstance(dep, dict):
                if dep.get("type") not in (None, "blocks"):
                    continue
                target = dep.get("depends_on_id") or dep.get("id")
            else:
                target = dep
            if target:
                deps.append(target)
    return {**row, "depends_on": deps}


def parse_beads_output(output: str) -> list[Issue]:
    """Parse ``bd`` output: a JSON array/object, JSON lines, or the plain listing."""
    text = output.strip()
    if not text:
        return []

    rows: list[Any] = []
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        payload = None
    if isinstance(payload, list):
        rows = payload
    elif isinstance(payload, dict):
        rows = [payload]

    issues: list[Issue] = []
    if payload is None:
        for line in text.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                item = json.loads(line)
            except json.JSONDecodeError:
                match = _LISTING_RE.search(line)
                if match:
                    rows.append(
                        {
                            "id": match.group(3),
                            "title": match.group(4).strip(),
                            "priority": int(match.group(1)),
                            "type": match.group(2),
                        }
                    )
                continue
            if isinstance(item, dict):
                rows.append(item)

    for row in rows:
        if not isinstance(row, dict) or not row.get("id"):
            continue
        try:
            issues.append(Issue.from_dict(_beads_row(row)))
        except IssueRecordError as exc:
            logger.warning("skipping malformed beads record %s: %s", row.get("id"), exc)
    return issues


@dataclass
class BeadsIssueStore:
    cwd: Path | None = None
    binary: str = DEFAULT_BEADS_BIN
    timeout: float | None = DEFAULT_BEADS_TIMEOUT
    run: RunFn = field(default=run_capture, repr=False)

    def _exec(self, *args: str) -> str:
        try:
            return self.run([self.binary, *args], cwd=self.cwd, timeout=self.timeout)
        except FileNotFoundError as exc:
            raise StoreUnavailableError(f"{self.binary} not found on PATH") from exc

    def _list(self, status: str) -> list[Issue]:
        try:
            return parse_beads_output(self._exec("list", f"--status={status}", "--json"))
        except CommandError as exc:
            logger.info("%s; retrying plain listing", exc)
        try:
            issues = parse_beads_output(self._exec("list", f"--status={status}"))
        except CommandError as exc:
            raise StoreUnavailableError(
                f"{self.binary} list --status={status} failed: {exc.stderr.strip() or exc}"
            ) from exc
        # The plain listing has no status column.
        return [replace(issue, status=status) for issue in issues]

    def list_open_issues(self) -> list[Issue]:
        issues: dict[str, Issue] = {}
        for status in ("open", "in_progress"):
            for issue in self._list(status):
                issues.setdefault(issue.id, issue)
        return list(issues.values())

    def get_issue(self, issue_id: str) -> Issue | None:
        try:
            found = parse_beads_output(self._exec("show", issue_id, "--json"))
        except CommandError:
            found = []
        for issue in found:
            if issue.id == issue_id:
                return issue

        try:
            output = self._exec("show", issue_id)
        except CommandError:
            return None
        for line in output.splitlines():
            if issue_id in line and ":" in line:
                title = line.split(":", 1)[1].strip()
                return Issue(id=issue_id, title=title)
        return None

    def _dep(self, action: str, issue_id: str, depends_on_id: str) -> bool:
        try:
            self._exec("dep", action, issue_id, depends_on_id)
        except CommandError as exc:
            logger.error(
                "failed to %s dependency %s -> %s: %s",
                action,
                issue_id,
                depends_on_id,
                exc.stderr.strip() or exc,
            )
            return False
        return True

    def add_dependency(self, issue_id: str, depends_on_id: str) -> bool:
        return self._dep("add", issue_id, depends_on_id)

    def remove_dependency(self, issue_id: str, depends_on_id: str) -> bool:
        return self._dep("remove", issue_id, depends_on_id)
