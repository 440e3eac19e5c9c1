from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

import pytest

from depwave.config import LOG_LEVEL_ENV_VAR, OUTPUT_ENV_VAR
from depwave.errors import StoreUnavailableError
from depwave.models import Issue
from depwave.resolver import DependencyResolver, clear_resolver_cache
from depwave.stores.state import STATE_DIR_ENV_VAR


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for name in (STATE_DIR_ENV_VAR, OUTPUT_ENV_VAR, LOG_LEVEL_ENV_VAR):
        monkeypatch.delenv(name, raising=False)
    clear_resolver_cache()
    yield
    clear_resolver_cache()
    logger = logging.getLogger("depwave")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@dataclass
class FakeIssueSource:
    issues: list[Issue] = field(default_factory=list)
    unavailable: bool = False
    fail_dep_changes: bool = False
    dep_calls: list[tuple[str, str, str]] = field(default_factory=list)

    def list_open_issues(self) -> list[Issue]:
        if self.unavailable:
            raise StoreUnavailableError("tracker offline")
        return [issue for issue in self.issues if not issue.is_closed]

    def get_issue(self, issue_id: str) -> Issue | None:
        if self.unavailable:
            raise StoreUnavailableError("tracker offline")
        for issue in self.issues:
            if issue.id == issue_id:
                return issue
        return None

    def _change(self, action: str, issue_id: str, depends_on_id: str) -> bool:
        if self.unavailable:
            raise StoreUnavailableError("tracker offline")
        self.dep_calls.append((action, issue_id, depends_on_id))
        if self.fail_dep_changes:
            return False
        for index, issue in enumerate(self.issues):
            if issue.id != issue_id:
                continue
            deps = list(issue.depends_on)
            if action == "add" and depends_on_id not in deps:
                deps.append(depends_on_id)
            elif action == "remove" and depends_on_id in deps:
                deps.remove(depends_on_id)
            else:
                return False
            self.issues[index] = replace(issue, depends_on=tuple(deps))
            return True
        return False

    def add_dependency(self, issue_id: str, depends_on_id: str) -> bool:
        return self._change("add", issue_id, depends_on_id)

    def remove_dependency(self, issue_id: str, depends_on_id: str) -> bool:
        return self._change("remove", issue_id, depends_on_id)


@pytest.fixture
def make_resolver():
    def _make(*issues: Issue, **kwargs) -> DependencyResolver:
        return DependencyResolver(FakeIssueSource(list(issues), **kwargs))

    return _make
