from __future__ import annotations

import pytest

from depwave.errors import IssueAlreadyClosedError, IssueBlockedError, IssueNotFoundError
from depwave.models import Issue
from depwave.readiness import classify, compute_parallel_execution_set, validate_execution


def _issue(issue_id: str, *deps: str, status: str = "open", title: str | None = None) -> Issue:
    return Issue(id=issue_id, title=title or f"Issue {issue_id}", status=status, depends_on=deps)


def test_classify_splits_ready_blocked_and_in_progress() -> None:
    issues = [
        _issue("A"),
        _issue("B", "A"),
        _issue("C", status="in_progress"),
        _issue("D", "ghost"),
        _issue("E", status="closed"),
        _issue("F", "E"),
        _issue("G", "C"),
    ]

    result = classify(issues)

    assert [item.id for item in result.ready] == ["A", "D", "F"]
    assert [(item.issue.id, item.blockers) for item in result.blocked] == [
        ("B", ("A",)),
        ("G", ("C",)),
    ]
    assert [item.id for item in result.in_progress] == ["C"]


def test_classify_empty_snapshot() -> None:
    result = classify([])
    assert result.ready == ()
    assert result.blocked == ()
    assert result.in_progress == ()


def test_classify_to_dict_shape() -> None:
    payload = classify([_issue("A"), _issue("B", "A")]).to_dict()

    assert [row["id"] for row in payload["ready"]] == ["A"]
    assert payload["blocked"][0]["issue"]["id"] == "B"
    assert payload["blocked"][0]["blockers"] == ["A"]
    assert payload["in_progress"] == []


def test_parallel_set_with_nothing_ready() -> None:
    result = compute_parallel_execution_set([])

    assert result.can_run_parallel == ()
    assert result.must_run_sequential == ()
    assert result.reasoning == "No issues are ready for execution"


def test_parallel_set_with_single_ready_issue() -> None:
    only = _issue("A")

    result = compute_parallel_execution_set([only])

    assert result.can_run_parallel == ()
    assert result.must_run_sequential == (only,)
    assert result.reasoning == "Only one issue is ready, no parallelization possible"


def test_parallel_set_independent_issues_all_parallel() -> None:
    ready = [_issue("A"), _issue("B"), _issue("C", "closed-dep")]

    result = compute_parallel_execution_set(ready)

    assert [item.id for item in result.can_run_parallel] == ["A", "B", "C"]
    assert result.must_run_sequential == ()
    assert result.reasoning == "3 issues can run in parallel, 0 have inter-dependencies"


def test_parallel_set_routes_both_ends_of_internal_edge_to_sequential() -> None:
    ready = [_issue("A"), _issue("B", "A"), _issue("C")]

    result = compute_parallel_execution_set(ready)

    assert [item.id for item in result.can_run_parallel] == ["C"]
    assert [item.id for item in result.must_run_sequential] == ["A", "B"]
    assert result.reasoning == "1 issues can run in parallel, 2 have inter-dependencies"


def test_validate_unknown_issue() -> None:
    result = validate_execution("X", [_issue("A")])

    assert not result.can_execute
    assert [blocker.message for blocker in result.blockers] == ["Issue X not found"]
    with pytest.raises(IssueNotFoundError):
        result.raise_for_blockers()


def test_validate_closed_issue() -> None:
    result = validate_execution("A", [_issue("A", status="closed")])

    assert not result.can_execute
    assert result.blockers[0].kind == "already_closed"
    with pytest.raises(IssueAlreadyClosedError):
        result.raise_for_blockers()


def test_validate_blocked_issue_names_dependency_and_title() -> None:
    issues = [_issue("A", title="Design schema"), _issue("B", "A")]

    result = validate_execution("B", issues)

    assert not result.can_execute
    assert result.to_dict()["blockers"] == ["Blocked by A: Design schema"]
    assert result.blockers[0].dependency_id == "A"
    with pytest.raises(IssueBlockedError) as excinfo:
        result.raise_for_blockers()
    assert excinfo.value.blockers == ("A",)


def test_validate_in_progress_issue_is_a_warning_only() -> None:
    result = validate_execution("A", {"A": _issue("A", status="in_progress")})

    assert result.can_execute
    assert result.warnings == ("Issue is already in progress",)
    result.raise_for_blockers()


def test_validate_ignores_closed_and_dangling_dependencies() -> None:
    issues = [_issue("A", status="closed"), _issue("B", "A", "ghost")]

    result = validate_execution("B", issues)

    assert result.can_execute
    assert result.blockers == ()
