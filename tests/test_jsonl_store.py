from __future__ import annotations

import json
from pathlib import Path

import pytest

from depwave.errors import IssueNotFoundError, StoreUnavailableError
from depwave.resolver import DependencyResolver
from depwave.stores.jsonl import JsonlIssueStore, read_jsonl


def _store(tmp_path: Path) -> JsonlIssueStore:
    return JsonlIssueStore(tmp_path / ".depwave" / "issues.jsonl")


def test_create_and_list_issues(tmp_path: Path) -> None:
    store = _store(tmp_path)

    first = store.create("Design schema", issue_type="feature", priority=1)
    second = store.create("Write migration", depends_on=[first.id, first.id])

    assert first.id.startswith("dw-")
    assert first.type == "feature"
    assert second.depends_on == (first.id,)
    assert [issue.id for issue in store.list_issues()] == [first.id, second.id]
    assert store.get_issue(second.id) == second
    assert store.get_issue("dw-missing") is None


def test_records_are_one_json_object_per_line(tmp_path: Path) -> None:
    store = _store(tmp_path)
    created = store.create("Only one", description="details")

    lines = store.path.read_text(encoding="utf-8").splitlines()

    assert len(lines) == 1
    row = json.loads(lines[0])
    assert row["id"] == created.id
    assert row["description"] == "details"
    assert row["depends_on"] == []


def test_close_removes_issue_from_open_listing(tmp_path: Path) -> None:
    store = _store(tmp_path)
    a = store.create("A")
    b = store.create("B")

    closed = store.close(a.id)
    store.set_status(b.id, "in-progress")

    assert closed.is_closed
    assert [issue.id for issue in store.list_open_issues()] == [b.id]
    assert [issue.id for issue in store.list_issues(status="closed")] == [a.id]
    assert store.get_issue(b.id).status == "in_progress"


def test_set_status_unknown_issue(tmp_path: Path) -> None:
    with pytest.raises(IssueNotFoundError):
        _store(tmp_path).set_status("dw-nope", "closed")


def test_add_and_remove_dependency(tmp_path: Path) -> None:
    store = _store(tmp_path)
    a = store.create("A")
    b = store.create("B")

    assert store.add_dependency(b.id, a.id) is True
    assert store.add_dependency(b.id, a.id) is False
    assert store.get_issue(b.id).depends_on == (a.id,)

    assert store.remove_dependency(b.id, a.id) is True
    assert store.remove_dependency(b.id, a.id) is False
    assert store.get_issue(b.id).depends_on == ()

    with pytest.raises(IssueNotFoundError):
        store.add_dependency("dw-nope", a.id)


def test_malformed_records_are_skipped(tmp_path: Path, caplog) -> None:
    path = tmp_path / "issues.jsonl"
    path.write_text(
        "\n".join(
            [
                json.dumps({"id": "a", "title": "good"}),
                "{not json",
                json.dumps(["not", "an", "object"]),
                json.dumps({"id": "b", "title": "bad status", "status": "sleeping"}),
                json.dumps({"title": "no id"}),
                json.dumps({"id": "c", "dependsOn": ["a"], "issue_type": "bug"}),
                '{"id": "d", "created_at": Infinity}',
                '{"id": "e", "priority": 1e999}',
                json.dumps({"id": "f", "created_at": "inf"}),
                json.dumps({"id": "g", "created_at": "nan"}),
            ]
        )
        + "\n",
        encoding="utf-8",
    )

    issues = JsonlIssueStore(path).list_issues()

    assert [issue.id for issue in issues] == ["a", "c"]
    assert issues[1].depends_on == ("a",)
    assert issues[1].type == "bug"
    assert "skipping undecodable line" in caplog.text
    assert "skipping malformed issue record" in caplog.text


def test_missing_file_reads_as_empty(tmp_path: Path) -> None:
    assert read_jsonl(tmp_path / "absent.jsonl") == []
    assert _store(tmp_path).list_open_issues() == []


def test_unreadable_file_raises_store_unavailable(tmp_path: Path) -> None:
    directory = tmp_path / "issues.jsonl"
    directory.mkdir()

    with pytest.raises(StoreUnavailableError):
        JsonlIssueStore(directory).list_open_issues()


def test_from_workdir_uses_state_dir_env(monkeypatch, tmp_path: Path) -> None:
    state = tmp_path / "state"
    monkeypatch.setenv("DEPWAVE_STATE_DIR", str(state))

    store = JsonlIssueStore.from_workdir(tmp_path / "repo")

    assert store.path == state.resolve() / "issues.jsonl"
    assert state.is_dir()


def test_out_of_range_numbers_do_not_abort_the_snapshot(tmp_path: Path) -> None:
    path = tmp_path / "issues.jsonl"
    path.write_text(
        '{"id": "A"}\n{"id": "B", "created_at": Infinity}\n{"id": "C", "priority": 1e999}\n',
        encoding="utf-8",
    )

    resolver = DependencyResolver(JsonlIssueStore(path))

    assert [issue.id for issue in resolver.get_ready_issues().ready] == ["A"]
