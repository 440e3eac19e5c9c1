from __future__ import annotations

import subprocess

import pytest

from depwave import util
from depwave.util import TIMEOUT_EXIT_CODE, CommandError, run_capture


def test_run_capture_returns_stdout(monkeypatch) -> None:
    def fake_run(argv, **kwargs):
        return subprocess.CompletedProcess(argv, 0, stdout="[]\n", stderr="")

    monkeypatch.setattr(util.subprocess, "run", fake_run)

    assert run_capture(["bd", "list", "--json"]) == "[]\n"


def test_run_capture_raises_on_nonzero_exit(monkeypatch) -> None:
    def fake_run(argv, **kwargs):
        return subprocess.CompletedProcess(argv, 3, stdout="", stderr="no database")

    monkeypatch.setattr(util.subprocess, "run", fake_run)

    with pytest.raises(CommandError) as excinfo:
        run_capture(["bd", "list"])

    assert excinfo.value.returncode == 3
    assert excinfo.value.stderr == "no database"
    assert str(excinfo.value) == "bd list failed (exit 3)"


def test_run_capture_turns_timeout_into_command_error(monkeypatch) -> None:
    def fake_run(argv, **kwargs):
        raise subprocess.TimeoutExpired(argv, kwargs["timeout"])

    monkeypatch.setattr(util.subprocess, "run", fake_run)

    with pytest.raises(CommandError) as excinfo:
        run_capture(["bd", "show", "bd-1"], timeout=2.0)

    assert excinfo.value.returncode == TIMEOUT_EXIT_CODE
    assert str(excinfo.value) == "bd show bd-1 failed (timed out)"
