"""Subprocess and JSON helpers shared by the issue stores."""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = -1


class CommandError(RuntimeError):
    """A tracker command exited non-zero or timed out (``returncode == -1``)."""

    def __init__(self, argv: list[str], returncode: int, stdout: str, stderr: str):
        reason = "timed out" if returncode == TIMEOUT_EXIT_CODE else f"exit {returncode}"
        super().__init__(f"{' '.join(argv)} failed ({reason})")
        self.argv = argv
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


def run_capture(
    argv: list[str],
    *,
    cwd: Path | None = None,
    timeout: float | None = None,
) -> str:
    """Run ``argv`` and return its stdout; ``FileNotFoundError`` means the binary is missing."""
    logger.debug("running %s (cwd=%s)", " ".join(argv), cwd or ".")
    try:
        proc = subprocess.run(
            argv,
            cwd=str(cwd) if cwd else None,
            text=True,
            capture_output=True,
            check=False,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise CommandError(argv, TIMEOUT_EXIT_CODE, "", f"no answer after {timeout}s") from exc
    if proc.returncode != 0:
        raise CommandError(argv, proc.returncode, proc.stdout, proc.stderr)
    return proc.stdout


def json_dumps_compact(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)
