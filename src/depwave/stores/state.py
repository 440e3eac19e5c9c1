from __future__ import annotations

import os
import time
from collections.abc import Mapping
from pathlib import Path

STATE_DIR_NAME = ".depwave"
STATE_DIR_ENV_VAR = "DEPWAVE_STATE_DIR"


def now_ts() -> int:
    return int(time.time())


def find_state_dir(start: Path) -> Path | None:
    """Nearest existing ``.depwave`` directory at or above ``start``."""
    for base in (start, *start.parents):
        candidate = base / STATE_DIR_NAME
        if candidate.is_dir():
            return candidate
    return None


def resolve_state_dir(
    cwd: Path | None = None,
    *,
    create: bool = True,
    env: Mapping[str, str] | None = None,
) -> Path:
    """Directory holding ``depwave.toml`` and the JSONL tracker.

    ``DEPWAVE_STATE_DIR`` (read from ``env``, default ``os.environ``) wins;
    otherwise the nearest ``.depwave`` above ``cwd`` so commands run from a
    subdirectory share the repository's tracker, else ``cwd/.depwave``.
    """
    environ = os.environ if env is None else env
    raw = environ.get(STATE_DIR_ENV_VAR, "").strip()
    if raw:
        state_dir = Path(raw).expanduser().resolve()
    else:
        start = (cwd or Path.cwd()).resolve()
        state_dir = find_state_dir(start) or start / STATE_DIR_NAME

    if create:
        state_dir.mkdir(parents=True, exist_ok=True)
    return state_dir
