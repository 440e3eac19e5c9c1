from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomllib

from .stores.base import IssueSource
from .stores.beads import DEFAULT_BEADS_BIN, DEFAULT_BEADS_TIMEOUT, BeadsIssueStore
from .stores.jsonl import DEFAULT_ISSUES_FILE, JsonlIssueStore
from .stores.state import resolve_state_dir

CONFIG_FILENAME = "depwave.toml"
STORE_BACKENDS = ("jsonl", "beads")
OUTPUT_MODES = ("auto", "plain", "rich")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
OUTPUT_ENV_VAR = "DEPWAVE_OUTPUT"
LOG_LEVEL_ENV_VAR = "DEPWAVE_LOG_LEVEL"


@dataclass(frozen=True)
class StoreConfig:
    backend: str = "jsonl"
    path: str = DEFAULT_ISSUES_FILE
    beads_bin: str = DEFAULT_BEADS_BIN
    timeout: float = DEFAULT_BEADS_TIMEOUT


@dataclass(frozen=True)
class DepwaveFileConfig:
    state_dir: Path
    path: Path
    store: StoreConfig = field(default_factory=StoreConfig)
    output_mode: str = "auto"
    log_level: str = "WARNING"
    error: str | None = None

    @property
    def issues_path(self) -> Path:
        path = Path(self.store.path).expanduser()
        return path if path.is_absolute() else self.state_dir / path

    @property
    def log_level_number(self) -> int:
        return getattr(logging, self.log_level, logging.WARNING)


class ConfigValidationError(ValueError):
    pass


def _as_str(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    if not stripped:
        return None
    return stripped


def _table(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = raw.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigValidationError(f"[{name}] must be a table")
    return value


def _choice(value: object, *, field: str, choices: tuple[str, ...], upper: bool = False) -> str | None:
    if value is None:
        return None
    text = _as_str(value)
    if text is None:
        raise ConfigValidationError(f"{field} must be a non-empty string")
    normalized = text.upper() if upper else text.lower()
    if normalized not in choices:
        expected = ", ".join(choices)
        raise ConfigValidationError(f"invalid {field} {text!r}; expected one of: {expected}")
    return normalized


def _parse_store(raw: Mapping[str, Any]) -> StoreConfig:
    table = _table(raw, "store")
    backend = _choice(table.get("backend"), field="[store].backend", choices=STORE_BACKENDS)
    path = table.get("path")
    if path is not None and _as_str(path) is None:
        raise ConfigValidationError("[store].path must be a non-empty string")
    beads_bin = table.get("beads_bin")
    if beads_bin is not None and _as_str(beads_bin) is None:
        raise ConfigValidationError("[store].beads_bin must be a non-empty string")
    timeout = table.get("timeout", DEFAULT_BEADS_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigValidationError("[store].timeout must be a positive number of seconds")
    return StoreConfig(
        backend=backend or "jsonl",
        path=_as_str(path) or DEFAULT_ISSUES_FILE,
        beads_bin=_as_str(beads_bin) or DEFAULT_BEADS_BIN,
        timeout=float(timeout),
    )


def _format_path(path: Path, repo_root: Path) -> str:
    try:
        return str(path.resolve().relative_to(repo_root.resolve()))
    except ValueError:
        return str(path)


def load_config(
    repo_root: Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> DepwaveFileConfig:
    """Load ``.depwave/depwave.toml`` plus env overrides.

    Never raises for bad input: the first problem is reported in ``error``
    and defaults are kept for everything that could not be parsed.
    """
    root = (repo_root or Path.cwd()).resolve()
    environ = os.environ if env is None else env
    state_dir = resolve_state_dir(root, create=False, env=environ)
    path = state_dir / CONFIG_FILENAME

    store = StoreConfig()
    output_mode = "auto"
    log_level = "WARNING"
    error: str | None = None

    if path.exists():
        try:
            raw = tomllib.loads(path.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raw = {}
            error = f"invalid TOML in {_format_path(path, root)}: {exc}"
        try:
            store = _parse_store(raw)
            output_mode = (
                _choice(_table(raw, "output").get("mode"), field="[output].mode", choices=OUTPUT_MODES)
                or output_mode
            )
            log_level = (
                _choice(
                    _table(raw, "logging").get("level"),
                    field="[logging].level",
                    choices=LOG_LEVELS,
                    upper=True,
                )
                or log_level
            )
        except ConfigValidationError as exc:
            error = error or f"{_format_path(path, root)}: {exc}"

    try:
        output_mode = (
            _choice(environ.get(OUTPUT_ENV_VAR) or None, field=OUTPUT_ENV_VAR, choices=OUTPUT_MODES)
            or output_mode
        )
        log_level = (
            _choice(
                environ.get(LOG_LEVEL_ENV_VAR) or None,
                field=LOG_LEVEL_ENV_VAR,
                choices=LOG_LEVELS,
                upper=True,
            )
            or log_level
        )
    except ConfigValidationError as exc:
        error = error or str(exc)

    return DepwaveFileConfig(
        state_dir=state_dir,
        path=path,
        store=store,
        output_mode=output_mode,
        log_level=log_level,
        error=error,
    )


def open_store(config: DepwaveFileConfig, *, cwd: Path | None = None) -> IssueSource:
    if config.store.backend == "beads":
        return BeadsIssueStore(cwd=cwd, binary=config.store.beads_bin, timeout=config.store.timeout)
    return JsonlIssueStore(config.issues_path)
