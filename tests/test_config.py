from __future__ import annotations

import logging
from pathlib import Path

from depwave.config import load_config, open_store
from depwave.stores.beads import BeadsIssueStore
from depwave.stores.jsonl import JsonlIssueStore


def _write_config(tmp_path: Path, body: str) -> None:
    path = tmp_path / ".depwave" / "depwave.toml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body.strip() + "\n", encoding="utf-8")


def test_load_config_defaults_without_file(tmp_path: Path) -> None:
    cfg = load_config(tmp_path, env={})

    assert cfg.error is None
    assert cfg.store.backend == "jsonl"
    assert cfg.output_mode == "auto"
    assert cfg.log_level == "WARNING"
    assert cfg.issues_path == tmp_path.resolve() / ".depwave" / "issues.jsonl"
    assert isinstance(open_store(cfg, cwd=tmp_path), JsonlIssueStore)


def test_load_config_reads_all_tables(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
[store]
backend = "beads"
beads_bin = "/opt/bin/bd"

[output]
mode = "Rich"

[logging]
level = "debug"
""",
    )

    cfg = load_config(tmp_path, env={})

    assert cfg.error is None
    assert cfg.store.backend == "beads"
    assert cfg.store.beads_bin == "/opt/bin/bd"
    assert cfg.output_mode == "rich"
    assert cfg.log_level == "DEBUG"
    assert cfg.log_level_number == logging.DEBUG

    store = open_store(cfg, cwd=tmp_path)
    assert isinstance(store, BeadsIssueStore)
    assert store.binary == "/opt/bin/bd"
    assert store.cwd == tmp_path


def test_relative_store_path_resolves_under_state_dir(tmp_path: Path) -> None:
    _write_config(tmp_path, '[store]\npath = "tracker/issues.jsonl"')

    cfg = load_config(tmp_path, env={})

    assert cfg.issues_path == tmp_path.resolve() / ".depwave" / "tracker" / "issues.jsonl"


def test_invalid_backend_is_reported_not_raised(tmp_path: Path) -> None:
    _write_config(tmp_path, '[store]\nbackend = "sqlite"')

    cfg = load_config(tmp_path, env={})

    assert cfg.store.backend == "jsonl"
    assert cfg.error is not None
    assert "invalid [store].backend 'sqlite'" in cfg.error
    assert ".depwave/depwave.toml" in cfg.error


def test_invalid_toml_is_reported(tmp_path: Path) -> None:
    _write_config(tmp_path, "[store\nbackend =")

    cfg = load_config(tmp_path, env={})

    assert cfg.error is not None
    assert "invalid TOML" in cfg.error
    assert cfg.store.backend == "jsonl"


def test_non_table_section_is_reported(tmp_path: Path) -> None:
    _write_config(tmp_path, 'output = "rich"')

    cfg = load_config(tmp_path, env={})

    assert cfg.error is not None
    assert "[output] must be a table" in cfg.error


def test_env_overrides_file_values(tmp_path: Path) -> None:
    _write_config(tmp_path, '[output]\nmode = "rich"\n[logging]\nlevel = "ERROR"')

    cfg = load_config(
        tmp_path,
        env={"DEPWAVE_OUTPUT": "plain", "DEPWAVE_LOG_LEVEL": "info"},
    )

    assert cfg.output_mode == "plain"
    assert cfg.log_level == "INFO"


def test_invalid_env_value_is_reported(tmp_path: Path) -> None:
    cfg = load_config(tmp_path, env={"DEPWAVE_LOG_LEVEL": "loud"})

    assert cfg.log_level == "WARNING"
    assert cfg.error is not None
    assert "DEPWAVE_LOG_LEVEL" in cfg.error


def test_store_timeout_reaches_beads_store(tmp_path: Path) -> None:
    _write_config(tmp_path, '[store]\nbackend = "beads"\ntimeout = 5')

    cfg = load_config(tmp_path, env={})

    assert cfg.error is None
    assert open_store(cfg, cwd=tmp_path).timeout == 5.0


def test_non_positive_timeout_is_reported(tmp_path: Path) -> None:
    _write_config(tmp_path, "[store]\ntimeout = 0")

    cfg = load_config(tmp_path, env={})

    assert cfg.error is not None
    assert "[store].timeout" in cfg.error


def test_state_dir_comes_from_env_mapping(tmp_path: Path) -> None:
    state = tmp_path / "shared-state"
    state.mkdir()
    (state / "depwave.toml").write_text('[output]\nmode = "rich"\n', encoding="utf-8")

    cfg = load_config(tmp_path / "repo", env={"DEPWAVE_STATE_DIR": str(state)})

    assert cfg.state_dir == state.resolve()
    assert cfg.output_mode == "rich"
    assert cfg.issues_path == state.resolve() / "issues.jsonl"
