from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Mapping, Sequence
from typing import Literal

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import OUTPUT_ENV_VAR, OUTPUT_MODES

OUTPUT_CHOICES = OUTPUT_MODES
OutputMode = Literal["plain", "rich"]


def add_output_mode_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output",
        choices=OUTPUT_CHOICES,
        help=(
            "Output mode: auto (default), plain, or rich. "
            f"Defaults to {OUTPUT_ENV_VAR} when set."
        ),
    )


def _normalize_choice(raw: str | None, *, source: str) -> str | None:
    if raw is None:
        return None
    value = raw.strip().lower()
    if not value:
        return None
    if value not in OUTPUT_CHOICES:
        expected = ", ".join(OUTPUT_CHOICES)
        raise ValueError(f"invalid {source} value {raw!r}; expected one of: {expected}")
    return value


def _stream_is_tty(stream: object) -> bool:
    probe = getattr(stream, "isatty", None)
    if not callable(probe):
        return False
    try:
        return bool(probe())
    except (OSError, ValueError):
        return False


def resolve_output_mode(
    requested: str | None = None,
    *,
    env: Mapping[str, str] | None = None,
    default: str | None = None,
    is_tty: bool | None = None,
) -> OutputMode:
    """Pick plain or rich output: flag, then env var, then config default, then tty."""
    environ = os.environ if env is None else env
    selected = _normalize_choice(requested, source="--output")
    if selected is None:
        selected = _normalize_choice(environ.get(OUTPUT_ENV_VAR), source=OUTPUT_ENV_VAR)
    if selected is None:
        selected = _normalize_choice(default, source="[output].mode")
    if selected is None:
        selected = "auto"

    if selected == "auto":
        tty = _stream_is_tty(sys.stdout) if is_tty is None else bool(is_tty)
        return "rich" if tty else "plain"
    return "rich" if selected == "rich" else "plain"


def make_console(mode: OutputMode, *, stderr: bool = False) -> Console:
    return Console(
        file=sys.stderr if stderr else sys.stdout,
        force_terminal=mode == "rich",
        no_color=mode != "rich",
        highlight=False,
    )


def render_table(
    console: Console,
    *,
    headers: Sequence[str],
    rows: Sequence[Sequence[object]],
    title: str | None = None,
    no_wrap_columns: Sequence[int] = (),
) -> None:
    table = Table(title=title)
    no_wrap = set(no_wrap_columns)
    for idx, header in enumerate(headers):
        table.add_column(str(header), no_wrap=idx in no_wrap)
    for row in rows:
        table.add_row(*(str(value or "") for value in row))
    console.print(table)


def render_panel(console: Console, body: str, *, title: str | None = None) -> None:
    console.print(Panel(body, title=title))


def print_plain_table(headers: Sequence[str], rows: Sequence[Sequence[object]]) -> None:
    values = [[str(value or "") for value in row] for row in rows]
    widths = [len(item) for item in headers]
    for row in values:
        for idx, col in enumerate(row):
            widths[idx] = max(widths[idx], len(col))

    print("  ".join(headers[idx].ljust(widths[idx]) for idx in range(len(headers))).rstrip())
    print("  ".join("-" * widths[idx] for idx in range(len(headers))))
    for row in values:
        print("  ".join(row[idx].ljust(widths[idx]) for idx in range(len(headers))).rstrip())
