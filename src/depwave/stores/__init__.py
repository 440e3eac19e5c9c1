from __future__ import annotations

from .base import IssueSource
from .beads import BeadsIssueStore, parse_beads_output
from .jsonl import JsonlIssueStore
from .state import now_ts, resolve_state_dir

__all__ = [
    "BeadsIssueStore",
    "IssueSource",
    "JsonlIssueStore",
    "now_ts",
    "parse_beads_output",
    "resolve_state_dir",
]
