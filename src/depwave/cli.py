"""CLI entry point for depwave."""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from . import __version__
from .config import DepwaveFileConfig, load_config, open_store
from .errors import DepwaveError
from .log import configure_logging
from .models import ISSUE_STATUSES, ISSUE_TYPES, Issue
from .resolver import DependencyResolver
from .stores.jsonl import JsonlIssueStore
from .ui import (
    OutputMode,
    add_output_mode_argument,
    make_console,
    print_plain_table,
    render_panel,
    render_table,
    resolve_output_mode,
)

_ISSUE_HEADERS = ("ID", "STATUS", "TYPE", "PR", "CREATED", "DEPENDS ON", "TITLE")
_BLOCKED_HEADERS = ("ID", "TITLE", "BLOCKED BY")


def _emit_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _format_time(value: int) -> str:
    if not value:
        return "-"
    try:
        dt = datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return "-"
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def _truncate(value: object, limit: int) -> str:
    text = str(value or "").strip()
    if len(text) <= limit:
        return text
    if limit <= 3:
        return text[:limit]
    return text[: limit - 3] + "..."


def _issue_columns(issue: Issue) -> tuple[str, ...]:
    return (
        issue.id,
        issue.status,
        issue.type,
        f"P{issue.priority}",
        _format_time(issue.created_at),
        _truncate(",".join(issue.depends_on), 28),
        _truncate(issue.title, 56),
    )


def _print_issues(rows: list[Issue] | tuple[Issue, ...], *, title: str, mode: OutputMode, empty: str) -> None:
    if mode == "rich":
        console = make_console("rich")
        if not rows:
            render_panel(console, empty, title=title)
            return
        render_table(
            console,
            title=title,
            headers=_ISSUE_HEADERS,
            no_wrap_columns=(0, 1, 2, 3, 4),
            rows=[_issue_columns(issue) for issue in rows],
        )
        return
    print(f"{title}:")
    if not rows:
        print(f"  {empty}")
        return
    print_plain_table(_ISSUE_HEADERS, [_issue_columns(issue) for issue in rows])


def _print_lines(lines: list[str], *, title: str, mode: OutputMode) -> None:
    if mode == "rich":
        render_panel(make_console("rich"), "\n".join(lines), title=title)
        return
    print(f"{title}:")
    for line in lines:
        print(f"  {line}")


def _cmd_ready(resolver: DependencyResolver, args: argparse.Namespace, mode: OutputMode) -> None:
    result = resolver.get_ready_issues()
    if args.json:
        _emit_json(result.to_dict())
        return
    _print_issues(result.ready, title="Ready", mode=mode, empty="(no ready issues)")
    _print_issues(result.in_progress, title="In progress", mode=mode, empty="(none)")
    blocked_rows = [
        (item.issue.id, _truncate(item.issue.title, 56), ", ".join(item.blockers))
        for item in result.blocked
    ]
    if mode == "rich":
        console = make_console("rich")
        if blocked_rows:
            render_table(console, title="Blocked", headers=_BLOCKED_HEADERS, rows=blocked_rows, no_wrap_columns=(0,))
        else:
            render_panel(console, "(none)", title="Blocked")
        return
    print("Blocked:")
    if not blocked_rows:
        print("  (none)")
    else:
        print_plain_table(_BLOCKED_HEADERS, blocked_rows)


def _cmd_plan(resolver: DependencyResolver, args: argparse.Namespace, mode: OutputMode) -> None:
    order = resolver.get_execution_order()
    if args.json:
        _emit_json(order.to_dict())
    else:
        waves = [
            f"wave {index}: {', '.join(wave)}"
            for index, wave in enumerate(order.parallel, start=1)
        ] or ["(no schedulable issues)"]
        _print_lines(waves, title="Waves", mode=mode)
        _print_lines(
            [" -> ".join(order.critical_path) or "(empty)"],
            title=f"Critical path ({len(order.critical_path)})",
            mode=mode,
        )
        if order.unresolved:
            lines = [f"unresolved: {', '.join(sorted(order.unresolved))}"]
            lines.extend(" -> ".join([*cycle, cycle[0]]) for cycle in order.cycles)
            _print_lines(lines, title="Cycles", mode=mode)
    if order.unresolved:
        raise SystemExit(1)


def _cmd_cycles(resolver: DependencyResolver, args: argparse.Namespace, mode: OutputMode) -> None:
    cycles = resolver.detect_cycles()
    if args.json:
        _emit_json({"cycles": cycles})
    else:
        lines = [" -> ".join([*cycle, cycle[0]]) for cycle in cycles] or ["(no cycles)"]
        _print_lines(lines, title="Cycles", mode=mode)
    if cycles:
        raise SystemExit(1)


def _cmd_critical_path(resolver: DependencyResolver, args: argparse.Namespace, mode: OutputMode) -> None:
    path = resolver.find_critical_path()
    if args.json:
        _emit_json({"critical_path": path, "length": len(path)})
        return
    _print_lines([" -> ".join(path) or "(empty)"], title=f"Critical path ({len(path)})", mode=mode)


def _cmd_parallel(resolver: DependencyResolver, args: argparse.Namespace, mode: OutputMode) -> None:
    result = resolver.get_parallel_execution_set()
    if args.json:
        _emit_json(result.to_dict())
        return
    _print_issues(result.can_run_parallel, title="Can run in parallel", mode=mode, empty="(none)")
    _print_issues(result.must_run_sequential, title="Must run sequentially", mode=mode, empty="(none)")
    _print_lines([result.reasoning], title="Reasoning", mode=mode)


def _cmd_validate(resolver: DependencyResolver, args: argparse.Namespace, mode: OutputMode) -> None:
    result = resolver.validate_execution(args.id)
    if args.json:
        _emit_json(result.to_dict())
    else:
        lines = [f"can execute: {'yes' if result.can_execute else 'no'}"]
        lines.extend(f"blocker: {blocker.message}" for blocker in result.blockers)
        lines.extend(f"warning: {warning}" for warning in result.warnings)
        _print_lines(lines, title=f"Validate {args.id}", mode=mode)
    if not result.can_execute:
        raise SystemExit(1)


def _require_jsonl(resolver: DependencyResolver, command: str) -> JsonlIssueStore:
    if not isinstance(resolver.store, JsonlIssueStore):
        raise DepwaveError(f"`depwave {command}` needs the jsonl store backend")
    return resolver.store


def _cmd_init(config: DepwaveFileConfig) -> None:
    issues = config.issues_path
    issues.parent.mkdir(parents=True, exist_ok=True)
    issues.touch()
    print(f"initialized {config.state_dir}")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="depwave",
        description="Resolve execution order across dependent issues.",
    )
    p.add_argument("--version", action="version", version=f"depwave {__version__}")
    p.add_argument("--log-level", help="Logging level (default: WARNING or DEPWAVE_LOG_LEVEL)")
    sub = p.add_subparsers(dest="command", metavar="command")

    sub.add_parser("init", help="Create .depwave/ in the current directory")

    new = sub.add_parser("new", help="Create a new issue")
    new.add_argument("title", help="Issue title")
    new.add_argument("-b", "--body", default="", help="Issue description")
    new.add_argument("-t", "--type", default="task", choices=ISSUE_TYPES, help="Issue type")
    new.add_argument("-p", "--priority", type=int, default=2, help="Priority (default: 2)")
    new.add_argument(
        "-d", "--depends-on", action="append", default=[], help="Dependency id (repeatable)"
    )
    new.add_argument("--json", action="store_true", help="Output JSON")

    ls = sub.add_parser("list", help="List issues")
    ls.add_argument("--status", choices=ISSUE_STATUSES, help="Filter by status")
    ls.add_argument("--json", action="store_true", help="Output JSON")
    add_output_mode_argument(ls)

    status = sub.add_parser("status", help="Set issue status")
    status.add_argument("id", help="Issue id")
    status.add_argument("value", choices=ISSUE_STATUSES, help="New status")
    status.add_argument("--json", action="store_true", help="Output JSON")

    close = sub.add_parser("close", help="Set issue status to closed")
    close.add_argument("id", nargs="+", help="Issue id(s)")
    close.add_argument("--json", action="store_true", help="Output JSON")

    for name, help_text in (
        ("ready", "Classify issues into ready / blocked / in progress"),
        ("plan", "Show parallel waves, sequential order and critical path"),
        ("cycles", "Report circular dependencies"),
        ("critical-path", "Show the longest dependency chain"),
        ("parallel", "Show which ready issues can start together"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--json", action="store_true", help="Output JSON")
        add_output_mode_argument(cmd)

    validate = sub.add_parser("validate", help="Pre-flight check for executing one issue")
    validate.add_argument("id", help="Issue id")
    validate.add_argument("--json", action="store_true", help="Output JSON")
    add_output_mode_argument(validate)

    dep = sub.add_parser("dep", help="Dependency operations")
    dep_sub = dep.add_subparsers(dest="dep_cmd", required=True, metavar="dep_cmd")
    for action, help_text in (("add", "Add a dependency"), ("remove", "Remove a dependency")):
        cmd = dep_sub.add_parser(action, help=help_text)
        cmd.add_argument("id", help="Issue that depends on another")
        cmd.add_argument("depends_on", help="Issue it depends on")
        cmd.add_argument("--json", action="store_true", help="Output JSON")

    return p


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else sys.argv[1:])
    if not args.command:
        parser.print_help()
        raise SystemExit(0)

    cwd = Path.cwd()
    config = load_config(cwd)
    try:
        output_mode = resolve_output_mode(getattr(args, "output", None), default=config.output_mode)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc
    configure_logging(args.log_level or config.log_level, output_mode=output_mode)
    if config.error:
        print(f"warning: {config.error}", file=sys.stderr)

    if args.command == "init":
        _cmd_init(config)
        return

    resolver = DependencyResolver(open_store(config, cwd=cwd), working_dir=cwd)
    try:
        if args.command == "ready":
            _cmd_ready(resolver, args, output_mode)
            return
        if args.command == "plan":
            _cmd_plan(resolver, args, output_mode)
            return
        if args.command == "cycles":
            _cmd_cycles(resolver, args, output_mode)
            return
        if args.command == "critical-path":
            _cmd_critical_path(resolver, args, output_mode)
            return
        if args.command == "parallel":
            _cmd_parallel(resolver, args, output_mode)
            return
        if args.command == "validate":
            _cmd_validate(resolver, args, output_mode)
            return

        if args.command == "dep":
            if args.dep_cmd == "add":
                changed = resolver.add_dependency(args.id, args.depends_on)
            else:
                changed = resolver.remove_dependency(args.id, args.depends_on)
            if args.json:
                _emit_json(
                    {
                        "id": args.id,
                        "depends_on": args.depends_on,
                        "action": args.dep_cmd,
                        "changed": changed,
                    }
                )
            else:
                verb = "added" if args.dep_cmd == "add" else "removed"
                print(f"{args.id} -> {args.depends_on} {verb if changed else 'unchanged'}")
            return

        store = _require_jsonl(resolver, args.command)
        if args.command == "new":
            issue = store.create(
                args.title,
                issue_type=args.type,
                priority=args.priority,
                description=args.body,
                depends_on=args.depends_on,
            )
            if args.json:
                _emit_json(issue.to_dict())
            else:
                print(issue.id)
            return

        if args.command == "list":
            rows = store.list_issues(status=args.status)
            if args.json:
                _emit_json([issue.to_dict() for issue in rows])
            else:
                _print_issues(rows, title="Issues", mode=output_mode, empty="(no issues)")
            return

        if args.command in {"status", "close"}:
            ids = [args.id] if args.command == "status" else args.id
            value = args.value if args.command == "status" else "closed"
            updated = [store.set_status(issue_id, value) for issue_id in ids]
            if args.json:
                payload = [issue.to_dict() for issue in updated]
                _emit_json(payload[0] if args.command == "status" else payload)
            else:
                for issue in updated:
                    print(f"{issue.id}  {issue.status}")
            return
    except (DepwaveError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
