"""Command-line entry point: argument parsing and dispatch to the commands."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Any, Callable, NoReturn, Sequence

from .model import Account, CommitItem, CommitResponse, DongxiError, HistoryInfo, ResetResponse
from .query import QueryOptions, run_query
from .reopen import run_reopen
from .reorder import ReorderOptions, run_reorder
from .repeat import RepeatOptions, run_repeat
from .reset import run_reset
from .search import run_search
from .show import run_show
from .state import Session, load_state_file

_CACHE_ENV = "THINGSCLI_CACHE"

LoadState = Callable[[], Session]

_QUERY_EPILOG = """\
examples:
  thingscli query "buy.*milk"                    regexp search across title+notes
  thingscli query --field title "^Weekly"        search a specific field
  thingscli query --type task --status open      filter by type and status
  thingscli query --destination today            filter by destination
  thingscli query --scheduled-before 2025-04-01  date range filters
  thingscli query --count                        just print the count
"""

_REPEAT_EPILOG = """\
frequency format: <number> <unit>, units: daily, weekly, monthly

examples:
  thingscli repeat <uuid> --every "1 daily"
  thingscli repeat <uuid> --every "2 weekly" --days mon,wed,fri
  thingscli repeat <uuid> --every "1 monthly" --type completion
  thingscli repeat <uuid> --clear
"""

_REORDER_EPILOG = """\
examples:
  thingscli reorder <uuid> --top
  thingscli reorder <uuid> --after <uuid>
  thingscli reorder <uuid> --top --today
"""

_RESET_DESCRIPTION = """\
Reset the Things Cloud history key for your account.

WARNING: this is destructive. It invalidates the current sync history,
forces all Things clients to re-sync from scratch and may lose unsynced
changes. Make sure all your clients are synced before proceeding.
"""


class _OfflineClient:
    """Client used when only a local snapshot is available; it refuses remote operations."""

    email = ""

    def __init__(self, cache_path: Path) -> None:
        self.cache_path = cache_path

    def _refuse(self, operation: str) -> NoReturn:
        message = (
            f"cannot {operation}: no Things Cloud client configured, "
            f"only cached data from {self.cache_path} is available"
        )
        raise DongxiError(message)

    def get_history(self, history_key: str) -> HistoryInfo:
        self._refuse(f"fetch history info for key {history_key!r}")

    def commit(
        self, history_key: str, ancestor_index: int, items: dict[str, CommitItem]
    ) -> CommitResponse:
        self._refuse(f"commit {len(items)} item(s) at index {ancestor_index}")

    def reset_history(self, email: str) -> ResetResponse:
        self._refuse("reset history")

    def get_account(self, email: str) -> Account:
        self._refuse("fetch account")

    def get_history_items(self, history_key: str) -> list[dict[str, Any]]:
        self._refuse(f"fetch history items for key {history_key!r}")


def _cache_path(args: argparse.Namespace) -> Path:
    if args.cache:
        return Path(args.cache)
    from_env = os.environ.get(_CACHE_ENV)
    if from_env:
        return Path(from_env)
    return Path.home() / ".cache" / "thingscli" / "state.json"


def _default_loader(args: argparse.Namespace) -> LoadState:
    def load() -> Session:
        if args.sync:
            raise DongxiError("cannot sync: no Things Cloud client configured")
        path = _cache_path(args)
        return Session(load_state_file(path), _OfflineClient(path), "")

    return load


def _run_query(args: argparse.Namespace, load_state: LoadState) -> None:
    options = QueryOptions(
        search_field=args.field,
        item_type=args.item_type,
        status=args.status,
        destination=args.destination,
        area=args.area,
        project=args.project,
        tag=args.tag,
        scheduled_before=args.scheduled_before,
        scheduled_after=args.scheduled_after,
        deadline_before=args.deadline_before,
        deadline_after=args.deadline_after,
        created_before=args.created_before,
        created_after=args.created_after,
        evening=args.evening,
        has_notes=args.has_notes,
        has_checklist=args.has_checklist,
        has_tags=args.has_tags,
        has_deadline=args.has_deadline,
        count=args.count,
        include_trashed=args.include_trashed,
    )
    run_query(load_state, args.pattern, options, args.json)


def _run_search(args: argparse.Namespace, load_state: LoadState) -> None:
    run_search(load_state, args.terms, args.all, args.json)


def _run_show(args: argparse.Namespace, load_state: LoadState) -> None:
    run_show(load_state, args.uuid, args.json)


def _run_repeat(args: argparse.Namespace, load_state: LoadState) -> None:
    options = RepeatOptions(
        frequency=args.every,
        clear=args.clear,
        repeat_type=args.repeat_type,
        days=args.days,
        end_date=args.end_date,
        end_count=args.end_count,
    )
    run_repeat(load_state, args.uuid, options, args.json)


def _run_reopen(args: argparse.Namespace, load_state: LoadState) -> None:
    run_reopen(load_state, args.uuids, args.json)


def _run_reorder(args: argparse.Namespace, load_state: LoadState) -> None:
    options = ReorderOptions(
        after=args.after,
        before=args.before,
        top=args.top,
        bottom=args.bottom,
        today=args.today,
    )
    run_reorder(load_state, args.uuid, options, args.json)


def _run_reset(args: argparse.Namespace, load_state: LoadState) -> None:
    run_reset(load_state, assume_yes=args.yes)


def _global_flags(parser: argparse.ArgumentParser, default: Any) -> None:
    parser.add_argument("--json", action="store_true", default=default,
                        help="output in JSON format")
    parser.add_argument("--skip-sync", action="store_true", default=default,
                        help="use cached data only, do not contact Things Cloud")
    parser.add_argument("--sync", action="store_true", default=default,
                        help="force a sync even if the throttle interval has not elapsed")


def build_parser() -> argparse.ArgumentParser:
    """The argument parser with every subcommand."""
    common = argparse.ArgumentParser(add_help=False)
    _global_flags(common, argparse.SUPPRESS)

    parser = argparse.ArgumentParser(
        prog="thingscli",
        description="A command-line tool for interacting with Things Cloud.",
    )
    _global_flags(parser, False)
    parser.add_argument("--cache", default="",
                        help=f"state snapshot file (default: ${_CACHE_ENV} or ~/.cache/thingscli/state.json)")
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    def command(name: str, help_text: str, handler: Callable[..., None], **kwargs: Any):
        cmd = sub.add_parser(name, help=help_text, parents=[common], **kwargs)
        cmd.set_defaults(handler=handler)
        return cmd

    search = command("search", "search tasks, projects and checklist items by title or notes",
                     _run_search)
    search.add_argument("terms", nargs="+", metavar="query")
    search.add_argument("--all", action="store_true", help="include completed and trashed items")

    query = command("query", "query items with regexp matching and filters", _run_query,
                    epilog=_QUERY_EPILOG, formatter_class=argparse.RawDescriptionHelpFormatter)
    query.add_argument("pattern", nargs="?", default=None)
    query.add_argument("--field", default="all", help="field to search: title, notes, all")
    query.add_argument("--type", dest="item_type", default="all",
                       help="item type: task, project, heading, area, tag, checklist, all")
    query.add_argument("--status", default="open",
                       help="status filter: open, completed, cancelled, any")
    query.add_argument("--destination", default="any",
                       help="destination: inbox, today, evening, someday, any")
    query.add_argument("--area", default="", help="filter by area UUID")
    query.add_argument("--project", default="", help="filter by project UUID")
    query.add_argument("--tag", default="", help="filter by tag UUID")
    for flag, text in (
        ("scheduled-before", "scheduled before date"),
        ("scheduled-after", "scheduled after date"),
        ("deadline-before", "deadline before date"),
        ("deadline-after", "deadline after date"),
        ("created-before", "created before date"),
        ("created-after", "created after date"),
    ):
        query.add_argument(f"--{flag}", default="", help=f"{text} (YYYY-MM-DD)")
    query.add_argument("--evening", action="store_true", help="only evening tasks")
    query.add_argument("--has-notes", action="store_true", help="only items with notes")
    query.add_argument("--has-checklist", action="store_true",
                       help="only items with checklist items")
    query.add_argument("--has-tags", action="store_true", help="only items with tags")
    query.add_argument("--has-deadline", action="store_true", help="only items with a deadline")
    query.add_argument("--count", action="store_true", help="just print the count")
    query.add_argument("--include-trashed", action="store_true", help="include trashed items")

    show = command("show", "show details of a task, project or area", _run_show)
    show.add_argument("uuid")

    reopen = command("reopen", "reopen completed or cancelled tasks", _run_reopen)
    reopen.add_argument("uuids", nargs="+", metavar="uuid")

    reorder = command("reorder", "reorder a task within its list", _run_reorder,
                      epilog=_REORDER_EPILOG,
                      formatter_class=argparse.RawDescriptionHelpFormatter)
    reorder.add_argument("uuid")
    reorder.add_argument("--after", default="", help="place after this task UUID")
    reorder.add_argument("--before", default="", help="place before this task UUID")
    reorder.add_argument("--top", action="store_true", help="move to top of list")
    reorder.add_argument("--bottom", action="store_true", help="move to bottom of list")
    reorder.add_argument("--today", action="store_true",
                         help="reorder within the Today list (uses today index)")

    repeat = command("repeat", "set or clear a repeating schedule on a task", _run_repeat,
                     epilog=_REPEAT_EPILOG,
                     formatter_class=argparse.RawDescriptionHelpFormatter)
    repeat.add_argument("uuid")
    repeat.add_argument("--every", default="",
                        help='repeat frequency (e.g. "1 daily", "2 weekly", "1 monthly")')
    repeat.add_argument("--clear", action="store_true", help="remove the repeat rule")
    repeat.add_argument("--type", dest="repeat_type", default="fixed",
                        help="repeat type: fixed or completion")
    repeat.add_argument("--days", default="", help='weekdays for weekly repeat (e.g. "mon,wed,fri")')
    repeat.add_argument("--end-date", default="", help="end date (YYYY-MM-DD)")
    repeat.add_argument("--end-count", type=int, default=0, help="maximum number of repetitions")

    reset = command("reset", "reset the Things Cloud history key", _run_reset,
                    description=_RESET_DESCRIPTION,
                    formatter_class=argparse.RawDescriptionHelpFormatter)
    reset.add_argument("-y", "--yes", action="store_true", help="skip confirmation prompt")

    return parser


def main(argv: Sequence[str] | None = None, load_state: LoadState | None = None) -> int:
    """Parse arguments, run the chosen command and return an exit status."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        code = exc.code
        if code is None:
            return 0
        return code if isinstance(code, int) else 1

    if args.command is None:
        parser.print_help()
        return 0

    loader = load_state if load_state is not None else _default_loader(args)
    try:
        args.handler(args, loader)
    except DongxiError as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())