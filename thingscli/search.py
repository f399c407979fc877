"""Case-insensitive substring search over tasks, projects and checklist items."""

from __future__ import annotations

import sys
from typing import Callable, Sequence, TextIO

from .model import (
    FIELD_NOTE,
    FIELD_STATUS,
    FIELD_TRASHED,
    FIELD_TYPE,
    DongxiError,
    Entity,
    TaskStatus,
    TaskType,
    note_text,
    to_bool,
    to_int,
)
from .state import Item, Session, ThingsState, print_json


def search_items(state: ThingsState, query: str, include_all: bool = False) -> list[Item]:
    """Tasks, projects and checklist items whose title or notes contain query."""
    needle = query.lower()
    found = []
    for item in state.items:
        if item.entity not in (Entity.TASK, Entity.CHECKLIST_ITEM):
            continue
        if not include_all:
            if to_int(item.fields.get(FIELD_STATUS)) != TaskStatus.OPEN:
                continue
            if to_bool(item.fields.get(FIELD_TRASHED)):
                continue
            if item.entity == Entity.TASK and state.is_orphaned_by_trashed_parent(item):
                continue
        notes = note_text(item.fields.get(FIELD_NOTE))
        if needle in item.title.lower() or needle in notes.lower():
            found.append(item)
    return found


def _status_note(item: Item) -> str:
    if to_bool(item.fields.get(FIELD_TRASHED)):
        return " [trashed]"
    status = to_int(item.fields.get(FIELD_STATUS))
    if status == TaskStatus.COMPLETED:
        return " [completed]"
    if status == TaskStatus.CANCELLED:
        return " [cancelled]"
    return ""


def run_search(
    load_state: Callable[[], Session],
    terms: Sequence[str],
    include_all: bool = False,
    json_output: bool = False,
    out: TextIO | None = None,
) -> list[Item]:
    """Run the search command and return the matching items."""
    if not terms:
        raise DongxiError("requires at least 1 arg(s), only received 0")
    stream = out if out is not None else sys.stdout
    state = load_state().state
    found = search_items(state, " ".join(terms), include_all)

    if json_output:
        print_json([state.item_to_output(item) for item in found] or None, stream)
        return found

    for item in found:
        status = _status_note(item) if include_all else ""
        if item.entity == Entity.CHECKLIST_ITEM:
            prefix = "(checklist) "
        elif to_int(item.fields.get(FIELD_TYPE)) == TaskType.PROJECT:
            prefix = "(project) "
        else:
            prefix = ""
        stream.write(f"  {prefix}{item.display_title}{status}  [{item.uuid}]\n")
    if found:
        stream.write(f"\n{len(found)} result(s)\n")
    else:
        stream.write("  (no results)\n")
    return found