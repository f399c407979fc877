"""Detailed view of a single task, project, heading, area or tag."""

from __future__ import annotations

import datetime as _dt
import sys
from typing import Callable, TextIO

from .model import (
    FIELD_AREA_IDS,
    FIELD_CREATION_DATE,
    FIELD_DEADLINE,
    FIELD_DESTINATION,
    FIELD_MODIFICATION_DATE,
    FIELD_NOTE,
    FIELD_PROJECT_IDS,
    FIELD_SCHEDULED_DATE,
    FIELD_START_BUCKET,
    FIELD_STATUS,
    FIELD_TAG_IDS,
    FIELD_TRASHED,
    FIELD_TYPE,
    Entity,
    TaskDestination,
    TaskStatus,
    TaskType,
    first_string,
    format_timestamp,
    note_text,
    string_list,
    to_bool,
    to_float,
    to_int,
    to_str,
)
from .state import Item, Session, ThingsState, print_json

_STATUS_LABELS = {
    TaskStatus.OPEN: "Open",
    TaskStatus.CANCELLED: "Cancelled",
    TaskStatus.COMPLETED: "Completed",
}

_KIND_LABELS = {
    TaskType.TASK: "Task",
    TaskType.PROJECT: "Project",
    TaskType.HEADING: "Heading",
}

_DESTINATION_LABELS = {
    TaskDestination.INBOX: "Inbox",
    TaskDestination.ANYTIME: "Today",
    TaskDestination.SOMEDAY: "Someday",
}

_COLUMN_PADDING = 2


def _utc_date(seconds: float) -> str:
    return _dt.datetime.fromtimestamp(int(seconds), _dt.timezone.utc).strftime("%Y-%m-%d")


def _align(rows: list[tuple[str, str]]) -> list[str]:
    width = max(len(label) for label, _ in rows) + _COLUMN_PADDING
    return [f"{label.ljust(width)}{value}" for label, value in rows]


def _task_rows(state: ThingsState, item: Item) -> list[tuple[str, str]]:
    fields = item.fields
    rows: list[tuple[str, str]] = []

    status = _STATUS_LABELS.get(to_int(fields.get(FIELD_STATUS)))
    if status:
        rows.append(("Status:", status))
    kind = _KIND_LABELS.get(to_int(fields.get(FIELD_TYPE)))
    if kind:
        rows.append(("Kind:", kind))
    destination = _DESTINATION_LABELS.get(to_int(fields.get(FIELD_DESTINATION)))
    if destination:
        rows.append(("Destination:", destination))

    if to_bool(fields.get(FIELD_TRASHED)):
        rows.append(("Trashed:", "Yes"))

    area_uuid = first_string(fields.get(FIELD_AREA_IDS))
    if area_uuid:
        rows.append(("Area:", state.area_title(area_uuid) or area_uuid))
    project_uuid = first_string(fields.get(FIELD_PROJECT_IDS))
    if project_uuid:
        rows.append(("Project:", state.project_title(project_uuid) or project_uuid))

    for key, label in ((FIELD_CREATION_DATE, "Created:"), (FIELD_MODIFICATION_DATE, "Modified:")):
        stamp = to_float(fields.get(key))
        if stamp > 0:
            rows.append((label, format_timestamp(stamp)))
    for key, label in ((FIELD_SCHEDULED_DATE, "Scheduled:"), (FIELD_DEADLINE, "Deadline:")):
        stamp = to_float(fields.get(key))
        if stamp > 0:
            rows.append((label, _utc_date(stamp)))

    notes = note_text(fields.get(FIELD_NOTE))
    if notes:
        rows.append(("Notes:", notes))

    for tag_uuid in string_list(fields.get(FIELD_TAG_IDS)):
        tag = state.by_uuid.get(tag_uuid)
        rows.append(("Tag:", to_str(tag.fields.get("tt")) if tag else tag_uuid))

    if to_int(fields.get(FIELD_START_BUCKET)) == 1:
        rows.append(("Evening:", "Yes"))

    if to_int(fields.get(FIELD_TYPE)) == TaskType.PROJECT:
        total, completed = state.project_progress(item.uuid)
        if total > 0:
            rows.append(("Progress:", f"{completed}/{total} tasks"))
    return rows


def render_item(state: ThingsState, item: Item) -> str:
    """Human-readable, column-aligned description of an item."""
    rows = [("UUID:", item.uuid), ("Type:", item.entity), ("Title:", item.display_title)]
    tail: list[str] = []
    if item.entity == Entity.TASK:
        rows.extend(_task_rows(state, item))
        checklist = state.checklist_for_task(item.uuid)
        if checklist:
            tail.extend(["", "Checklist:"])
            for entry in checklist:
                done = to_int(entry.fields.get(FIELD_STATUS)) == TaskStatus.COMPLETED
                tail.append(f"  {'[x]' if done else '[ ]'} {entry.title}")
    return "\n".join(_align(rows) + tail) + "\n"


def run_show(
    load_state: Callable[[], Session],
    query: str,
    json_output: bool = False,
    out: TextIO | None = None,
) -> Item:
    """Run the show command and return the item shown."""
    stream = out if out is not None else sys.stdout
    state = load_state().state
    item = state.resolve_uuid(query)

    if json_output:
        output = state.item_to_output(item)
        if item.entity == Entity.TASK:
            if to_int(item.fields.get(FIELD_TYPE)) == TaskType.PROJECT:
                total, completed = state.project_progress(item.uuid)
                output["tasks_total"] = total
                output["tasks_completed"] = completed
            checklist = [state.item_to_output(entry) for entry in state.checklist_for_task(item.uuid)]
            if checklist:
                output["checklist"] = checklist
        print_json(output, stream)
        return item

    stream.write(render_item(state, item))
    return item