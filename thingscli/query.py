"""Filtering items by type, status, place, dates, tags and a regular expression."""

from __future__ import annotations

import calendar
import datetime as _dt
import re
import sys
from dataclasses import dataclass
from typing import Callable, TextIO

from .model import (
    FIELD_AREA_IDS,
    FIELD_CREATION_DATE,
    FIELD_DEADLINE,
    FIELD_DESTINATION,
    FIELD_NOTE,
    FIELD_PROJECT_IDS,
    FIELD_SCHEDULED_DATE,
    FIELD_START_BUCKET,
    FIELD_STATUS,
    FIELD_TAG_IDS,
    FIELD_TASK_IDS,
    FIELD_TRASHED,
    FIELD_TYPE,
    DongxiError,
    Entity,
    TaskDestination,
    TaskStatus,
    TaskType,
    first_string,
    has_string,
    note_text,
    string_list,
    to_bool,
    to_float,
    to_int,
)
from .state import Item, Session, ThingsState, print_json

_DATE_SHAPE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")

_STATUS_FILTERS = {
    "open": TaskStatus.OPEN,
    "completed": TaskStatus.COMPLETED,
    "cancelled": TaskStatus.CANCELLED,
}

_TASK_TYPE_FILTERS = {
    "task": TaskType.TASK,
    "project": TaskType.PROJECT,
    "heading": TaskType.HEADING,
}

_ENTITY_FILTERS = {
    "area": Entity.AREA,
    "tag": Entity.TAG,
    "checklist": Entity.CHECKLIST_ITEM,
}


@dataclass
class QueryOptions:
    """Filters for a query; the defaults match every open, untrashed item."""

    search_field: str = "all"
    item_type: str = "all"
    status: str = "open"
    destination: str = "any"
    area: str = ""
    project: str = ""
    tag: str = ""
    scheduled_before: str = ""
    scheduled_after: str = ""
    deadline_before: str = ""
    deadline_after: str = ""
    created_before: str = ""
    created_after: str = ""
    evening: bool = False
    has_notes: bool = False
    has_checklist: bool = False
    has_tags: bool = False
    has_deadline: bool = False
    count: bool = False
    include_trashed: bool = False


@dataclass(frozen=True)
class _Criteria:
    regex: re.Pattern[str] | None
    scheduled: tuple[float, float]
    deadline: tuple[float, float]
    created: tuple[float, float]


def parse_date(value: str, name: str) -> float:
    """Unix time of a YYYY-MM-DD date at UTC midnight; 0.0 when value is empty."""
    if not value:
        return 0.0
    message = f'invalid date for --{name}: "{value}" (expected YYYY-MM-DD)'
    if not _DATE_SHAPE.fullmatch(value):
        raise DongxiError(message)
    try:
        parsed = _dt.datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise DongxiError(message) from None
    return float(calendar.timegm(parsed.timetuple()))


def matches_type(item: Item, type_filter: str) -> bool:
    """Whether an item matches a --type filter value."""
    if type_filter == "all":
        return True
    if type_filter in _TASK_TYPE_FILTERS:
        return (
            item.entity == Entity.TASK
            and to_int(item.fields.get(FIELD_TYPE)) == _TASK_TYPE_FILTERS[type_filter]
        )
    if type_filter in _ENTITY_FILTERS:
        return item.entity == _ENTITY_FILTERS[type_filter]
    return False


def item_has_checklist(state: ThingsState, task_uuid: str) -> bool:
    """Whether any checklist item belongs to the task."""
    return any(
        item.entity == Entity.CHECKLIST_ITEM
        and first_string(item.fields.get(FIELD_TASK_IDS)) == task_uuid
        for item in state.items
    )


def _prepare(options: QueryOptions, pattern: str | None) -> _Criteria:
    regex = None
    if pattern is not None:
        try:
            regex = re.compile(pattern)
        except re.error as exc:
            raise DongxiError(f'invalid regexp "{pattern}": {exc}') from exc
    return _Criteria(
        regex=regex,
        scheduled=(
            parse_date(options.scheduled_before, "scheduled-before"),
            parse_date(options.scheduled_after, "scheduled-after"),
        ),
        deadline=(
            parse_date(options.deadline_before, "deadline-before"),
            parse_date(options.deadline_after, "deadline-after"),
        ),
        created=(
            parse_date(options.created_before, "created-before"),
            parse_date(options.created_after, "created-after"),
        ),
    )


def _within(stamp: float, bounds: tuple[float, float]) -> bool:
    before, after = bounds
    if before > 0 and (stamp <= 0 or stamp >= before):
        return False
    if after > 0 and (stamp <= 0 or stamp < after):
        return False
    return True


def _matches_destination(item: Item, destination: str) -> bool:
    dest = to_int(item.fields.get(FIELD_DESTINATION))
    if destination == "inbox":
        return dest == TaskDestination.INBOX
    if destination == "today":
        return dest == TaskDestination.ANYTIME
    if destination == "evening":
        return (
            dest == TaskDestination.ANYTIME
            and to_int(item.fields.get(FIELD_START_BUCKET)) == 1
        )
    if destination == "someday":
        return dest == TaskDestination.SOMEDAY
    return True


def _task_area(state: ThingsState, item: Item) -> str:
    area = first_string(item.fields.get(FIELD_AREA_IDS))
    if area:
        return area
    project_uuid = first_string(item.fields.get(FIELD_PROJECT_IDS))
    project = state.projects.get(project_uuid) if project_uuid else None
    return first_string(project.fields.get(FIELD_AREA_IDS)) if project else ""


def _keep(state: ThingsState, item: Item, options: QueryOptions, criteria: _Criteria) -> bool:
    fields = item.fields
    is_task = item.entity == Entity.TASK

    if not matches_type(item, options.item_type):
        return False

    trashed = to_bool(fields.get(FIELD_TRASHED))
    if is_task:
        trashed = trashed or state.is_orphaned_by_trashed_parent(item)
    if trashed and not options.include_trashed:
        return False

    if options.status != "any" and (is_task or item.entity == Entity.CHECKLIST_ITEM):
        wanted = _STATUS_FILTERS.get(options.status)
        if wanted is not None and to_int(fields.get(FIELD_STATUS)) != wanted:
            return False

    if options.destination != "any" and is_task:
        if not _matches_destination(item, options.destination):
            return False

    if options.area and is_task and _task_area(state, item) != options.area:
        return False

    if options.project and is_task:
        if first_string(fields.get(FIELD_PROJECT_IDS)) != options.project:
            return False

    if options.tag and not has_string(fields.get(FIELD_TAG_IDS), options.tag):
        return False

    if not _within(to_float(fields.get(FIELD_SCHEDULED_DATE)), criteria.scheduled):
        return False
    if not _within(to_float(fields.get(FIELD_DEADLINE)), criteria.deadline):
        return False
    if not _within(to_float(fields.get(FIELD_CREATION_DATE)), criteria.created):
        return False

    if options.evening and to_int(fields.get(FIELD_START_BUCKET)) != 1:
        return False
    if options.has_notes and not note_text(fields.get(FIELD_NOTE)):
        return False
    if options.has_checklist and not item_has_checklist(state, item.uuid):
        return False
    if options.has_tags and not string_list(fields.get(FIELD_TAG_IDS)):
        return False
    if options.has_deadline and to_float(fields.get(FIELD_DEADLINE)) <= 0:
        return False

    if criteria.regex is not None:
        title = item.title
        notes = note_text(fields.get(FIELD_NOTE))
        search = criteria.regex.search
        if options.search_field == "title":
            matched = search(title) is not None
        elif options.search_field == "notes":
            matched = search(notes) is not None
        else:
            matched = search(title) is not None or search(notes) is not None
        if not matched:
            return False

    return True


def _filter(state: ThingsState, options: QueryOptions, criteria: _Criteria) -> list[Item]:
    return [item for item in state.items if _keep(state, item, options, criteria)]


def filter_items(
    state: ThingsState, options: QueryOptions, pattern: str | None = None
) -> list[Item]:
    """Items of the state that pass every filter, in state order."""
    return _filter(state, options, _prepare(options, pattern))


def _type_prefix(item: Item) -> str:
    if item.entity == Entity.CHECKLIST_ITEM:
        return "(checklist) "
    if item.entity == Entity.AREA:
        return "(area) "
    if item.entity == Entity.TAG:
        return "(tag) "
    if item.entity == Entity.TASK:
        kind = to_int(item.fields.get(FIELD_TYPE))
        if kind == TaskType.PROJECT:
            return "(project) "
        if kind == TaskType.HEADING:
            return "(heading) "
    return ""


def run_query(
    load_state: Callable[[], Session],
    pattern: str | None = None,
    options: QueryOptions | None = None,
    json_output: bool = False,
    out: TextIO | None = None,
) -> list[Item]:
    """Run the query command and return the matching items."""
    stream = out if out is not None else sys.stdout
    options = options if options is not None else QueryOptions()
    criteria = _prepare(options, pattern)
    state = load_state().state
    found = _filter(state, options, criteria)

    if options.count:
        stream.write(f"{len(found)}\n")
        return found

    if json_output:
        print_json([state.item_to_output(item) for item in found] or None, stream)
        return found

    for item in found:
        stream.write(f"  {_type_prefix(item)}{item.display_title}  [{item.uuid}]\n")
    if found:
        stream.write(f"\n{len(found)} result(s)\n")
    else:
        stream.write("  (no results)\n")
    return found