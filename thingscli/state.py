"""The replayed Things state and the lookups commands run against it."""

from __future__ import annotations

import calendar
import datetime as _dt
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Protocol, TextIO

from .model import (
    FIELD_ACTION_GROUP_IDS,
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
    FIELD_TASK_IDS,
    FIELD_TITLE,
    FIELD_TODAY_INDEX,
    FIELD_TODAY_INDEX_REF,
    FIELD_TRASHED,
    FIELD_TYPE,
    Account,
    CommitItem,
    CommitResponse,
    DongxiError,
    Entity,
    HistoryInfo,
    ResetResponse,
    TaskDestination,
    TaskStatus,
    TaskType,
    first_string,
    note_text,
    string_list,
    to_bool,
    to_float,
    to_int,
    to_str,
)

_DESTINATION_NAMES = {
    TaskDestination.INBOX: "inbox",
    TaskDestination.ANYTIME: "today",
    TaskDestination.SOMEDAY: "someday",
}


@dataclass
class Item:
    """One item as it stands after replaying the history."""

    uuid: str
    entity: str
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def title(self) -> str:
        return to_str(self.fields.get(FIELD_TITLE))

    @property
    def display_title(self) -> str:
        return self.title or "(untitled)"


class CloudClient(Protocol):
    """Operations a Things Cloud client offers."""

    @property
    def email(self) -> str:
        """The account's e-mail address."""

    def get_history(self, history_key: str) -> HistoryInfo:
        """Current head of the history."""

    def commit(
        self, history_key: str, ancestor_index: int, items: dict[str, CommitItem]
    ) -> CommitResponse:
        """Send a set of changes on top of the given server index."""

    def reset_history(self, email: str) -> ResetResponse:
        """Replace the account's history key."""

    def get_account(self, email: str) -> Account:
        """Account details for an address."""

    def get_history_items(self, history_key: str) -> list[dict[str, Any]]:
        """All history entries."""


@dataclass
class Session:
    """What a command works with: state, a client and the history key."""

    state: "ThingsState"
    client: CloudClient
    history_key: str


class ThingsState:
    """All items with lookups by UUID, area and project."""

    def __init__(self, items: Iterable[Item]) -> None:
        self.items: list[Item] = list(items)
        self.by_uuid: dict[str, Item] = {}
        self.areas: dict[str, Item] = {}
        self.projects: dict[str, Item] = {}
        for item in self.items:
            self.by_uuid[item.uuid] = item
            if item.entity == Entity.AREA:
                self.areas[item.uuid] = item
            elif item.entity == Entity.TASK and _task_type(item) == TaskType.PROJECT:
                self.projects[item.uuid] = item

    def resolve_uuid(self, query: str) -> Item:
        """Find an item by full UUID or unique UUID prefix."""
        if query in self.by_uuid:
            return self.by_uuid[query]
        matches = [item for uuid, item in self.by_uuid.items() if uuid.startswith(query)]
        if not matches:
            raise DongxiError(f'no item found matching "{query}"')
        if len(matches) > 1:
            raise DongxiError(f'ambiguous UUID prefix "{query}": matches {len(matches)} items')
        return matches[0]

    def area_title(self, uuid: str) -> str:
        area = self.areas.get(uuid)
        return area.title if area else ""

    def project_title(self, uuid: str) -> str:
        project = self.projects.get(uuid)
        return project.title if project else ""

    def project_progress(self, project_uuid: str) -> tuple[int, int]:
        """(total, completed) counts of untrashed tasks in a project."""
        total = completed = 0
        for item in self.items:
            if item.entity != Entity.TASK or _task_type(item) != TaskType.TASK:
                continue
            if first_string(item.fields.get(FIELD_PROJECT_IDS)) != project_uuid:
                continue
            if to_bool(item.fields.get(FIELD_TRASHED)):
                continue
            total += 1
            if to_int(item.fields.get(FIELD_STATUS)) == TaskStatus.COMPLETED:
                completed += 1
        return total, completed

    def headings_for_project(self, project_uuid: str) -> list[Item]:
        return [
            item
            for item in self.items
            if item.entity == Entity.TASK
            and _task_type(item) == TaskType.HEADING
            and first_string(item.fields.get(FIELD_PROJECT_IDS)) == project_uuid
        ]

    def checklist_for_task(self, task_uuid: str) -> list[Item]:
        return [
            item
            for item in self.items
            if item.entity == Entity.CHECKLIST_ITEM
            and first_string(item.fields.get(FIELD_TASK_IDS)) == task_uuid
        ]

    def _is_trashed_uuid(self, uuid: str) -> bool:
        parent = self.by_uuid.get(uuid)
        return parent is not None and to_bool(parent.fields.get(FIELD_TRASHED))

    def is_orphaned_by_trashed_parent(self, item: Item) -> bool:
        """Whether the item's heading's project or own project is trashed."""
        for group_uuid in string_list(item.fields.get(FIELD_ACTION_GROUP_IDS)):
            heading = self.by_uuid.get(group_uuid)
            if heading is None:
                continue
            project_uuid = first_string(heading.fields.get(FIELD_PROJECT_IDS))
            if project_uuid and self._is_trashed_uuid(project_uuid):
                return True
        project_uuid = first_string(item.fields.get(FIELD_PROJECT_IDS))
        return bool(project_uuid) and self._is_trashed_uuid(project_uuid)

    def item_to_output(self, item: Item) -> dict[str, Any]:
        """A JSON-ready description of an item."""
        fields = item.fields
        out: dict[str, Any] = {"uuid": item.uuid, "type": item.entity, "title": item.title}

        if item.entity in (Entity.TASK, Entity.CHECKLIST_ITEM):
            status = to_int(fields.get(FIELD_STATUS))
            try:
                out["status"] = TaskStatus(status).name.lower()
            except ValueError:
                out["status"] = str(status)

        if item.entity == Entity.CHECKLIST_ITEM:
            task_uuid = first_string(fields.get(FIELD_TASK_IDS))
            if task_uuid:
                out["task"] = task_uuid

        if item.entity == Entity.TASK:
            try:
                out["kind"] = TaskType(_task_type(item)).name.lower()
            except ValueError:
                out["kind"] = str(_task_type(item))
            destination = to_int(fields.get(FIELD_DESTINATION))
            if destination in _DESTINATION_NAMES:
                out["destination"] = _DESTINATION_NAMES[TaskDestination(destination)]
            area_uuid = first_string(fields.get(FIELD_AREA_IDS))
            if area_uuid:
                out["area"] = area_uuid
                if self.area_title(area_uuid):
                    out["area_title"] = self.area_title(area_uuid)
            project_uuid = first_string(fields.get(FIELD_PROJECT_IDS))
            if project_uuid:
                out["project"] = project_uuid
                if self.project_title(project_uuid):
                    out["project_title"] = self.project_title(project_uuid)
            tags = string_list(fields.get(FIELD_TAG_IDS))
            if tags:
                out["tags"] = tags
            notes = note_text(fields.get(FIELD_NOTE))
            if notes:
                out["notes"] = notes
            for key, name in ((FIELD_CREATION_DATE, "created"), (FIELD_MODIFICATION_DATE, "modified")):
                stamp = to_float(fields.get(key))
                if stamp > 0:
                    out[name] = _utc(stamp).isoformat(timespec="seconds")
            for key, name in ((FIELD_SCHEDULED_DATE, "scheduled"), (FIELD_DEADLINE, "deadline")):
                stamp = to_float(fields.get(key))
                if stamp > 0:
                    out[name] = _utc(stamp).strftime("%Y-%m-%d")
            if to_int(fields.get(FIELD_START_BUCKET)) == 1:
                out["evening"] = True

        if to_bool(fields.get(FIELD_TRASHED)):
            out["trashed"] = True
        return out


def _task_type(item: Item) -> int:
    return to_int(item.fields.get(FIELD_TYPE))


def _utc(seconds: float) -> _dt.datetime:
    return _dt.datetime.fromtimestamp(int(seconds), _dt.timezone.utc)


def is_today(fields: Mapping[str, Any], now: _dt.datetime) -> bool:
    """Whether an open Anytime task belongs in the Today view on now's date."""
    today_start = calendar.timegm((now.year, now.month, now.day, 0, 0, 0))
    tomorrow = today_start + 86400

    if to_float(fields.get(FIELD_TODAY_INDEX)) != 0:
        ref = to_float(fields.get(FIELD_TODAY_INDEX_REF))
        if ref > 0 and today_start <= int(ref) < tomorrow:
            return True
    scheduled = to_float(fields.get(FIELD_SCHEDULED_DATE))
    return scheduled > 0 and int(scheduled) < tomorrow


def print_json(value: Any, out: TextIO | None = None) -> None:
    """Write value as indented JSON followed by a newline."""
    stream = out if out is not None else sys.stdout
    stream.write(json.dumps(value, indent=2, ensure_ascii=False) + "\n")


def load_state_file(path: str | Path) -> ThingsState:
    """Load a state snapshot: a JSON list of {uuid, entity, fields} objects."""
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise DongxiError(f"no cached data at {path}") from None
    except (OSError, json.JSONDecodeError) as exc:
        raise DongxiError(f"load cache: {exc}") from exc
    if not isinstance(raw, list):
        raise DongxiError("load cache: expected a list of items")
    items = []
    for entry in raw:
        if not isinstance(entry, dict) or not isinstance(entry.get("uuid"), str):
            raise DongxiError("load cache: malformed item")
        fields = entry.get("fields") or {}
        if not isinstance(fields, dict):
            raise DongxiError("load cache: malformed item fields")
        items.append(Item(entry["uuid"], to_str(entry.get("entity")), dict(fields)))
    return ThingsState(items)