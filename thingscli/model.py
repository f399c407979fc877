"""Things Cloud vocabulary: entities, field names, wire records and value coercion."""

from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Mapping


class DongxiError(Exception):
    """Raised when a command cannot complete."""


class Entity(str, Enum):
    """Entity names used in the Things Cloud history."""

    TASK = "Task6"
    AREA = "Area3"
    TAG = "Tag4"
    CHECKLIST_ITEM = "ChecklistItem3"


class TaskStatus(IntEnum):
    OPEN = 0
    CANCELLED = 2
    COMPLETED = 3


class TaskType(IntEnum):
    TASK = 0
    PROJECT = 1
    HEADING = 2


class TaskDestination(IntEnum):
    INBOX = 0
    ANYTIME = 1
    SOMEDAY = 2


# Field keys inside an item payload.
FIELD_TITLE = "tt"
FIELD_STATUS = "ss"
FIELD_TYPE = "tp"
FIELD_DESTINATION = "st"
FIELD_PROJECT_IDS = "pr"
FIELD_AREA_IDS = "ar"
FIELD_TAG_IDS = "tg"
FIELD_TASK_IDS = "ts"
FIELD_ACTION_GROUP_IDS = "agr"
FIELD_TRASHED = "tr"
FIELD_CREATION_DATE = "cd"
FIELD_MODIFICATION_DATE = "md"
FIELD_SCHEDULED_DATE = "sr"
FIELD_DEADLINE = "dd"
FIELD_STOP_DATE = "sp"
FIELD_NOTE = "nt"
FIELD_START_BUCKET = "sb"
FIELD_INDEX = "ix"
FIELD_TODAY_INDEX = "ti"
FIELD_TODAY_INDEX_REF = "tir"
FIELD_REPEAT_RULE = "rr"

# Kinds of history change.
ITEM_CREATE = 0
ITEM_MODIFY = 1
ITEM_DELETE = 2


@dataclass
class CommitItem:
    """One change sent to the server in a commit."""

    kind: int
    entity: Entity | str
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        entity = self.entity.value if isinstance(self.entity, Entity) else str(self.entity)
        return {"t": self.kind, "e": entity, "p": dict(self.payload)}


@dataclass(frozen=True)
class HistoryInfo:
    latest_server_index: int


@dataclass(frozen=True)
class CommitResponse:
    server_head_index: int


@dataclass(frozen=True)
class Account:
    email: str
    history_key: str


@dataclass(frozen=True)
class ResetResponse:
    new_history_key: str


def to_int(value: Any) -> int:
    """Integer value of a numeric field, 0 for anything else."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    return 0


def to_float(value: Any) -> float:
    """Float value of a numeric field, 0.0 for anything else."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    return 0.0


def to_bool(value: Any) -> bool:
    """True only for a literal boolean true."""
    return value is True


def to_str(value: Any) -> str:
    """The value if it is a string, otherwise an empty string."""
    return value if isinstance(value, str) else ""


def first_string(value: Any) -> str:
    """First element of a list field if it is a string, otherwise ""."""
    if isinstance(value, list) and value and isinstance(value[0], str):
        return value[0]
    return ""


def string_list(value: Any) -> list[str]:
    """The string elements of a list field."""
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, str)]


def has_string(value: Any, target: str) -> bool:
    """Whether a list field contains the given string."""
    return target in string_list(value)


def note_text(value: Any) -> str:
    """Plain text of a note field."""
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        return to_str(value.get("v"))
    return ""


def new_note(text: str) -> dict[str, Any]:
    """A note field holding the given text."""
    return {"_t": "tx", "ch": len(text), "v": text, "t": 1}


def format_timestamp(seconds: float) -> str:
    """Local 'YYYY-MM-DD HH:MM' for a Unix timestamp."""
    return _dt.datetime.fromtimestamp(int(seconds)).strftime("%Y-%m-%d %H:%M")


def bool_to_int(flag: bool) -> int:
    """1 for a true flag, 0 for a false one."""
    return int(bool(flag))