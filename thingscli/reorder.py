"""Moving a task within its list by rewriting its index."""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from typing import Callable, TextIO

from .model import (
    FIELD_DESTINATION,
    FIELD_INDEX,
    FIELD_MODIFICATION_DATE,
    FIELD_PROJECT_IDS,
    FIELD_STATUS,
    FIELD_TODAY_INDEX,
    FIELD_TRASHED,
    FIELD_TYPE,
    ITEM_MODIFY,
    CommitItem,
    DongxiError,
    Entity,
    TaskDestination,
    TaskStatus,
    TaskType,
    first_string,
    to_bool,
    to_int,
)
from .state import Item, Session, ThingsState, print_json

_STEP = 1000


@dataclass
class ReorderOptions:
    """Where to put the task; exactly one of the placements must be set."""

    after: str = ""
    before: str = ""
    top: bool = False
    bottom: bool = False
    today: bool = False

    @property
    def index_field(self) -> str:
        return FIELD_TODAY_INDEX if self.today else FIELD_INDEX

    def validate(self) -> None:
        chosen = [bool(self.after), bool(self.before), self.top, self.bottom]
        if sum(chosen) != 1:
            raise DongxiError("specify exactly one of --top, --bottom, --after, or --before")


def _siblings(state: ThingsState, item: Item, today: bool) -> list[Item]:
    destination = to_int(item.fields.get(FIELD_DESTINATION))
    project = first_string(item.fields.get(FIELD_PROJECT_IDS))
    result = []
    for other in state.items:
        fields = other.fields
        if other.entity != Entity.TASK:
            continue
        if to_int(fields.get(FIELD_TYPE)) != TaskType.TASK:
            continue
        if to_int(fields.get(FIELD_STATUS)) != TaskStatus.OPEN:
            continue
        if to_bool(fields.get(FIELD_TRASHED)):
            continue
        if today:
            if to_int(fields.get(FIELD_DESTINATION)) != TaskDestination.ANYTIME:
                continue
        else:
            if to_int(fields.get(FIELD_DESTINATION)) != destination:
                continue
            if first_string(fields.get(FIELD_PROJECT_IDS)) != project:
                continue
        result.append(other)
    return result


def _resolve_reference(state: ThingsState, query: str, flag: str) -> Item:
    try:
        return state.resolve_uuid(query)
    except DongxiError as exc:
        raise DongxiError(f"resolve --{flag}: {exc}") from exc


def compute_index(state: ThingsState, item: Item, options: ReorderOptions) -> int:
    """The new index for the item under the chosen placement."""
    options.validate()
    field = options.index_field
    if options.top or options.bottom:
        indexes = [to_int(item.fields.get(field))]
        indexes.extend(to_int(s.fields.get(field)) for s in _siblings(state, item, options.today))
        return min(indexes) - _STEP if options.top else max(indexes) + _STEP
    if options.after:
        reference = _resolve_reference(state, options.after, "after")
        return to_int(reference.fields.get(field)) + 1
    reference = _resolve_reference(state, options.before, "before")
    return to_int(reference.fields.get(field)) - 1


def run_reorder(
    load_state: Callable[[], Session],
    query: str,
    options: ReorderOptions,
    json_output: bool = False,
    out: TextIO | None = None,
) -> int:
    """Run the reorder command and return the new index."""
    options.validate()
    stream = out if out is not None else sys.stdout

    session = load_state()
    state = session.state
    item = state.resolve_uuid(query)

    try:
        history = session.client.get_history(session.history_key)
    except Exception as exc:
        raise DongxiError(f"fetch history info: {exc}") from exc

    new_index = compute_index(state, item, options)
    commit = {
        item.uuid: CommitItem(
            ITEM_MODIFY,
            Entity.TASK,
            {options.index_field: new_index, FIELD_MODIFICATION_DATE: time.time()},
        )
    }
    try:
        response = session.client.commit(
            session.history_key, history.latest_server_index, commit
        )
    except Exception as exc:
        raise DongxiError(f"commit: {exc}") from exc

    if json_output:
        print_json(
            {
                "uuid": item.uuid,
                "title": item.title,
                "index": new_index,
                "server_index": response.server_head_index,
            },
            stream,
        )
        return new_index

    stream.write(f"  {item.display_title}: reordered (ix={new_index})\n")
    stream.write(f"Server index: {response.server_head_index}\n")
    return new_index