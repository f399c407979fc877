"""Reopening completed or cancelled tasks."""

from __future__ import annotations

import sys
import time
from typing import Callable, Sequence, TextIO

from .model import (
    FIELD_MODIFICATION_DATE,
    FIELD_STATUS,
    FIELD_STOP_DATE,
    ITEM_MODIFY,
    CommitItem,
    DongxiError,
    Entity,
    TaskStatus,
)
from .state import Session, print_json


def run_reopen(
    load_state: Callable[[], Session],
    queries: Sequence[str],
    json_output: bool = False,
    out: TextIO | None = None,
) -> dict[str, CommitItem]:
    """Mark the given tasks as open again and return the committed changes."""
    if not queries:
        raise DongxiError("requires at least 1 arg(s), only received 0")
    stream = out if out is not None else sys.stdout

    session = load_state()
    state = session.state
    try:
        history = session.client.get_history(session.history_key)
    except Exception as exc:
        raise DongxiError(f"fetch history info: {exc}") from exc

    now = time.time()
    items = []
    commit: dict[str, CommitItem] = {}
    for query in queries:
        item = state.resolve_uuid(query)
        if item.entity != Entity.TASK:
            raise DongxiError(f"{query} is a {item.entity}, not a task")
        items.append(item)
        commit[item.uuid] = CommitItem(
            ITEM_MODIFY,
            Entity.TASK,
            {
                FIELD_STATUS: int(TaskStatus.OPEN),
                FIELD_STOP_DATE: None,
                FIELD_MODIFICATION_DATE: now,
            },
        )

    try:
        response = session.client.commit(
            session.history_key, history.latest_server_index, commit
        )
    except Exception as exc:
        raise DongxiError(f"commit: {exc}") from exc

    if json_output:
        print_json(
            {
                "items": [
                    {"uuid": item.uuid, "title": item.title, "action": "reopened"}
                    for item in items
                ],
                "server_index": response.server_head_index,
            },
            stream,
        )
        return commit

    for item in items:
        stream.write(f"  Reopened: {item.display_title}\n")
    stream.write(f"Server index: {response.server_head_index}\n")
    return commit