"""Setting and clearing repeat rules on tasks."""

from __future__ import annotations

import calendar
import datetime as _dt
import re
import sys
import time
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, TextIO

from .model import (
    FIELD_MODIFICATION_DATE,
    FIELD_REPEAT_RULE,
    ITEM_MODIFY,
    CommitItem,
    DongxiError,
    Entity,
)
from .state import Session, print_json

# Keys inside a repeat rule.
REPEAT_VERSION = "rrv"
REPEAT_TYPE = "tp"
REPEAT_FREQ_UNIT = "fu"
REPEAT_FREQ_AMOUNT = "fa"
REPEAT_OFFSET = "of"
REPEAT_ANCHOR = "ia"
REPEAT_SCHEDULED_REF = "sr"
REPEAT_END_DATE = "ed"
REPEAT_COUNT = "rc"
REPEAT_TIME_SHIFT = "ts"

# Keys inside a repeat offset.
OFFSET_DAY = "dy"
OFFSET_WEEKDAY = "wd"

# End date meaning "never ends".
REPEAT_END_NEVER = 64092211200


class FrequencyUnit(IntEnum):
    MONTHLY = 8
    DAILY = 16
    WEEKLY = 256


class RepeatKind(IntEnum):
    FIXED_SCHEDULE = 0
    AFTER_COMPLETION = 1


WEEKDAY_NAMES = {
    "sun": 0, "sunday": 0,
    "mon": 1, "monday": 1,
    "tue": 2, "tuesday": 2,
    "wed": 3, "wednesday": 3,
    "thu": 4, "thursday": 4,
    "fri": 5, "friday": 5,
    "sat": 6, "saturday": 6,
}

_DAILY_UNITS = {"daily", "day", "days"}
_WEEKLY_UNITS = {"weekly", "week", "weeks"}
_MONTHLY_UNITS = {"monthly", "month", "months"}

_INTEGER = re.compile(r"[+-]?[0-9]+")
_DATE_SHAPE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


@dataclass
class RepeatOptions:
    """Settings of the repeat command."""

    frequency: str = ""
    clear: bool = False
    repeat_type: str = "fixed"
    days: str = ""
    end_date: str = ""
    end_count: int = 0


def _parse_end_date(value: str) -> int:
    try:
        if not _DATE_SHAPE.fullmatch(value):
            raise ValueError("expected YYYY-MM-DD")
        parsed = _dt.datetime.strptime(value, "%Y-%m-%d")
    except ValueError as exc:
        raise DongxiError(f'parse --end-date "{value}": {exc}') from exc
    return calendar.timegm(parsed.timetuple())


def _weekday_offsets(days: str) -> list[dict[str, int]]:
    offsets = []
    for name in days.split(","):
        name = name.strip().lower()
        if name not in WEEKDAY_NAMES:
            raise DongxiError(
                f'unknown weekday "{name}": use mon, tue, wed, thu, fri, sat, sun'
            )
        offsets.append({OFFSET_WEEKDAY: WEEKDAY_NAMES[name]})
    return offsets


def parse_repeat_frequency(
    freq: str,
    options: RepeatOptions | None = None,
    today: _dt.datetime | None = None,
) -> dict[str, Any]:
    """Build a repeat rule from "<number> <unit>" and the repeat options."""
    options = options if options is not None else RepeatOptions()
    parts = freq.split()
    if len(parts) != 2:
        raise DongxiError('frequency must be "<number> <unit>" (e.g. "1 daily")')
    if not _INTEGER.fullmatch(parts[0]) or int(parts[0]) < 1:
        raise DongxiError("frequency amount must be a positive integer")
    amount = int(parts[0])

    now = today if today is not None else _dt.datetime.now()
    midnight = calendar.timegm((now.year, now.month, now.day, 0, 0, 0))
    sunday_based_weekday = (now.weekday() + 1) % 7

    unit = parts[1].lower()
    if unit in _DAILY_UNITS:
        frequency_unit = FrequencyUnit.DAILY
        offsets = [{OFFSET_DAY: 0}]
    elif unit in _WEEKLY_UNITS:
        frequency_unit = FrequencyUnit.WEEKLY
        if options.days:
            offsets = _weekday_offsets(options.days)
        else:
            offsets = [{OFFSET_WEEKDAY: sunday_based_weekday}]
    elif unit in _MONTHLY_UNITS:
        frequency_unit = FrequencyUnit.MONTHLY
        offsets = [{OFFSET_DAY: now.day}]
    else:
        raise DongxiError(f'unknown unit "{parts[1]}": use daily, weekly, or monthly')

    kind = (
        RepeatKind.AFTER_COMPLETION
        if options.repeat_type == "completion"
        else RepeatKind.FIXED_SCHEDULE
    )
    end_date = _parse_end_date(options.end_date) if options.end_date else REPEAT_END_NEVER
    count = options.end_count if options.end_count > 0 else 0

    return {
        REPEAT_VERSION: 4,
        REPEAT_TYPE: kind.value,
        REPEAT_FREQ_UNIT: frequency_unit.value,
        REPEAT_FREQ_AMOUNT: amount,
        REPEAT_OFFSET: offsets,
        REPEAT_ANCHOR: midnight,
        REPEAT_SCHEDULED_REF: midnight,
        REPEAT_END_DATE: end_date,
        REPEAT_COUNT: count,
        REPEAT_TIME_SHIFT: 0,
    }


def run_repeat(
    load_state: Callable[[], Session],
    query: str,
    options: RepeatOptions | None = None,
    json_output: bool = False,
    out: TextIO | None = None,
) -> dict[str, Any]:
    """Run the repeat command and return the committed payload."""
    options = options if options is not None else RepeatOptions()
    stream = out if out is not None else sys.stdout
    if not options.clear and not options.frequency:
        raise DongxiError("specify --every or --clear")

    session = load_state()
    item = session.state.resolve_uuid(query)
    if item.entity != Entity.TASK:
        raise DongxiError(f"{query} is not a task")

    try:
        history = session.client.get_history(session.history_key)
    except Exception as exc:
        raise DongxiError(f"fetch history info: {exc}") from exc

    payload: dict[str, Any] = {FIELD_MODIFICATION_DATE: time.time()}
    if options.clear:
        payload[FIELD_REPEAT_RULE] = None
    else:
        payload[FIELD_REPEAT_RULE] = parse_repeat_frequency(options.frequency, options)

    commit = {item.uuid: CommitItem(ITEM_MODIFY, Entity.TASK, payload)}
    try:
        response = session.client.commit(
            session.history_key, history.latest_server_index, commit
        )
    except Exception as exc:
        raise DongxiError(f"commit: {exc}") from exc

    if json_output:
        action = "cleared repeat" if options.clear else f"set repeat: {options.frequency}"
        print_json(
            {
                "uuid": item.uuid,
                "title": item.title,
                "action": action,
                "server_index": response.server_head_index,
            },
            stream,
        )
        return payload

    if options.clear:
        stream.write(f"  {item.display_title}: cleared repeat\n")
    else:
        stream.write(f"  {item.display_title}: repeats every {options.frequency}\n")
    stream.write(f"Server index: {response.server_head_index}\n")
    return payload