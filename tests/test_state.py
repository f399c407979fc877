import datetime as dt
import io
import json

import pytest

from thingscli.model import (
    FIELD_ACTION_GROUP_IDS,
    FIELD_AREA_IDS,
    FIELD_PROJECT_IDS,
    FIELD_SCHEDULED_DATE,
    FIELD_STATUS,
    FIELD_TASK_IDS,
    FIELD_TITLE,
    FIELD_TODAY_INDEX,
    FIELD_TODAY_INDEX_REF,
    FIELD_TRASHED,
    FIELD_TYPE,
    DongxiError,
    Entity,
    TaskStatus,
    TaskType,
)
from thingscli.state import Item, ThingsState, is_today, load_state_file, print_json


def _item(uuid, entity, **fields):
    return Item(uuid, entity.value, dict(fields))


def build_test_state():
    return ThingsState(
        [
            _item("area-1", Entity.AREA, tt="Work"),
            _item("area-2", Entity.AREA, tt="Personal"),
            _item("proj-1", Entity.TASK, tt="My Project", tp=float(TaskType.PROJECT)),
            _item("task-1", Entity.TASK, tt="Buy milk", tp=float(TaskType.TASK)),
            _item("task-2", Entity.TASK, tt="Call dentist", tp=float(TaskType.TASK)),
            _item("tag-1", Entity.TAG, tt="Urgent"),
            _item("ci-1", Entity.CHECKLIST_ITEM, tt="Step 1", ts=["task-1"], ss=0.0),
            _item("ci-2", Entity.CHECKLIST_ITEM, tt="Step 2", ts=["task-1"], ss=3.0),
            _item("ci-3", Entity.CHECKLIST_ITEM, tt="Other", ts=["task-2"], ss=0.0),
        ]
    )


def _task(uuid, title, **fields):
    base = {FIELD_TITLE: title, FIELD_TYPE: float(TaskType.TASK), FIELD_STATUS: 0.0}
    base.update(fields)
    return Item(uuid, Entity.TASK.value, base)


def build_project_items():
    return [
        Item("area-1", Entity.AREA.value, {FIELD_TITLE: "Work", FIELD_TRASHED: False}),
        Item("proj-1", Entity.TASK.value, {
            FIELD_TITLE: "My Project", FIELD_TYPE: float(TaskType.PROJECT),
            FIELD_TRASHED: False, FIELD_AREA_IDS: ["area-1"],
        }),
        Item("proj-trashed", Entity.TASK.value, {
            FIELD_TITLE: "Trashed Project", FIELD_TYPE: float(TaskType.PROJECT), FIELD_TRASHED: True,
        }),
        Item("heading-1", Entity.TASK.value, {
            FIELD_TITLE: "Design Phase", FIELD_TYPE: float(TaskType.HEADING), FIELD_PROJECT_IDS: ["proj-1"],
        }),
        Item("heading-2", Entity.TASK.value, {
            FIELD_TITLE: "Dev Phase", FIELD_TYPE: float(TaskType.HEADING), FIELD_PROJECT_IDS: ["proj-1"],
        }),
        Item("heading-trashed-proj", Entity.TASK.value, {
            FIELD_TITLE: "Trashed Heading", FIELD_TYPE: float(TaskType.HEADING),
            FIELD_PROJECT_IDS: ["proj-trashed"],
        }),
        _task("t-open1", "Open 1", pr=["proj-1"], tr=False),
        _task("t-open2", "Open 2", pr=["proj-1"], tr=False),
        _task("t-done", "Done", ss=float(TaskStatus.COMPLETED), pr=["proj-1"], tr=False),
        _task("t-trashed", "Trashed Task", pr=["proj-1"], tr=True),
        _task("t-orphan-agr", "Orphaned by AGR", tr=False, agr=["heading-trashed-proj"]),
        _task("t-orphan-proj", "Orphaned by Project", tr=False, pr=["proj-trashed"]),
        _task("t-free", "Free Task", tr=False),
        Item("area-2", Entity.AREA.value, {FIELD_TITLE: "Personal", FIELD_TRASHED: False}),
    ]


def build_project_state(*extra):
    return ThingsState(build_project_items() + list(extra))


def test_resolve_uuid_exact():
    assert build_test_state().resolve_uuid("task-1").uuid == "task-1"


def test_resolve_uuid_prefix():
    assert build_test_state().resolve_uuid("proj").uuid == "proj-1"


def test_resolve_uuid_ambiguous():
    with pytest.raises(DongxiError, match="ambiguous"):
        build_test_state().resolve_uuid("task")


def test_resolve_uuid_not_found():
    with pytest.raises(DongxiError, match="no item found"):
        build_test_state().resolve_uuid("nonexistent")


def test_area_title():
    state = build_test_state()
    assert state.area_title("area-1") == "Work"
    assert state.area_title("nonexistent") == ""


def test_project_title():
    state = build_test_state()
    assert state.project_title("proj-1") == "My Project"
    assert state.project_title("nonexistent") == ""


def test_checklist_for_task():
    state = build_test_state()
    assert [i.uuid for i in state.checklist_for_task("task-1")] == ["ci-1", "ci-2"]
    assert len(state.checklist_for_task("task-2")) == 1
    assert state.checklist_for_task("nonexistent") == []


def test_project_progress():
    assert build_project_state().project_progress("proj-1") == (3, 1)


def test_project_progress_empty():
    assert build_project_state().project_progress("nonexistent") == (0, 0)


def test_headings_for_project():
    headings = build_project_state().headings_for_project("proj-1")
    assert {h.uuid for h in headings} == {"heading-1", "heading-2"}


def test_headings_for_project_empty():
    assert build_project_state().headings_for_project("nonexistent") == []


def test_orphaned_via_action_group():
    state = build_project_state()
    assert state.is_orphaned_by_trashed_parent(state.by_uuid["t-orphan-agr"]) is True


def test_orphaned_via_direct_project():
    state = build_project_state()
    assert state.is_orphaned_by_trashed_parent(state.by_uuid["t-orphan-proj"]) is True


def test_free_task_not_orphaned():
    state = build_project_state()
    assert state.is_orphaned_by_trashed_parent(state.by_uuid["t-free"]) is False


def test_task_in_live_project_not_orphaned():
    state = build_project_state()
    assert state.is_orphaned_by_trashed_parent(state.by_uuid["t-open1"]) is False


def test_missing_action_group_heading_not_orphaned():
    state = build_project_state()
    item = _task("t-agr-missing", "x", agr=["nonexistent-heading"], tr=False)
    assert state.is_orphaned_by_trashed_parent(item) is False


def test_action_group_heading_without_project_not_orphaned():
    heading = Item("heading-no-proj", Entity.TASK.value, {FIELD_TYPE: float(TaskType.HEADING)})
    state = build_project_state(heading)
    item = _task("t-agr-no-proj", "x", agr=["heading-no-proj"], tr=False)
    assert state.is_orphaned_by_trashed_parent(item) is False


def test_action_group_heading_with_missing_project_not_orphaned():
    heading = Item("heading-missing-proj", Entity.TASK.value, {
        FIELD_TYPE: float(TaskType.HEADING), FIELD_PROJECT_IDS: ["nonexistent-proj"],
    })
    state = build_project_state(heading)
    item = _task("t-agr-missing-proj", "x", agr=["heading-missing-proj"], tr=False)
    assert state.is_orphaned_by_trashed_parent(item) is False


def test_missing_direct_project_not_orphaned():
    state = build_project_state()
    item = _task("t-proj-missing", "x", pr=["nonexistent-proj"], tr=False)
    assert state.is_orphaned_by_trashed_parent(item) is False


def test_state_indexes_areas_and_projects():
    state = build_project_state()
    assert set(state.areas) == {"area-1", "area-2"}
    assert set(state.projects) == {"proj-1", "proj-trashed"}


def test_print_json():
    out = io.StringIO()
    print_json({"hello": "world"}, out)
    assert json.loads(out.getvalue()) == {"hello": "world"}
    assert out.getvalue().endswith("\n")


def test_print_json_none_is_null():
    out = io.StringIO()
    print_json(None, out)
    assert out.getvalue() == "null\n"


NOW = dt.datetime(2026, 4, 5, 12, 0, 0, tzinfo=dt.timezone.utc)


def _ts(year, month, day):
    return float(dt.datetime(year, month, day, tzinfo=dt.timezone.utc).timestamp())


def test_is_today_with_today_index():
    fields = {FIELD_TODAY_INDEX: -485.0, FIELD_TODAY_INDEX_REF: _ts(2026, 4, 5)}
    assert is_today(fields, NOW) is True


def test_is_today_with_stale_today_index():
    fields = {FIELD_TODAY_INDEX: -485.0, FIELD_TODAY_INDEX_REF: _ts(2026, 4, 4)}
    assert is_today(fields, NOW) is False


def test_is_today_with_today_index_no_ref():
    assert is_today({FIELD_TODAY_INDEX: -485.0}, NOW) is False


def test_is_today_scheduled_today():
    assert is_today({FIELD_SCHEDULED_DATE: _ts(2026, 4, 5)}, NOW) is True


def test_is_today_scheduled_past():
    assert is_today({FIELD_SCHEDULED_DATE: _ts(2026, 4, 3)}, NOW) is True


def test_is_today_scheduled_future():
    assert is_today({FIELD_SCHEDULED_DATE: _ts(2026, 4, 10)}, NOW) is False


def test_is_today_no_indicators():
    assert is_today({}, NOW) is False


def test_item_to_output_task():
    state = build_project_state()
    out = state.item_to_output(state.by_uuid["t-done"])
    assert out["uuid"] == "t-done"
    assert out["title"] == "Done"
    assert out["status"] == "completed"
    assert out["kind"] == "task"
    assert out["project"] == "proj-1"
    assert out["project_title"] == "My Project"
    assert "trashed" not in out


def test_item_to_output_checklist_and_trashed():
    state = build_test_state()
    out = state.item_to_output(state.by_uuid["ci-2"])
    assert out["task"] == "task-1"
    assert out["status"] == "completed"
    trashed = build_project_state()
    assert trashed.item_to_output(trashed.by_uuid["t-trashed"])["trashed"] is True


def test_load_state_file(tmp_path):
    path = tmp_path / "state.json"
    path.write_text(json.dumps([
        {"uuid": "a1", "entity": "Area3", "fields": {"tt": "Work"}},
        {"uuid": "t1", "entity": "Task6", "fields": {"tt": "Buy milk", "ar": ["a1"]}},
    ]))
    state = load_state_file(path)
    assert [i.uuid for i in state.items] == ["a1", "t1"]
    assert state.area_title("a1") == "Work"
    assert state.resolve_uuid("t").title == "Buy milk"


def test_load_state_file_missing(tmp_path):
    with pytest.raises(DongxiError):
        load_state_file(tmp_path / "absent.json")


def test_load_state_file_malformed(tmp_path):
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"not": "a list"}))
    with pytest.raises(DongxiError, match="expected a list"):
        load_state_file(path)