import io
import json

import pytest

from thingscli.model import (
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
    FIELD_TRASHED,
    FIELD_TYPE,
    DongxiError,
    Entity,
    TaskDestination,
    TaskStatus,
    TaskType,
    new_note,
)
from thingscli.show import render_item, run_show
from thingscli.state import Item, Session, ThingsState


def make_task(uuid, title, **extra):
    fields = {
        FIELD_TITLE: title,
        FIELD_TYPE: TaskType.TASK.value,
        FIELD_STATUS: TaskStatus.OPEN.value,
        FIELD_DESTINATION: TaskDestination.INBOX.value,
    }
    fields.update(extra)
    return Item(uuid, Entity.TASK.value, fields)


def make_project(uuid, title, **extra):
    return make_task(uuid, title, **{FIELD_TYPE: TaskType.PROJECT.value, **extra})


def make_heading(uuid, title, project):
    return make_task(uuid, title, **{FIELD_TYPE: TaskType.HEADING.value, FIELD_PROJECT_IDS: [project]})


def make_area(uuid, title):
    return Item(uuid, Entity.AREA.value, {FIELD_TITLE: title})


def make_tag(uuid, title):
    return Item(uuid, Entity.TAG.value, {FIELD_TITLE: title})


def make_checklist(uuid, title, task, status=TaskStatus.OPEN):
    return Item(
        uuid,
        Entity.CHECKLIST_ITEM.value,
        {FIELD_TITLE: title, FIELD_STATUS: status.value, FIELD_TASK_IDS: [task]},
    )


def loader(items):
    state = ThingsState(items)
    return lambda: Session(state, None, "history-key")


def show(items, query, json_output=False):
    out = io.StringIO()
    run_show(loader(items), query, json_output, out)
    return out.getvalue()


def test_show_task():
    output = show([make_task("task-1", "Buy milk")], "task-1")
    assert "Buy milk" in output
    assert "task-1" in output


def test_show_alignment():
    output = show([make_task("task-1", "Buy milk")], "task-1")
    lines = output.splitlines()
    assert lines[0] == "UUID:" + " " * 9 + "task-1"
    assert lines[2] == "Title:" + " " * 8 + "Buy milk"
    assert lines[-1] == "Destination:  Inbox"


def test_show_task_with_all_fields():
    items = [
        make_area("area-1", "Work"),
        make_project("proj-1", "My Project"),
        make_tag("tag-1", "Urgent"),
        make_task(
            "task-1",
            "Full task",
            **{
                FIELD_DESTINATION: TaskDestination.ANYTIME.value,
                FIELD_AREA_IDS: ["area-1"],
                FIELD_PROJECT_IDS: ["proj-1"],
                FIELD_TAG_IDS: ["tag-1"],
                FIELD_CREATION_DATE: 1700000000.0,
                FIELD_MODIFICATION_DATE: 1700001000.0,
                FIELD_SCHEDULED_DATE: 1700000000.0,
                FIELD_DEADLINE: 1700100000.0,
                FIELD_NOTE: new_note("test note"),
                FIELD_START_BUCKET: 1.0,
                FIELD_TRASHED: True,
            },
        ),
    ]
    output = show(items, "task-1")
    assert "Work" in output
    assert "My Project" in output
    assert "Urgent" in output
    assert "Evening:" in output
    assert "Trashed:" in output
    assert "test note" in output
    assert "Created:" in output and "Modified:" in output
    assert "2023-11-14" in output
    assert "2023-11-16" in output


def test_show_project_with_progress():
    items = [
        make_project("proj-1", "My Project"),
        make_task("task-1", "Task 1", **{FIELD_PROJECT_IDS: ["proj-1"]}),
        make_task(
            "task-2",
            "Task 2",
            **{FIELD_PROJECT_IDS: ["proj-1"], FIELD_STATUS: TaskStatus.COMPLETED.value},
        ),
    ]
    output = show(items, "proj-1")
    assert "Project" in output
    assert "1/2 tasks" in output


def test_show_area():
    output = show([make_area("area-1", "Work")], "area-1")
    assert "Title:  Work" in output
    assert "Status:" not in output


def test_show_with_checklist():
    items = [
        make_task("task-1", "Buy milk"),
        make_checklist("ci-1", "Step 1", "task-1"),
        make_checklist("ci-2", "Step 2", "task-1", TaskStatus.COMPLETED),
    ]
    output = show(items, "task-1")
    assert "\nChecklist:\n" in output
    assert "  [ ] Step 1" in output
    assert "  [x] Step 2" in output


def test_show_not_found():
    with pytest.raises(DongxiError):
        show([make_task("task-1", "Buy milk")], "nonexistent")


def test_show_load_error():
    def failing():
        raise DongxiError("mock load error")

    with pytest.raises(DongxiError, match="mock load error"):
        run_show(failing, "task-1", out=io.StringIO())


def test_show_json():
    data = json.loads(show([make_task("task-1", "Buy milk")], "task-1", json_output=True))
    assert data["uuid"] == "task-1"
    assert data["title"] == "Buy milk"
    assert "checklist" not in data


def test_show_json_project():
    items = [
        make_project("proj-1", "My Project"),
        make_task("task-1", "Task 1", **{FIELD_PROJECT_IDS: ["proj-1"]}),
    ]
    data = json.loads(show(items, "proj-1", json_output=True))
    assert data["tasks_total"] == 1
    assert data["tasks_completed"] == 0


def test_show_json_with_checklist():
    items = [
        make_task("task-1", "Task with checklist"),
        make_checklist("cl-1", "Step 1", "task-1"),
        make_checklist("cl-2", "Step 2", "task-1"),
    ]
    data = json.loads(show(items, "task-1", json_output=True))
    assert [entry["uuid"] for entry in data["checklist"]] == ["cl-1", "cl-2"]


def test_show_uuid_fallbacks():
    items = [
        make_task(
            "task-1",
            "Task",
            **{
                FIELD_AREA_IDS: ["missing-area"],
                FIELD_PROJECT_IDS: ["missing-proj"],
                FIELD_TAG_IDS: ["unknown-tag"],
            },
        )
    ]
    output = show(items, "task-1")
    assert "missing-area" in output
    assert "missing-proj" in output
    assert "unknown-tag" in output


@pytest.mark.parametrize(
    "status,label",
    [
        (TaskStatus.OPEN, "Open"),
        (TaskStatus.COMPLETED, "Completed"),
        (TaskStatus.CANCELLED, "Cancelled"),
    ],
)
def test_show_statuses(status, label):
    output = show([make_task("task-1", "Task", **{FIELD_STATUS: float(status)})], "task-1")
    assert f"Status:       {label}" in output


@pytest.mark.parametrize(
    "destination,label",
    [
        (TaskDestination.INBOX, "Inbox"),
        (TaskDestination.ANYTIME, "Today"),
        (TaskDestination.SOMEDAY, "Someday"),
    ],
)
def test_show_destinations(destination, label):
    items = [make_task("task-1", "Task", **{FIELD_DESTINATION: float(destination)})]
    assert f"Destination:  {label}" in show(items, "task-1")


def test_show_heading_kind():
    items = [make_project("proj-1", "My Project"), make_heading("heading-1", "Design", "proj-1")]
    assert "Heading" in show(items, "heading-1")


def test_show_untitled():
    assert "(untitled)" in show([make_task("task-1", "")], "task-1")


def test_render_item_ends_with_newline():
    state = ThingsState([make_tag("tag-1", "Urgent")])
    text = render_item(state, state.by_uuid["tag-1"])
    assert text.endswith("Urgent\n")
    assert text.count("\n") == 3