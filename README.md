# thingscli

`thingscli` works with a Things task list held as a local state snapshot.
The list holds tasks, projects, headings, areas, tags and checklist items.
You can view the snapshot, search it and query it with filters. The package
also builds the changes that reopen, reorder or repeat tasks. It sends them
through a Things Cloud client that you supply from Python.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## The state snapshot

The command-line tool reads its data from a JSON file. The file holds a list
of items:

```json
[
  {"uuid": "A1", "entity": "Area3", "fields": {"tt": "Work"}},
  {"uuid": "P1", "entity": "Task6", "fields": {"tt": "Launch", "tp": 1, "ar": ["A1"]}},
  {"uuid": "T1", "entity": "Task6", "fields": {"tt": "Buy milk", "ss": 0, "st": 1, "pr": ["P1"]}},
  {"uuid": "C1", "entity": "ChecklistItem3", "fields": {"tt": "Whole milk", "ts": ["T1"]}}
]
```

The tool looks for the file in three places, in this order:

1. The path given with `--cache PATH`.
2. The path in the `THINGSCLI_CACHE` environment variable.
3. `~/.cache/thingscli/state.json`.

### Entities and fields

The entities are:

| Entity | Meaning |
| --- | --- |
| `Task6` | A task, project or heading |
| `Area3` | An area |
| `Tag4` | A tag |
| `ChecklistItem3` | A checklist item |

The fields that are read are:

| Field | Meaning |
| --- | --- |
| `tt` | Title |
| `ss` | Status: 0 open, 2 cancelled, 3 completed |
| `tp` | Kind: 0 task, 1 project, 2 heading |
| `st` | Destination: 0 inbox, 1 anytime (shown as "Today"), 2 someday |
| `pr` | Project UUID list |
| `ar` | Area UUID list |
| `tg` | Tag UUID list |
| `ts` | Task UUID list of a checklist item |
| `agr` | Heading UUID list |
| `tr` | Trashed flag |
| `cd` | Creation time, in Unix seconds |
| `md` | Modification time, in Unix seconds |
| `sr` | Scheduled date, in Unix seconds |
| `dd` | Deadline, in Unix seconds |
| `nt` | Notes: a string, or an object with the text under `"v"` |
| `sb` | Evening marker: 1 means evening |
| `ix` | Position in the list |
| `ti` | Position in the Today list |

## Commands

Items are named by UUID. Any unambiguous prefix of a UUID also works.

These flags work on every command, before or after the command name:

- `--json` prints JSON instead of text.
- `--skip-sync` is accepted. The tool only ever reads the snapshot, so it changes nothing.
- `--sync` always fails, because no Things Cloud client is configured.

| Command | What it does |
| --- | --- |
| `thingscli show <uuid>` | Shows a task, project, heading, area or tag. It includes checklist items and, for projects, progress |
| `thingscli search <query>...` | Finds tasks, projects and checklist items whose title or notes contain the words, ignoring case. It shows open, untrashed items only. `--all` also includes completed, cancelled and trashed items and marks them |
| `thingscli query [pattern]` | Matches items against a regular expression and filters |
| `thingscli reopen <uuid>...` | Reopens tasks |
| `thingscli reorder <uuid>` | Moves a task with exactly one of `--top`, `--bottom`, `--after <uuid>` or `--before <uuid>`. Add `--today` to use the Today list |
| `thingscli repeat <uuid>` | Sets a repeat rule with `--every "<n> <unit>"`, or removes one with `--clear` |
| `thingscli reset` | Resets the account's history key after asking you to type `yes`. `-y`/`--yes` skips the question |

Each command prints errors to standard error and exits with status 1.

### Query filters

```
thingscli query "buy.*milk"                    # regexp over title and notes
thingscli query --field title "^Weekly"        # title, notes or all
thingscli query --type task --status open      # task, project, heading, area, tag, checklist, all
thingscli query --destination today            # inbox, today, evening, someday, any
thingscli query --area <uuid> --project <uuid> --tag <uuid>
thingscli query --scheduled-before 2025-04-01  # also --scheduled-after, --deadline-*, --created-*
thingscli query --evening --has-notes --has-checklist --has-tags --has-deadline
thingscli query --include-trashed --count
```

**Defaults.** `query` shows open, untrashed items by default. A task counts
as trashed when its project is trashed. It also counts as trashed when its
heading belongs to a trashed project.

**Which items each filter applies to.**

- `--status` applies to tasks and checklist items.
- `--destination`, `--area` and `--project` apply to tasks only.
- `--area` also matches a task through its project's area.

**Dates.**

- Dates are read as midnight UTC.
- `--*-before` is exclusive and `--*-after` is inclusive.
- Items without the date are left out when a date filter is used.

### Repeating schedules

The units are `daily`, `weekly` and `monthly`. The forms `day`/`days`,
`week`/`weeks` and `month`/`months` are accepted as well.

The other options are:

- `--type completion` repeats after completion. The default is `fixed`.
- `--days mon,wed,fri` picks the weekdays of a weekly rule.
- `--end-date YYYY-MM-DD` ends the rule on a date.
- `--end-count N` ends the rule after N repetitions.

## What the command-line tool does not do

The command-line tool has no Things Cloud client. It cannot log in, sync or
download history. It only reads the snapshot file.

`reopen`, `reorder`, `repeat` and `reset` all need the server, so from the
command line they stop with an error. To use them, call the functions from
Python and supply a client of your own.

## Using it from Python

**Building and reading a state**

- `thingscli.state.ThingsState(items)` builds the view from `Item(uuid, entity, fields)` objects.
- The view offers `resolve_uuid`, `area_title`, `project_title`, `project_progress`, `headings_for_project`, `checklist_for_task`, `is_orphaned_by_trashed_parent` and `item_to_output`.
- `thingscli.state.load_state_file(path)` reads a snapshot file.
- `thingscli.state.is_today(fields, now)` tells whether a task belongs in Today.

**Selecting and showing items**

- `thingscli.query.filter_items(state, QueryOptions(...), pattern)` applies the query filters.
- `thingscli.search.search_items(state, query, include_all)` performs the search.
- `thingscli.show.render_item(state, item)` returns the text that `show` prints.

**Building changes without the network**

- `thingscli.repeat.parse_repeat_frequency(freq, RepeatOptions(...), today)` builds a repeat rule.
- `thingscli.reorder.compute_index(state, item, ReorderOptions(...))` computes a new list position.

**Running commands**

- The commands are `run_show`, `run_search`, `run_query`, `run_reopen`, `run_reorder`, `run_repeat` and `run_reset`.
- Each takes a function that returns a `thingscli.state.Session(state, client, history_key)`.
- Each writes to an optional `out` stream.
- The client must provide the methods of `thingscli.state.CloudClient`: `email`, `get_history`, `commit`, `reset_history`, `get_account` and `get_history_items`.
- `run_reset` calls its optional `save_history_key` argument with the new key.

**From the command line in Python**

`thingscli.cli.main(argv, load_state)` runs the tool and returns its exit
status. Pass `load_state` to use your own session in place of the snapshot
file.