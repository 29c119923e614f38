# taskledger/infra/db/repo/task_rows.py
"""Column list, row mapping and tag/annotation (de)serialization for the tasks table."""
from __future__ import annotations

import json
from typing import Any, Iterable, Optional

import aiosqlite

from taskledger.domain.common.errors import SerializationError
from taskledger.domain.common.time import from_iso, from_iso_opt, to_iso, to_iso_opt
from taskledger.domain.tasks.models import Task

_COLUMNS = (
    "id", "uuid", "description", "status", "priority", "project", "context",
    "tags", "due", "wait", "scheduled", "entry", "modified", "end", "start",
    "annotations", "recur", "until", "parent_uuid",
)
# everything but id, in insert/update order
WRITE_COLUMNS = _COLUMNS[1:]


def task_columns(alias: str = "") -> str:
    prefix = f"{alias}." if alias else ""
    return ", ".join(f'{prefix}"{c}"' for c in _COLUMNS)


def encode_list(field: str, values: Optional[Iterable[str]]) -> Optional[str]:
    items = list(values or [])
    if not items:
        return None
    if not all(isinstance(v, str) for v in items):
        raise SerializationError(field, "all items must be strings")
    try:
        return json.dumps(items, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise SerializationError(field, str(e)) from e


def decode_list(field: str, raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    try:
        val = json.loads(raw)
    except json.JSONDecodeError as e:
        raise SerializationError(field, str(e)) from e
    if not isinstance(val, list) or not all(isinstance(v, str) for v in val):
        raise SerializationError(field, "expected a JSON array of strings")
    return val


def task_params(task: Task) -> tuple[Any, ...]:
    """Values for WRITE_COLUMNS. Raises SerializationError before anything touches the db."""
    if task.modified is None:
        raise ValueError("modified must be set before writing a task")
    return (
        task.uuid,
        task.description,
        task.status,
        task.priority or None,
        task.project or None,
        task.context or None,
        encode_list("tags", task.tags),
        to_iso_opt(task.due),
        to_iso_opt(task.wait),
        to_iso_opt(task.scheduled),
        to_iso_opt(task.entry),
        to_iso(task.modified),
        to_iso_opt(task.end),
        to_iso_opt(task.start),
        encode_list("annotations", task.annotations),
        task.recur or None,
        to_iso_opt(task.until),
        task.parent_uuid,
    )


def row_to_task(row: aiosqlite.Row) -> Task:
    return Task(
        id=int(row["id"]),
        uuid=row["uuid"],
        description=row["description"],
        status=row["status"] or "",
        priority=row["priority"] or "",
        project=row["project"] or "",
        context=row["context"] or "",
        tags=decode_list("tags", row["tags"]),
        due=from_iso_opt(row["due"]),
        wait=from_iso_opt(row["wait"]),
        scheduled=from_iso_opt(row["scheduled"]),
        entry=from_iso(row["entry"]),
        modified=from_iso(row["modified"]),
        end=from_iso_opt(row["end"]),
        start=from_iso_opt(row["start"]),
        annotations=decode_list("annotations", row["annotations"]),
        recur=row["recur"] or "",
        until=from_iso_opt(row["until"]),
        parent_uuid=row["parent_uuid"],
    )
