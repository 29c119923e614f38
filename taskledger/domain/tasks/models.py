from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


# Task status (current workflow)
STATUS_TODO = "todo"
STATUS_IN_PROGRESS = "in-progress"
STATUS_BLOCKED = "blocked"
STATUS_DONE = "done"
STATUS_ABANDONED = "abandoned"
# legacy statuses, still accepted
STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_DELETED = "deleted"

VALID_STATUSES = (
    STATUS_TODO,
    STATUS_IN_PROGRESS,
    STATUS_BLOCKED,
    STATUS_DONE,
    STATUS_ABANDONED,
    STATUS_PENDING,
    STATUS_COMPLETED,
    STATUS_DELETED,
)

PRIORITY_HIGH = "High"
PRIORITY_MEDIUM = "Medium"
PRIORITY_LOW = "Low"

# Label used by the priority summary for tasks without priority
NO_PRIORITY = "No Priority"

_NUMERIC_PRIORITY_WEIGHTS = {"5": 5, "4": 4, "3": 3, "2": 2, "1": 1}
_TEXT_PRIORITY_WEIGHTS = {PRIORITY_HIGH: 5, PRIORITY_MEDIUM: 4, PRIORITY_LOW: 3}


def _is_letter_priority(p: str) -> bool:
    return len(p) == 1 and "A" <= p <= "Z"


@dataclass
class Task:
    """
    Task record with TaskWarrior-style fields.

    `depends_on` is not a column: it is hydrated from task_dependencies on read
    and written back wholesale on update.
    """

    description: str
    uuid: str = ""
    status: str = STATUS_TODO
    priority: str = ""
    project: str = ""
    context: str = ""
    tags: list[str] = field(default_factory=list)
    due: Optional[datetime] = None
    wait: Optional[datetime] = None
    scheduled: Optional[datetime] = None
    entry: Optional[datetime] = None
    modified: Optional[datetime] = None
    end: Optional[datetime] = None
    start: Optional[datetime] = None
    annotations: list[str] = field(default_factory=list)
    recur: str = ""
    until: Optional[datetime] = None
    parent_uuid: Optional[str] = None
    depends_on: list[str] = field(default_factory=list)
    id: int = 0

    def is_todo(self) -> bool:
        return self.status == STATUS_TODO

    def is_in_progress(self) -> bool:
        return self.status == STATUS_IN_PROGRESS

    def is_blocked(self) -> bool:
        return self.status == STATUS_BLOCKED

    def is_done(self) -> bool:
        return self.status == STATUS_DONE

    def is_abandoned(self) -> bool:
        return self.status == STATUS_ABANDONED

    def is_completed(self) -> bool:
        return self.status == STATUS_COMPLETED

    def is_pending(self) -> bool:
        return self.status == STATUS_PENDING

    def is_valid_status(self) -> bool:
        return self.status in VALID_STATUSES

    def has_priority(self) -> bool:
        return bool(self.priority)

    def is_valid_priority(self) -> bool:
        p = self.priority
        if not p:
            return True
        return p in _TEXT_PRIORITY_WEIGHTS or p in _NUMERIC_PRIORITY_WEIGHTS or _is_letter_priority(p)

    def priority_weight(self) -> int:
        """Numeric weight for sorting; higher means more important. Letters rank A highest."""
        p = self.priority
        if p in _TEXT_PRIORITY_WEIGHTS:
            return _TEXT_PRIORITY_WEIGHTS[p]
        if p in _NUMERIC_PRIORITY_WEIGHTS:
            return _NUMERIC_PRIORITY_WEIGHTS[p]
        if _is_letter_priority(p):
            return ord("Z") - ord(p) + 1
        return 0

    def is_started(self) -> bool:
        return self.start is not None

    def has_due_date(self) -> bool:
        return self.due is not None

    def is_overdue(self, now: datetime) -> bool:
        return self.due is not None and now > self.due and not self.is_completed()

    def is_recurring(self) -> bool:
        return bool(self.recur)

    def is_recur_expired(self, now: datetime) -> bool:
        return self.until is not None and now > self.until

    def has_dependencies(self) -> bool:
        return len(self.depends_on) > 0

    def blocks(self, other: Task) -> bool:
        return self.uuid in other.depends_on

    def urgency(self, now: datetime) -> float:
        score = 0.0
        if self.priority:
            score += 1.0
        if self.is_overdue(now):
            score += 2.0
        if self.tags:
            score += 0.5
        return score


@dataclass(frozen=True)
class TaskFilter:
    """Optional predicates for list/count. None or empty means no constraint."""

    status: Optional[str] = None
    priority: Optional[str] = None
    project: Optional[str] = None
    context: Optional[str] = None
    tag: Optional[str] = None
    due_after: Optional[datetime] = None
    due_before: Optional[datetime] = None
    search: Optional[str] = None
    sort_by: Optional[str] = None
    sort_order: str = "asc"
    limit: int = 0
    offset: int = 0


@dataclass(frozen=True)
class ProjectSummary:
    name: str
    task_count: int


@dataclass(frozen=True)
class TagSummary:
    name: str
    task_count: int


@dataclass(frozen=True)
class ContextSummary:
    name: str
    task_count: int
