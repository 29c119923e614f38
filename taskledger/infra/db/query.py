# taskledger/infra/db/query.py
"""
Structured WHERE/ORDER/LIMIT rendering.

Filters are described as a list of Predicate / AnyOf values. One renderer turns
them into parameterized SQL, so list and count queries never drift apart and
filter values never end up inside the SQL text.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence, Union

from taskledger.domain.common.errors import ValidationError

_OPERATORS = {
    "eq": "{col} = ?",
    "ge": "{col} >= ?",
    "le": "{col} <= ?",
    "like": "{col} LIKE ? ESCAPE '\\'",
    "json_has": "EXISTS (SELECT 1 FROM json_each({col}) WHERE json_each.value = ?)",
}


@dataclass(frozen=True)
class Predicate:
    column: str
    op: str
    value: Any

    def render(self) -> tuple[str, list[Any]]:
        template = _OPERATORS.get(self.op)
        if template is None:
            raise ValueError(f"unknown operator: {self.op}")
        return template.format(col=self.column), [self.value]


@dataclass(frozen=True)
class AnyOf:
    """OR-group of predicates."""

    predicates: tuple[Predicate, ...]

    def render(self) -> tuple[str, list[Any]]:
        parts: list[str] = []
        params: list[Any] = []
        for p in self.predicates:
            sql, args = p.render()
            parts.append(sql)
            params.extend(args)
        return "(" + " OR ".join(parts) + ")", params


Condition = Union[Predicate, AnyOf]


def render_where(conditions: Iterable[Condition]) -> tuple[str, list[Any]]:
    """AND together all conditions. Empty input renders an empty clause."""
    parts: list[str] = []
    params: list[Any] = []
    for cond in conditions:
        if isinstance(cond, AnyOf) and not cond.predicates:
            continue
        sql, args = cond.render()
        parts.append(sql)
        params.extend(args)
    if not parts:
        return "", []
    return " WHERE " + " AND ".join(parts), params


def render_order(
    sort_by: Optional[str],
    sort_order: Optional[str],
    allowed: Sequence[str],
    default: str,
) -> str:
    if not sort_by:
        return f" ORDER BY {default}"
    if sort_by not in allowed:
        raise ValidationError(f"cannot sort by {sort_by!r}; expected one of {', '.join(allowed)}")
    direction = "DESC" if (sort_order or "").upper() == "DESC" else "ASC"
    return f' ORDER BY "{sort_by}" {direction}'


def render_limit(limit: int, offset: int) -> tuple[str, list[Any]]:
    if limit <= 0:
        return "", []
    if offset > 0:
        return " LIMIT ? OFFSET ?", [int(limit), int(offset)]
    return " LIMIT ?", [int(limit)]
