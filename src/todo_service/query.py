"""
Compilation of a SearchSpec into parameterized SQL.

Every value reaches the database as a bound ``?`` parameter. The only tokens
taken from the SearchSpec and written into the SQL text are identifiers that
appear in the allow-lists below.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, List, Sequence, Tuple

from .search import GroupScope, PersonalScope, SearchSpec

TODO_TABLE = "todo_list"
GROUP_TODO_TABLE = "group_todo_list"

TODO_COLUMNS: Tuple[str, ...] = (
    "id",
    "posted_date",
    "implementation_date",
    "due_date",
    "todo_content",
    "complete_flag",
)
GROUP_TODO_COLUMNS: Tuple[str, ...] = TODO_COLUMNS + ("user_id",)

_DATE_COLUMNS = frozenset({"implementation_date", "due_date"})
_SORT_COLUMNS = frozenset({"implementation_date", "due_date"})
_SORT_DIRECTIONS = frozenset({"ASC", "DESC"})

_WHITESPACE_RE = re.compile(r"\s+")


class QueryCompileError(RuntimeError):
    """A SearchSpec carried a value the compiler has no identifier for."""


@dataclass(frozen=True)
class CompiledQuery:
    sql: str
    params: Tuple[Any, ...]

    @property
    def placeholder_count(self) -> int:
        return self.sql.count("?")


class _QueryBuilder:
    """
    Collects SQL fragments and their bound values together.

    Fragments passed to ``add`` must only contain fixed keywords, allow-listed
    identifiers and ``?`` markers; ``params`` must list one value per marker.
    """

    def __init__(self) -> None:
        self._parts: List[str] = []
        self._params: List[Any] = []

    def add(self, fragment: str, *params: Any) -> "_QueryBuilder":
        if fragment.count("?") != len(params):
            raise QueryCompileError(
                f"fragment {fragment!r} has {fragment.count('?')} placeholders for {len(params)} params"
            )
        self._parts.append(fragment)
        self._params.extend(params)
        return self

    def build(self) -> CompiledQuery:
        sql = _WHITESPACE_RE.sub(" ", " ".join(self._parts)).strip()
        return CompiledQuery(sql=sql, params=tuple(self._params))


def _identifier(value: str, allowed: frozenset, what: str) -> str:
    if value not in allowed:
        raise QueryCompileError(f"{what} {value!r} is not an allowed identifier")
    return value


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


def _add_owner(builder: _QueryBuilder, spec: SearchSpec) -> None:
    owner = spec.owner
    if isinstance(owner, PersonalScope):
        builder.add("WHERE user_id = ?", owner.user_id)
        return
    if isinstance(owner, GroupScope):
        builder.add("WHERE group_id = ?", owner.group_id)
        user_ids: Sequence[str] = owner.user_ids
        if len(user_ids) == 1:
            builder.add("AND user_id = ?", user_ids[0])
        elif len(user_ids) > 1:
            builder.add(f"AND user_id IN ({_placeholders(len(user_ids))})", *user_ids)
        return
    raise QueryCompileError(f"unsupported owner scope {type(owner).__name__}")


# PUBLIC_INTERFACE
def compile_search(spec: SearchSpec) -> CompiledQuery:
    """
    Render a SearchSpec into SQL text and its ordered parameter tuple.

    Clause order: SELECT/FROM, owner, date range, complete flag, content,
    ORDER BY, LIMIT. Optional filters that are absent produce neither clause
    nor parameter.

    Raises:
        QueryCompileError: if the SearchSpec holds an identifier outside the
        allow-lists. No partial query is ever returned.
    """
    if spec.is_group:
        table, columns = GROUP_TODO_TABLE, GROUP_TODO_COLUMNS
    else:
        table, columns = TODO_TABLE, TODO_COLUMNS

    date_column = _identifier(spec.date_type, _DATE_COLUMNS, "date_type")
    sort_column = _identifier(spec.sort, _SORT_COLUMNS, "sort")
    sort_direction = _identifier(spec.sort_type, _SORT_DIRECTIONS, "sort_type")

    builder = _QueryBuilder()
    builder.add(f"SELECT {', '.join(columns)} FROM {table}")
    _add_owner(builder, spec)
    builder.add(
        f"AND {date_column} >= ? AND {date_column} <= ?",
        spec.start_date.isoformat(),
        spec.end_date.isoformat(),
    )

    if spec.complete_flag is not None:
        builder.add("AND complete_flag = ?", bool(spec.complete_flag))

    if spec.todo_content is not None:
        # LIKE metacharacters in the search text are not escaped: "100%" also matches "1000".
        builder.add("AND todo_content LIKE ?", f"%{spec.todo_content}%")

    builder.add(f"ORDER BY {sort_column} {sort_direction}, updated_date DESC")

    if spec.limit is not None:
        builder.add("LIMIT ?", int(spec.limit))

    return builder.build()
