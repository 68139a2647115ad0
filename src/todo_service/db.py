from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from threading import RLock
from typing import Any, Generator, List, Optional, Sequence, Tuple

from .models import GroupTodoEntity, TodoEntity
from .query import (
    GROUP_TODO_COLUMNS,
    GROUP_TODO_TABLE,
    TODO_COLUMNS,
    TODO_TABLE,
    CompiledQuery,
    QueryCompileError,
)
from .repositories import Repository
from .schemas import TodoIn
from .search import GroupScope, OwnerScope, PersonalScope

logger = logging.getLogger(__name__)

MEMORY_DB_PATH = ":memory:"

_SCHEMA = (
    f"""
    CREATE TABLE IF NOT EXISTS {TODO_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        posted_date TEXT NOT NULL,
        updated_date TEXT NOT NULL,
        implementation_date TEXT NOT NULL,
        due_date TEXT NOT NULL,
        todo_content TEXT NOT NULL,
        complete_flag INTEGER NOT NULL DEFAULT 0,
        user_id TEXT NOT NULL
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {GROUP_TODO_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        posted_date TEXT NOT NULL,
        updated_date TEXT NOT NULL,
        implementation_date TEXT NOT NULL,
        due_date TEXT NOT NULL,
        todo_content TEXT NOT NULL,
        complete_flag INTEGER NOT NULL DEFAULT 0,
        user_id TEXT NULL,
        group_id INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sessions (
        session_id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL
    )
    """,
    f"CREATE INDEX IF NOT EXISTS idx_{TODO_TABLE}_user_id ON {TODO_TABLE}(user_id)",
    f"CREATE INDEX IF NOT EXISTS idx_{GROUP_TODO_TABLE}_group_id ON {GROUP_TODO_TABLE}(group_id)",
)


def _now() -> str:
    return datetime.now().isoformat()


def _owner_target(owner: OwnerScope) -> Tuple[str, Tuple[str, ...], str, Any]:
    """Return (table, columns, owner column, owner value) for an owner scope."""
    if isinstance(owner, GroupScope):
        return GROUP_TODO_TABLE, GROUP_TODO_COLUMNS, "group_id", owner.group_id
    if isinstance(owner, PersonalScope):
        return TODO_TABLE, TODO_COLUMNS, "user_id", owner.user_id
    raise TypeError(f"unsupported owner scope {type(owner).__name__}")


class SQLiteRepository(Repository):
    """
    SQLite repository implementing the Repository interface.

    A file-backed database opens one connection per operation. ':memory:' keeps
    a single connection for the lifetime of the repository, serialized by a lock.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._lock = RLock()
        self._shared: Optional[sqlite3.Connection] = None
        if db_path == MEMORY_DB_PATH:
            self._shared = self._connect()
        else:
            os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False, timeout=10)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        if self._shared is not None:
            with self._lock:
                try:
                    yield self._shared
                    self._shared.commit()
                except Exception:
                    self._shared.rollback()
                    raise
            return

        conn = self._connect()
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    def _row_to_entity(self, row: sqlite3.Row) -> TodoEntity:
        entity: TodoEntity = {
            "id": int(row["id"]),
            "posted_date": datetime.fromisoformat(row["posted_date"]),
            "implementation_date": date.fromisoformat(row["implementation_date"]),
            "due_date": date.fromisoformat(row["due_date"]),
            "todo_content": str(row["todo_content"]),
            "complete_flag": bool(row["complete_flag"]),
        }
        if "user_id" in row.keys():
            group_entity: GroupTodoEntity = {**entity, "user_id": row["user_id"]}  # type: ignore[typeddict-item]
            return group_entity
        return entity

    def _fetch(self, sql: str, params: Sequence[Any]) -> List[TodoEntity]:
        with self._conn() as conn:
            rows = conn.execute(sql, tuple(params)).fetchall()
            return [self._row_to_entity(r) for r in rows]

    def _select_one(self, conn: sqlite3.Connection, todo_id: int, owner: OwnerScope) -> Optional[sqlite3.Row]:
        table, columns, owner_col, owner_val = _owner_target(owner)
        return conn.execute(
            f"SELECT {', '.join(columns)} FROM {table} WHERE id = ? AND {owner_col} = ?",
            (todo_id, owner_val),
        ).fetchone()

    # AuthRepository

    def get_user_id(self, session_id: str) -> Optional[str]:
        with self._conn() as conn:
            row = conn.execute("SELECT user_id FROM sessions WHERE session_id = ?", (session_id,)).fetchone()
            return None if row is None else str(row["user_id"])

    def add_session(self, session_id: str, user_id: str) -> None:
        """Bind a session id to a user (used by the login flow and by tests)."""
        with self._conn() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO sessions (session_id, user_id) VALUES (?, ?)",
                (session_id, user_id),
            )

    # TodoRepository

    def list_implementation_todos(self, first_day: date, last_day: date, owner: OwnerScope) -> List[TodoEntity]:
        return self._list_between("implementation_date", first_day, last_day, owner)

    def list_due_todos(self, first_day: date, last_day: date, owner: OwnerScope) -> List[TodoEntity]:
        return self._list_between("due_date", first_day, last_day, owner)

    def _list_between(self, date_col: str, first_day: date, last_day: date, owner: OwnerScope) -> List[TodoEntity]:
        table, columns, owner_col, owner_val = _owner_target(owner)
        return self._fetch(
            f"""
            SELECT {', '.join(columns)} FROM {table}
            WHERE {owner_col} = ? AND {date_col} >= ? AND {date_col} <= ?
            ORDER BY {date_col}, id
            """,
            (owner_val, first_day.isoformat(), last_day.isoformat()),
        )

    def list_expired_todos(self, due_before: date, owner: OwnerScope) -> List[TodoEntity]:
        table, columns, owner_col, owner_val = _owner_target(owner)
        return self._fetch(
            f"""
            SELECT {', '.join(columns)} FROM {table}
            WHERE {owner_col} = ? AND due_date <= ? AND complete_flag = 0
            ORDER BY due_date, id
            """,
            (owner_val, due_before.isoformat()),
        )

    def get_todo(self, todo_id: int, owner: OwnerScope) -> Optional[TodoEntity]:
        with self._conn() as conn:
            row = self._select_one(conn, todo_id, owner)
            return self._row_to_entity(row) if row else None

    def create_todo(self, data: TodoIn, owner: OwnerScope, posted_by: str) -> TodoEntity:
        now = _now()
        values: List[Any] = [
            now,
            now,
            data.implementation_date.isoformat(),
            data.due_date.isoformat(),
            data.todo_content,
            posted_by,
        ]
        with self._conn() as conn:
            if isinstance(owner, GroupScope):
                cur = conn.execute(
                    f"""
                    INSERT INTO {GROUP_TODO_TABLE} (posted_date, updated_date, implementation_date,
                        due_date, todo_content, user_id, group_id)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (*values, owner.group_id),
                )
            else:
                cur = conn.execute(
                    f"""
                    INSERT INTO {TODO_TABLE} (posted_date, updated_date, implementation_date,
                        due_date, todo_content, user_id)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    values,
                )
            row = self._select_one(conn, int(cur.lastrowid), owner)
            assert row is not None
            return self._row_to_entity(row)

    def update_todo(self, todo_id: int, data: TodoIn, owner: OwnerScope) -> Optional[TodoEntity]:
        table, _, owner_col, owner_val = _owner_target(owner)
        with self._conn() as conn:
            cur = conn.execute(
                f"""
                UPDATE {table}
                SET implementation_date = ?, due_date = ?, todo_content = ?,
                    complete_flag = ?, updated_date = ?
                WHERE id = ? AND {owner_col} = ?
                """,
                (
                    data.implementation_date.isoformat(),
                    data.due_date.isoformat(),
                    data.todo_content,
                    1 if data.complete_flag else 0,
                    _now(),
                    todo_id,
                    owner_val,
                ),
            )
            if cur.rowcount == 0:
                return None
            row = self._select_one(conn, todo_id, owner)
            return self._row_to_entity(row) if row else None

    def delete_todo(self, todo_id: int, owner: OwnerScope) -> bool:
        table, _, owner_col, owner_val = _owner_target(owner)
        with self._conn() as conn:
            cur = conn.execute(f"DELETE FROM {table} WHERE id = ? AND {owner_col} = ?", (todo_id, owner_val))
            return cur.rowcount > 0

    def search(self, compiled: CompiledQuery) -> List[TodoEntity]:
        if compiled.placeholder_count != len(compiled.params):
            raise QueryCompileError(
                f"refusing query with {compiled.placeholder_count} placeholders and {len(compiled.params)} params"
            )
        logger.debug("search sql=%s params=%r", compiled.sql, compiled.params)
        return self._fetch(compiled.sql, compiled.params)

    def ping(self) -> None:
        with self._conn() as conn:
            conn.execute("SELECT 1").fetchone()
