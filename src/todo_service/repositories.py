from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from functools import lru_cache
from typing import List, Optional

from .models import TodoEntity
from .query import CompiledQuery
from .schemas import TodoIn
from .search import OwnerScope
from .settings import get_settings


# PUBLIC_INTERFACE
class AuthRepository(ABC):
    """Session lookup contract."""

    @abstractmethod
    def get_user_id(self, session_id: str) -> Optional[str]:
        """Return the user id bound to a session, or None if the session is unknown."""


# PUBLIC_INTERFACE
class TodoRepository(ABC):
    """
    Todo storage contract. Every operation is scoped by an owner: a single
    user (``todo_list``) or a group (``group_todo_list``).
    """

    @abstractmethod
    def list_implementation_todos(self, first_day: date, last_day: date, owner: OwnerScope) -> List[TodoEntity]:
        """Todos planned between first_day and last_day inclusive, ordered by implementation_date."""

    @abstractmethod
    def list_due_todos(self, first_day: date, last_day: date, owner: OwnerScope) -> List[TodoEntity]:
        """Todos due between first_day and last_day inclusive, ordered by due_date."""

    @abstractmethod
    def list_expired_todos(self, due_before: date, owner: OwnerScope) -> List[TodoEntity]:
        """Incomplete todos whose due_date is on or before due_before."""

    @abstractmethod
    def get_todo(self, todo_id: int, owner: OwnerScope) -> Optional[TodoEntity]:
        """Return a todo by id, or None if the owner has no such todo."""

    @abstractmethod
    def create_todo(self, data: TodoIn, owner: OwnerScope, posted_by: str) -> TodoEntity:
        """Create and return a new todo. posted_by is recorded on group todos."""

    @abstractmethod
    def update_todo(self, todo_id: int, data: TodoIn, owner: OwnerScope) -> Optional[TodoEntity]:
        """Replace dates, content and complete flag. Return the updated todo or None if not found."""

    @abstractmethod
    def delete_todo(self, todo_id: int, owner: OwnerScope) -> bool:
        """Delete a todo. Return True if deleted, False if not found."""

    @abstractmethod
    def search(self, compiled: CompiledQuery) -> List[TodoEntity]:
        """Execute a compiled search query and return its rows in query order."""


# PUBLIC_INTERFACE
class Repository(AuthRepository, TodoRepository):
    """Everything the todo service needs from its database."""

    @abstractmethod
    def ping(self) -> None:
        """Raise if the database cannot answer a trivial query."""


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_repository() -> Repository:
    """
    Return the process-wide repository configured by settings
    (SQLITE_DB_PATH; ':memory:' keeps everything in one shared connection).
    """
    from .db import SQLiteRepository

    return SQLiteRepository(get_settings().sqlite_db_path)
