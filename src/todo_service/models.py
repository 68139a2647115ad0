from __future__ import annotations

from datetime import date, datetime
from typing import Optional, TypedDict


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    A row of ``todo_list`` (or the shared columns of ``group_todo_list``)
    as returned by the repository.

    Fields:
    - id: Unique integer identifier
    - posted_date: Creation timestamp
    - implementation_date: Day the todo is planned for
    - due_date: Day the todo must be done by
    - todo_content: Content (1..100 chars)
    - complete_flag: Completion flag
    """

    id: int
    posted_date: datetime
    implementation_date: date
    due_date: date
    todo_content: str
    complete_flag: bool


# PUBLIC_INTERFACE
class GroupTodoEntity(TodoEntity):
    """A ``group_todo_list`` row; ``user_id`` is the member who posted it."""

    user_id: Optional[str]
