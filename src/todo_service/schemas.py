from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

# Sunday-first, matching the index produced by _weekday_index().
WEEKDAY_GLYPHS = ("日", "月", "火", "水", "木", "金", "土")

MIN_TODO_DATE = date(2000, 1, 1)
MAX_TODO_DATE = date(2100, 1, 1)
MAX_TODO_CONTENT_LENGTH = 100

_FIELD_MESSAGES = {
    "implementation_date": "todo実施日を正しく選択してください。",
    "due_date": "todo期限日を正しく選択してください。",
    "todo_content": "内容が入力されていません。",
}
_BLANK_CHARS = (" ", "　")

TodoDateInput = Union[date, datetime, str]


def _weekday_index(d: date) -> int:
    return (d.weekday() + 1) % 7


# PUBLIC_INTERFACE
def format_todo_date(d: date) -> str:
    """Render a todo date as ``MM/DD(曜)``, e.g. ``07/10(金)``."""
    return f"{d:%m/%d}({WEEKDAY_GLYPHS[_weekday_index(d)]})"


def _parse_todo_date(value: Optional[TodoDateInput]) -> Optional[date]:
    """
    Normalize an incoming todo date.
    - datetime/date values are reduced to their calendar day.
    - Strings may be 'YYYY-MM-DD' or 'YYYY/MM/DD'; anything after the first 10 chars is ignored.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        s = value.strip()[:10]
        for fmt in ("%Y-%m-%d", "%Y/%m/%d"):
            try:
                return datetime.strptime(s, fmt).date()
            except ValueError:
                continue
        raise ValueError("invalid date")
    raise ValueError("invalid date type")


# PUBLIC_INTERFACE
class TodoIn(BaseModel):
    """
    Schema for creating or replacing a todo (personal or group).
    ``complete_flag`` is only honoured on replace.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "implementation_date": "2020-07-10",
                "due_date": "2020-07-12",
                "todo_content": "醤油購入",
                "complete_flag": False,
            }
        }
    )

    implementation_date: date = Field(..., description="Day the todo is planned for (2000-01-01..2100-01-01)")
    due_date: date = Field(..., description="Day the todo must be done by (2000-01-01..2100-01-01)")
    todo_content: str = Field(..., description="Todo content, 1..100 chars without surrounding blanks")
    complete_flag: bool = Field(default=False, description="Completion status flag")

    @field_validator("implementation_date", "due_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Optional[TodoDateInput]) -> Optional[date]:
        return _parse_todo_date(v)

    @field_validator("implementation_date", "due_date")
    @classmethod
    def check_date_range(cls, v: date) -> date:
        if not (MIN_TODO_DATE <= v <= MAX_TODO_DATE):
            raise ValueError("date out of range")
        return v

    @field_validator("todo_content")
    @classmethod
    def validate_todo_content(cls, v: str) -> str:
        """
        Reject empty content, content over 100 chars, and leading/trailing
        ASCII or full-width spaces.
        """
        if not v:
            raise ValueError("内容が入力されていません。")
        if len(v) > MAX_TODO_CONTENT_LENGTH:
            raise ValueError("内容は100文字以内で入力してください")
        if v.startswith(_BLANK_CHARS) or v.endswith(_BLANK_CHARS):
            raise ValueError("内容の文字列先頭か末尾に空白がないか確認してください。")
        return v


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    Schema returned by the API for a todo.
    Dates serialize as ``MM/DD(曜)``.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 3,
                "posted_date": "2020-09-04T17:11:00",
                "implementation_date": "07/10(金)",
                "due_date": "07/12(日)",
                "todo_content": "醤油購入",
                "complete_flag": False,
            }
        }
    )

    id: int = Field(..., description="Unique identifier of the todo")
    posted_date: datetime = Field(..., description="Creation timestamp")
    implementation_date: date = Field(..., description="Planned day")
    due_date: date = Field(..., description="Due day")
    todo_content: str = Field(..., description="Todo content")
    complete_flag: bool = Field(..., description="Completion status flag")

    @field_serializer("implementation_date", "due_date")
    def serialize_todo_date(self, d: date) -> str:
        return format_todo_date(d)


# PUBLIC_INTERFACE
class GroupTodoOut(TodoOut):
    """Group todo as returned by the API; includes the posting member."""

    user_id: Optional[str] = Field(default=None, description="Member who posted the todo")


def validation_messages(errors: Sequence[Dict[str, Any]]) -> List[str]:
    """
    Translate pydantic error dicts for a TodoIn body into user-facing messages.

    Messages raised explicitly by TodoIn validators are kept; everything else
    falls back to a per-field message.
    """
    messages: List[str] = []
    for err in errors:
        loc = err.get("loc") or ()
        field = str(loc[-1]) if loc else ""
        message = _FIELD_MESSAGES.get(field, "リクエストの内容を正しく指定してください。")
        ctx_error = (err.get("ctx") or {}).get("error")
        if field == "todo_content" and ctx_error is not None:
            message = str(ctx_error)
        if message not in messages:
            messages.append(message)
    return messages
