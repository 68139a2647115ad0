from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Sequence, Type

from .schemas import GroupTodoOut, TodoOut

SEARCH_NO_CONTENT_MESSAGE = "条件に一致するtodoは見つかりませんでした。"
DAILY_NO_CONTENT_MESSAGE = "今日実施予定todo、締切予定todoは登録されていません。"
MONTHLY_NO_CONTENT_MESSAGE = "当月実施予定todoは登録されていません。"


def _out_model(group_mode: bool) -> Type[TodoOut]:
    return GroupTodoOut if group_mode else TodoOut


def _dump(rows: Iterable[Mapping[str, Any]], group_mode: bool) -> List[Dict[str, Any]]:
    model = _out_model(group_mode)
    return [model(**row).model_dump(mode="json") for row in rows]


# PUBLIC_INTERFACE
def no_content_envelope(message: str) -> Dict[str, Any]:
    """Body returned with 200 when a listing has nothing to show."""
    return {"message": message}


# PUBLIC_INTERFACE
def shape_search_result(rows: Sequence[Mapping[str, Any]], group_mode: bool = False) -> Dict[str, Any]:
    """
    Build the search response body.

    Args:
        rows: Repository rows, in the order the query returned them.
        group_mode: Include the posting member's ``user_id`` on each todo.

    Returns:
        ``{"search_todo_list": [...]}``, or the no-content message when empty.
    """
    if not rows:
        return no_content_envelope(SEARCH_NO_CONTENT_MESSAGE)
    return {"search_todo_list": _dump(rows, group_mode)}


# PUBLIC_INTERFACE
def shape_period_result(
    implementation_rows: Sequence[Mapping[str, Any]],
    due_rows: Sequence[Mapping[str, Any]],
    no_content_message: str,
    group_mode: bool = False,
) -> Dict[str, Any]:
    """Body for daily/monthly listings: planned todos and due todos side by side."""
    if not implementation_rows and not due_rows:
        return no_content_envelope(no_content_message)
    return {
        "implementation_todo_list": _dump(implementation_rows, group_mode),
        "due_todo_list": _dump(due_rows, group_mode),
    }


# PUBLIC_INTERFACE
def shape_expired_result(rows: Sequence[Mapping[str, Any]], group_mode: bool = False) -> Dict[str, Any]:
    """Body for the expired listing; always a list, possibly empty."""
    return {"expired_todo_list": _dump(rows, group_mode)}


# PUBLIC_INTERFACE
def shape_todo(row: Mapping[str, Any], group_mode: bool = False) -> Dict[str, Any]:
    return _out_model(group_mode)(**row).model_dump(mode="json")
