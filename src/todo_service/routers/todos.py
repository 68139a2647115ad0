from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Tuple

from fastapi import APIRouter, Depends, Request, status

from ..auth import current_user_id
from ..errors import BadRequestError, NotFoundError
from ..query import compile_search
from ..repositories import Repository, get_repository
from ..responses import UTF8JSONResponse
from ..schemas import TodoIn
from ..search import PersonalScope, parse_search_request
from ..shaper import (
    DAILY_NO_CONTENT_MESSAGE,
    MONTHLY_NO_CONTENT_MESSAGE,
    shape_expired_result,
    shape_period_result,
    shape_search_result,
    shape_todo,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/todo-list",
    tags=["todos"],
    default_response_class=UTF8JSONResponse,
)

DELETED_MESSAGE = "todoを削除しました。"
TODO_NOT_FOUND_MESSAGE = "指定されたtodoは存在しません。"

_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MONTH_RE = re.compile(r"^\d{4}-\d{2}$")


def query_multimap(request: Request) -> Dict[str, List[str]]:
    """Collect repeated query parameters, e.g. ``?user_id=a&user_id=b``."""
    multimap: Dict[str, List[str]] = {}
    for key, value in request.query_params.multi_items():
        multimap.setdefault(key, []).append(value)
    return multimap


def parse_period(period: str) -> Tuple[date, date, str]:
    """
    Interpret a ``YYYY-MM-DD`` or ``YYYY-MM`` path segment.

    Returns (first_day, last_day, no_content_message).
    """
    if _DAY_RE.match(period):
        try:
            day = datetime.strptime(period, "%Y-%m-%d").date()
        except ValueError as e:
            raise BadRequestError("日付を正しく指定してください。") from e
        return day, day, DAILY_NO_CONTENT_MESSAGE

    if _MONTH_RE.match(period):
        try:
            first_day = datetime.strptime(period, "%Y-%m").date()
        except ValueError as e:
            raise BadRequestError("年月を正しく指定してください。") from e
        next_month = (first_day.replace(day=28) + timedelta(days=4)).replace(day=1)
        return first_day, next_month - timedelta(days=1), MONTHLY_NO_CONTENT_MESSAGE

    raise BadRequestError("日付を正しく指定してください。")


def expired_cutoff() -> date:
    """Todos due on or before this day (yesterday) are expired."""
    return date.today() - timedelta(days=1)


# PUBLIC_INTERFACE
@router.get(
    "/search",
    summary="Search Todos",
    description=(
        "Search the caller's todos.\n\n"
        "Query parameters:\n"
        "- date_type: implementation_date (default) or due_date\n"
        "- start_date / end_date: YYYY-MM-DD, inclusive\n"
        "- complete_flag: true or false\n"
        "- todo_content: substring of the todo content (max 100 chars)\n"
        "- sort: implementation_date (default) or due_date\n"
        "- sort_type: asc (default) or desc\n"
        "- limit: 1..1000"
    ),
    responses={
        200: {"description": "Matching todos, or a message when nothing matches"},
        400: {"description": "Invalid query parameters"},
        401: {"description": "Not logged in"},
    },
)
def search_todo_list(
    request: Request,
    user_id: str = Depends(current_user_id),
    repo: Repository = Depends(get_repository),
) -> Dict[str, Any]:
    """
    Search the caller's todos with optional filters.
    """
    spec = parse_search_request(query_multimap(request), user_id=user_id)
    rows = repo.search(compile_search(spec))
    return shape_search_result(rows)


# PUBLIC_INTERFACE
@router.get(
    "/expired",
    summary="List Expired Todos",
    description="Incomplete todos whose due date has passed, oldest first.",
)
def get_expired_todo_list(
    user_id: str = Depends(current_user_id),
    repo: Repository = Depends(get_repository),
) -> Dict[str, Any]:
    rows = repo.list_expired_todos(expired_cutoff(), PersonalScope(user_id))
    return shape_expired_result(rows)


# PUBLIC_INTERFACE
@router.get(
    "/{period}",
    summary="List Todos For A Day Or Month",
    description=(
        "With a YYYY-MM-DD period, list todos planned for or due on that day; "
        "with YYYY-MM, those planned for or due in that month."
    ),
)
def get_todo_list(
    period: str,
    user_id: str = Depends(current_user_id),
    repo: Repository = Depends(get_repository),
) -> Dict[str, Any]:
    first_day, last_day, no_content_message = parse_period(period)
    owner = PersonalScope(user_id)
    return shape_period_result(
        repo.list_implementation_todos(first_day, last_day, owner),
        repo.list_due_todos(first_day, last_day, owner),
        no_content_message,
    )


# PUBLIC_INTERFACE
@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new todo and return the created resource.",
    responses={
        201: {"description": "Todo created successfully"},
        400: {"description": "Validation error"},
    },
)
def post_todo(
    payload: TodoIn,
    user_id: str = Depends(current_user_id),
    repo: Repository = Depends(get_repository),
) -> Dict[str, Any]:
    created = repo.create_todo(payload, PersonalScope(user_id), posted_by=user_id)
    logger.info("todo created id=%s user_id=%s", created["id"], user_id)
    return shape_todo(created)


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    summary="Replace Todo",
    description="Replace dates, content and complete flag of an existing todo.",
    responses={
        200: {"description": "Todo updated"},
        404: {"description": "Todo not found"},
    },
)
def put_todo(
    todo_id: int,
    payload: TodoIn,
    user_id: str = Depends(current_user_id),
    repo: Repository = Depends(get_repository),
) -> Dict[str, Any]:
    updated = repo.update_todo(todo_id, payload, PersonalScope(user_id))
    if not updated:
        raise NotFoundError(TODO_NOT_FOUND_MESSAGE)
    return shape_todo(updated)


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    summary="Delete Todo",
    description="Delete a todo by ID.",
    responses={
        200: {"description": "Todo deleted"},
        404: {"description": "Todo not found"},
    },
)
def delete_todo(
    todo_id: int,
    user_id: str = Depends(current_user_id),
    repo: Repository = Depends(get_repository),
) -> Dict[str, Any]:
    if not repo.delete_todo(todo_id, PersonalScope(user_id)):
        raise NotFoundError(TODO_NOT_FOUND_MESSAGE)
    return {"message": DELETED_MESSAGE}
