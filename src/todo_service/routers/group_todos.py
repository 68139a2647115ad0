from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status

from ..affiliation import require_group_member
from ..errors import NotFoundError
from ..query import compile_search
from ..repositories import Repository, get_repository
from ..responses import UTF8JSONResponse
from ..schemas import TodoIn
from ..search import GroupScope, parse_search_request
from ..shaper import shape_expired_result, shape_period_result, shape_search_result, shape_todo
from .todos import DELETED_MESSAGE, TODO_NOT_FOUND_MESSAGE, expired_cutoff, parse_period, query_multimap

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/groups/{group_id}/todo-list",
    tags=["group todos"],
    default_response_class=UTF8JSONResponse,
)


# PUBLIC_INTERFACE
@router.get(
    "/search",
    summary="Search Group Todos",
    description=(
        "Search a group's todos. Accepts the same parameters as the personal search, "
        "plus repeated user_id parameters restricting results to those members."
    ),
    responses={
        200: {"description": "Matching todos, or a message when nothing matches"},
        400: {"description": "Invalid query parameters, or caller is not a group member"},
        401: {"description": "Not logged in"},
        500: {"description": "Membership check or database failure"},
    },
)
def search_group_todo_list(
    group_id: int,
    request: Request,
    _: str = Depends(require_group_member),
    repo: Repository = Depends(get_repository),
) -> Dict[str, Any]:
    spec = parse_search_request(query_multimap(request), group_id=group_id)
    rows = repo.search(compile_search(spec))
    return shape_search_result(rows, group_mode=True)


# PUBLIC_INTERFACE
@router.get("/expired", summary="List Expired Group Todos")
def get_expired_group_todo_list(
    group_id: int,
    _: str = Depends(require_group_member),
    repo: Repository = Depends(get_repository),
) -> Dict[str, Any]:
    rows = repo.list_expired_todos(expired_cutoff(), GroupScope(group_id))
    return shape_expired_result(rows, group_mode=True)


# PUBLIC_INTERFACE
@router.get("/{period}", summary="List Group Todos For A Day Or Month")
def get_group_todo_list(
    group_id: int,
    period: str,
    _: str = Depends(require_group_member),
    repo: Repository = Depends(get_repository),
) -> Dict[str, Any]:
    first_day, last_day, no_content_message = parse_period(period)
    owner = GroupScope(group_id)
    return shape_period_result(
        repo.list_implementation_todos(first_day, last_day, owner),
        repo.list_due_todos(first_day, last_day, owner),
        no_content_message,
        group_mode=True,
    )


# PUBLIC_INTERFACE
@router.post("", status_code=status.HTTP_201_CREATED, summary="Create Group Todo")
def post_group_todo(
    group_id: int,
    payload: TodoIn,
    user_id: str = Depends(require_group_member),
    repo: Repository = Depends(get_repository),
) -> Dict[str, Any]:
    created = repo.create_todo(payload, GroupScope(group_id), posted_by=user_id)
    logger.info("group todo created id=%s group_id=%s user_id=%s", created["id"], group_id, user_id)
    return shape_todo(created, group_mode=True)


# PUBLIC_INTERFACE
@router.put("/{todo_id}", summary="Replace Group Todo")
def put_group_todo(
    group_id: int,
    todo_id: int,
    payload: TodoIn,
    _: str = Depends(require_group_member),
    repo: Repository = Depends(get_repository),
) -> Dict[str, Any]:
    updated = repo.update_todo(todo_id, payload, GroupScope(group_id))
    if not updated:
        raise NotFoundError(TODO_NOT_FOUND_MESSAGE)
    return shape_todo(updated, group_mode=True)


# PUBLIC_INTERFACE
@router.delete("/{todo_id}", summary="Delete Group Todo")
def delete_group_todo(
    group_id: int,
    todo_id: int,
    _: str = Depends(require_group_member),
    repo: Repository = Depends(get_repository),
) -> Dict[str, Any]:
    if not repo.delete_todo(todo_id, GroupScope(group_id)):
        raise NotFoundError(TODO_NOT_FOUND_MESSAGE)
    return {"message": DELETED_MESSAGE}
