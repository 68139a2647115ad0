"""
Parsing of todo search requests.

Turns the URL query of ``GET /todo-list/search`` (or the group variant) into an
immutable :class:`SearchSpec`. All validation of user input happens here so the
query compiler can assume it receives well-formed values.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

DATE_TYPES: Tuple[str, ...] = ("implementation_date", "due_date")
SORT_COLUMNS: Tuple[str, ...] = ("implementation_date", "due_date")
SORT_TYPES: Tuple[str, ...] = ("ASC", "DESC")

# Smallest calendar day both sqlite text dates and datetime.date can hold.
MIN_SEARCH_DATE = date(1, 1, 1)
MAX_SEARCH_DATE = date(9999, 12, 31)

MAX_USER_ID_LENGTH = 10
MAX_TODO_CONTENT_LENGTH = 100
MAX_LIMIT = 1000

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DIGITS_RE = re.compile(r"^[0-9]+$")

QueryMultimap = Mapping[str, Sequence[str]]


class SearchParseError(ValueError):
    """Base class for search request validation failures."""

    def __init__(self, param: str, message: str) -> None:
        super().__init__(message)
        self.param = param
        self.message = message


class MalformedDate(SearchParseError):
    pass


class UnknownEnumValue(SearchParseError):
    pass


class OutOfRange(SearchParseError):
    pass


class EmptyRequired(SearchParseError):
    pass


@dataclass(frozen=True)
class PersonalScope:
    user_id: str


@dataclass(frozen=True)
class GroupScope:
    group_id: int
    # Empty tuple means every member of the group.
    user_ids: Tuple[str, ...] = ()


OwnerScope = Union[PersonalScope, GroupScope]


@dataclass(frozen=True)
class SearchSpec:
    """Validated, typed representation of one todo search request."""

    owner: OwnerScope
    date_type: str = "implementation_date"
    start_date: date = MIN_SEARCH_DATE
    end_date: date = MAX_SEARCH_DATE
    complete_flag: Optional[bool] = None
    todo_content: Optional[str] = None
    sort: str = "implementation_date"
    sort_type: str = "ASC"
    limit: Optional[int] = field(default=None)

    @property
    def is_group(self) -> bool:
        return isinstance(self.owner, GroupScope)


def _first(query: QueryMultimap, name: str) -> Optional[str]:
    """Return the first non-empty value for ``name``; empty strings count as absent."""
    for value in query.get(name, ()) or ():
        if value != "":
            return value
    return None


def _parse_date(value: Optional[str], param: str, default: date) -> date:
    if value is None:
        return default
    if not _ISO_DATE_RE.match(value):
        raise MalformedDate(param, "日付を正しく指定してください。")
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as e:
        raise MalformedDate(param, "日付を正しく指定してください。") from e


def _parse_choice(value: Optional[str], param: str, choices: Sequence[str], default: str) -> str:
    if value is None:
        return default
    if value not in choices:
        raise UnknownEnumValue(param, f"{param} には {' または '.join(choices)} を指定してください。")
    return value


def _parse_complete_flag(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    if value == "true":
        return True
    if value == "false":
        return False
    raise UnknownEnumValue("complete_flag", "complete_flag には true または false を指定してください。")


def _parse_todo_content(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    s = value.strip()
    if not s:
        raise EmptyRequired("todo_content", "検索する内容が入力されていません。")
    if len(s) > MAX_TODO_CONTENT_LENGTH:
        raise OutOfRange("todo_content", "内容は100文字以内で入力してください。")
    return s


def _parse_limit(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    if not _DIGITS_RE.match(value):
        raise OutOfRange("limit", "limit には1から1000までの整数を指定してください。")
    limit = int(value, 10)
    if not (1 <= limit <= MAX_LIMIT):
        raise OutOfRange("limit", "limit には1から1000までの整数を指定してください。")
    return limit


def _check_user_id(user_id: str, param: str) -> str:
    if not user_id:
        raise EmptyRequired(param, "ユーザーIDが指定されていません。")
    if len(user_id) > MAX_USER_ID_LENGTH:
        raise OutOfRange(param, "ユーザーIDは10文字以内で指定してください。")
    return user_id


def _parse_group_user_ids(values: Iterable[str]) -> Tuple[str, ...]:
    seen: List[str] = []
    for value in values:
        if value == "":
            continue
        _check_user_id(value, "user_id")
        if value not in seen:
            seen.append(value)
    return tuple(seen)


# PUBLIC_INTERFACE
def parse_search_request(
    query: QueryMultimap,
    *,
    user_id: Optional[str] = None,
    group_id: Optional[int] = None,
) -> SearchSpec:
    """
    Build a SearchSpec from a query-string multimap and the path-bound owner.

    Exactly one of ``user_id`` (personal search, taken from the session) or
    ``group_id`` (group search, taken from the path) must be given.

    Raises:
        MalformedDate, UnknownEnumValue, OutOfRange, EmptyRequired: when a
        parameter is invalid. Each carries the offending parameter name.
    """
    if (user_id is None) == (group_id is None):
        raise TypeError("exactly one of user_id or group_id is required")

    owner: OwnerScope
    if group_id is not None:
        if group_id < 1:
            raise OutOfRange("group_id", "group ID を正しく指定してください。")
        owner = GroupScope(group_id=group_id, user_ids=_parse_group_user_ids(query.get("user_id", ()) or ()))
    else:
        owner = PersonalScope(user_id=_check_user_id(user_id or "", "user_id"))

    start_date = _parse_date(_first(query, "start_date"), "start_date", MIN_SEARCH_DATE)
    end_date = _parse_date(_first(query, "end_date"), "end_date", MAX_SEARCH_DATE)
    if start_date > end_date:
        raise OutOfRange("start_date", "開始日は終了日以前の日付を指定してください。")

    sort_type = _first(query, "sort_type")
    if sort_type is not None:
        sort_type = _parse_choice(sort_type.upper(), "sort_type", SORT_TYPES, "ASC")

    return SearchSpec(
        owner=owner,
        date_type=_parse_choice(_first(query, "date_type"), "date_type", DATE_TYPES, "implementation_date"),
        start_date=start_date,
        end_date=end_date,
        complete_flag=_parse_complete_flag(_first(query, "complete_flag")),
        todo_content=_parse_todo_content(_first(query, "todo_content")),
        sort=_parse_choice(_first(query, "sort"), "sort", SORT_COLUMNS, "implementation_date"),
        sort_type=sort_type or "ASC",
        limit=_parse_limit(_first(query, "limit")),
    )
