from datetime import date, datetime

import pytest

from todo_service.schemas import format_todo_date
from todo_service.shaper import (
    DAILY_NO_CONTENT_MESSAGE,
    SEARCH_NO_CONTENT_MESSAGE,
    no_content_envelope,
    shape_expired_result,
    shape_period_result,
    shape_search_result,
    shape_todo,
)


def make_row(todo_id=1, implementation=date(2020, 7, 10), due=date(2020, 7, 12), **extra):
    row = {
        "id": todo_id,
        "posted_date": datetime(2020, 7, 1, 9, 30),
        "implementation_date": implementation,
        "due_date": due,
        "todo_content": "醤油購入",
        "complete_flag": False,
    }
    row.update(extra)
    return row


class TestTodoDateFormat:
    @pytest.mark.parametrize(
        "d, expected",
        [
            (date(2020, 7, 10), "07/10(金)"),
            (date(2020, 7, 12), "07/12(日)"),
            (date(2020, 7, 13), "07/13(月)"),
            (date(2020, 7, 18), "07/18(土)"),
            (date(2021, 1, 5), "01/05(火)"),
        ],
    )
    def test_glyphs(self, d, expected):
        assert format_todo_date(d) == expected


class TestSearchEnvelope:
    def test_empty_result_is_message(self):
        assert shape_search_result([]) == {"message": SEARCH_NO_CONTENT_MESSAGE}
        assert shape_search_result([], group_mode=True) == {"message": SEARCH_NO_CONTENT_MESSAGE}

    def test_rows_keep_order_and_format_dates(self):
        body = shape_search_result([make_row(2), make_row(1, implementation=date(2020, 7, 5))])
        todos = body["search_todo_list"]
        assert [t["id"] for t in todos] == [2, 1]
        assert todos[0] == {
            "id": 2,
            "posted_date": "2020-07-01T09:30:00",
            "implementation_date": "07/10(金)",
            "due_date": "07/12(日)",
            "todo_content": "醤油購入",
            "complete_flag": False,
        }
        assert todos[1]["implementation_date"] == "07/05(日)"

    def test_personal_rows_have_no_user_id(self):
        body = shape_search_result([make_row()])
        assert "user_id" not in body["search_todo_list"][0]

    def test_group_rows_carry_user_id(self):
        body = shape_search_result([make_row(user_id="u1"), make_row(2, user_id=None)], group_mode=True)
        assert [t["user_id"] for t in body["search_todo_list"]] == ["u1", None]


class TestPeriodEnvelope:
    def test_both_empty_is_message(self):
        assert shape_period_result([], [], DAILY_NO_CONTENT_MESSAGE) == no_content_envelope(DAILY_NO_CONTENT_MESSAGE)

    def test_one_side_empty_still_lists(self):
        body = shape_period_result([], [make_row()], DAILY_NO_CONTENT_MESSAGE)
        assert body["implementation_todo_list"] == []
        assert len(body["due_todo_list"]) == 1


class TestExpiredEnvelope:
    def test_empty_list_is_not_a_message(self):
        assert shape_expired_result([]) == {"expired_todo_list": []}

    def test_group_mode(self):
        body = shape_expired_result([make_row(user_id="u2")], group_mode=True)
        assert body["expired_todo_list"][0]["user_id"] == "u2"


class TestSingleTodo:
    def test_shape_todo(self):
        assert shape_todo(make_row(complete_flag=True))["complete_flag"] is True
