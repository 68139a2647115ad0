import sqlite3

import pytest

from todo_service.affiliation import AffiliationStatus
from todo_service.errors import INTERNAL_ERROR_MESSAGE, LOGIN_REQUIRED_MESSAGE, NOT_GROUP_MEMBER_MESSAGE
from todo_service.shaper import SEARCH_NO_CONTENT_MESSAGE

JSON_UTF8 = "application/json; charset=UTF-8"


@pytest.fixture
def seeded_client(seeded_repo, client):
    return client


def contents(res):
    return [t["todo_content"] for t in res.json()["search_todo_list"]]


class TestPersonalSearch:
    def test_default_lists_own_todos_by_implementation_date(self, seeded_client):
        res = seeded_client.get("/todo-list/search")
        assert res.status_code == 200
        assert res.headers["content-type"] == JSON_UTF8
        assert contents(res) == [
            "今月の予算を立てる",
            "コストコ鶏肉セール 5パック購入",
            "醤油購入",
            "電車定期券更新",
        ]

    def test_todo_shape(self, seeded_client):
        res = seeded_client.get("/todo-list/search", params={"todo_content": "醤油"})
        (todo,) = res.json()["search_todo_list"]
        assert set(todo) == {"id", "posted_date", "implementation_date", "due_date", "todo_content", "complete_flag"}
        assert todo["implementation_date"] == "07/10(金)"
        assert todo["due_date"] == "07/12(日)"
        assert todo["complete_flag"] is False

    def test_descending(self, seeded_client):
        res = seeded_client.get("/todo-list/search", params={"sort_type": "desc"})
        assert contents(res)[0] == "電車定期券更新"
        assert contents(res)[-1] == "今月の予算を立てる"

    def test_limit(self, seeded_client):
        res = seeded_client.get("/todo-list/search", params={"limit": "2"})
        assert len(contents(res)) == 2

    def test_complete_flag(self, seeded_client):
        done = seeded_client.get("/todo-list/search", params={"complete_flag": "true"})
        assert contents(done) == ["今月の予算を立てる", "コストコ鶏肉セール 5パック購入"]
        open_ = seeded_client.get("/todo-list/search", params={"complete_flag": "false"})
        assert contents(open_) == ["醤油購入", "電車定期券更新"]

    def test_due_date_range(self, seeded_client):
        res = seeded_client.get(
            "/todo-list/search",
            params={"date_type": "due_date", "start_date": "2020-07-10", "end_date": "2020-07-31"},
        )
        assert contents(res) == ["コストコ鶏肉セール 5パック購入", "醤油購入"]

    def test_empty_result_body_is_exact(self, seeded_client):
        res = seeded_client.get("/todo-list/search", params={"todo_content": "存在しない"})
        assert res.status_code == 200
        assert res.headers["content-type"] == JSON_UTF8
        expected = '{"message":"' + SEARCH_NO_CONTENT_MESSAGE + '"}'
        assert res.content == expected.encode("utf-8")

    def test_injection_attempt_is_harmless(self, seeded_client):
        res = seeded_client.get("/todo-list/search", params={"todo_content": "');DROP TABLE todo_list;--"})
        assert res.status_code == 200
        assert res.json() == {"message": SEARCH_NO_CONTENT_MESSAGE}
        assert len(contents(seeded_client.get("/todo-list/search"))) == 4


class TestPersonalSearchFailures:
    def test_unparsable_date_is_400_without_query(self, seeded_client, seeded_repo, monkeypatch):
        def fail(compiled):
            raise AssertionError("search must not run")

        monkeypatch.setattr(seeded_repo, "search", fail)
        res = seeded_client.get("/todo-list/search", params={"start_date": "2020-13-40"})
        assert res.status_code == 400
        assert res.headers["content-type"] == JSON_UTF8
        body = res.json()
        assert body["status"] == 400
        assert body["error"]["message"]

    @pytest.mark.parametrize(
        "params",
        [
            {"date_type": "posted_date"},
            {"complete_flag": "yes"},
            {"sort": "id"},
            {"sort_type": "random"},
            {"limit": "0"},
            {"limit": "1001"},
            {"todo_content": "　"},
            {"start_date": "2020-08-01", "end_date": "2020-07-01"},
        ],
    )
    def test_bad_parameters(self, seeded_client, params):
        res = seeded_client.get("/todo-list/search", params=params)
        assert res.status_code == 400
        assert res.json()["status"] == 400

    def test_missing_session(self, anonymous_client):
        res = anonymous_client.get("/todo-list/search")
        assert res.status_code == 401
        assert res.json() == {"status": 401, "error": {"message": LOGIN_REQUIRED_MESSAGE}}

    def test_unknown_session(self, anonymous_client):
        anonymous_client.cookies.set("session_id", "nobody")
        res = anonymous_client.get("/todo-list/search")
        assert res.status_code == 401

    def test_database_failure_is_500(self, seeded_client, seeded_repo, monkeypatch):
        def broken(compiled):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(seeded_repo, "search", broken)
        res = seeded_client.get("/todo-list/search")
        assert res.status_code == 500
        assert res.json() == {"status": 500, "error": {"message": INTERNAL_ERROR_MESSAGE}}


class TestGroupSearch:
    def test_lists_group_todos_with_poster(self, seeded_client, verifier):
        res = seeded_client.get("/groups/7/todo-list/search")
        assert res.status_code == 200
        todos = res.json()["search_todo_list"]
        assert [t["todo_content"] for t in todos] == ["日用品の買い物", "食材の買い物", "買い物リスト作成", "掃除"]
        assert [t["user_id"] for t in todos] == ["u1", "u2", "u3", "u1"]
        assert verifier.calls == [(7, "alice")]

    def test_content_filter_stays_inside_group(self, seeded_client):
        res = seeded_client.get("/groups/7/todo-list/search", params={"todo_content": "買い物"})
        assert contents(res) == ["日用品の買い物", "食材の買い物", "買い物リスト作成"]

    def test_single_user_filter(self, seeded_client):
        res = seeded_client.get("/groups/7/todo-list/search", params={"user_id": "u1"})
        assert contents(res) == ["日用品の買い物", "掃除"]

    def test_multiple_users_desc_limit(self, seeded_client):
        res = seeded_client.get(
            "/groups/7/todo-list/search",
            params=[("user_id", "u1"), ("user_id", "u2"), ("user_id", "u1"), ("sort_type", "desc"), ("limit", "2")],
        )
        assert contents(res) == ["掃除", "食材の買い物"]

    def test_empty_group_result(self, seeded_client):
        res = seeded_client.get("/groups/7/todo-list/search", params={"user_id": "nobody"})
        assert res.json() == {"message": SEARCH_NO_CONTENT_MESSAGE}

    def test_not_a_member(self, seeded_client):
        res = seeded_client.get("/groups/8/todo-list/search")
        assert res.status_code == 400
        assert res.json() == {"status": 400, "error": {"message": NOT_GROUP_MEMBER_MESSAGE}}

    def test_membership_service_failure_is_500(self, seeded_client, verifier):
        verifier.status = AffiliationStatus.INTERNAL
        res = seeded_client.get("/groups/7/todo-list/search")
        assert res.status_code == 500
        assert res.json()["error"]["message"] == INTERNAL_ERROR_MESSAGE

    def test_bad_group_id(self, seeded_client, verifier):
        res = seeded_client.get("/groups/abc/todo-list/search")
        assert res.status_code == 400
        assert verifier.calls == []

    def test_user_id_too_long(self, seeded_client):
        res = seeded_client.get("/groups/7/todo-list/search", params={"user_id": "x" * 11})
        assert res.status_code == 400

    def test_missing_session(self, anonymous_client, verifier):
        res = anonymous_client.get("/groups/7/todo-list/search")
        assert res.status_code == 401
        assert verifier.calls == []
