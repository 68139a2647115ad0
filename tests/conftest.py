import os
from datetime import date

import pytest
from fastapi.testclient import TestClient

# Keep tests off the filesystem; every test also gets its own repository below.
os.environ.setdefault("SQLITE_DB_PATH", ":memory:")

from todo_service.affiliation import AffiliationStatus, get_affiliation_verifier  # noqa: E402
from todo_service.db import SQLiteRepository  # noqa: E402
from todo_service.main import app  # noqa: E402
from todo_service.repositories import get_repository  # noqa: E402
from todo_service.schemas import TodoIn  # noqa: E402
from todo_service.search import GroupScope, PersonalScope  # noqa: E402

ALICE_SESSION = "session-alice"
BOB_SESSION = "session-bob"


class StubAffiliationVerifier:
    """Membership table standing in for the user service."""

    def __init__(self, members=None, status=None):
        self.members = members or {}
        self.status = status
        self.calls = []

    def verify(self, group_id, user_id):
        self.calls.append((group_id, user_id))
        if self.status is not None:
            return self.status
        if user_id in self.members.get(group_id, ()):
            return AffiliationStatus.OK
        return AffiliationStatus.BAD_AFFILIATION


@pytest.fixture
def repo():
    r = SQLiteRepository(":memory:")
    r.add_session(ALICE_SESSION, "alice")
    r.add_session(BOB_SESSION, "bob")
    return r


@pytest.fixture
def verifier():
    return StubAffiliationVerifier(members={7: {"alice", "bob"}})


@pytest.fixture
def anonymous_client(repo, verifier):
    app.dependency_overrides[get_repository] = lambda: repo
    app.dependency_overrides[get_affiliation_verifier] = lambda: verifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def client(anonymous_client):
    anonymous_client.cookies.set("session_id", ALICE_SESSION)
    return anonymous_client


def add_todo(repo, owner, implementation_date, due_date, content, complete=False, posted_by=None):
    """Insert a todo straight through the repository; returns the stored entity."""
    if posted_by is None:
        posted_by = owner.user_id if isinstance(owner, PersonalScope) else "alice"
    data = TodoIn(
        implementation_date=implementation_date,
        due_date=due_date,
        todo_content=content,
        complete_flag=complete,
    )
    created = repo.create_todo(data, owner, posted_by=posted_by)
    if complete:
        created = repo.update_todo(created["id"], data, owner)
    return created


@pytest.fixture
def seeded_repo(repo):
    alice = PersonalScope("alice")
    add_todo(repo, alice, date(2020, 7, 5), date(2020, 7, 5), "今月の予算を立てる", complete=True)
    add_todo(repo, alice, date(2020, 7, 9), date(2020, 7, 10), "コストコ鶏肉セール 5パック購入", complete=True)
    add_todo(repo, alice, date(2020, 7, 10), date(2020, 7, 12), "醤油購入")
    add_todo(repo, alice, date(2020, 8, 1), date(2020, 8, 20), "電車定期券更新")
    add_todo(repo, PersonalScope("bob"), date(2020, 7, 10), date(2020, 7, 10), "bobの買い物")

    group = GroupScope(7)
    add_todo(repo, group, date(2020, 7, 1), date(2020, 7, 3), "日用品の買い物", posted_by="u1")
    add_todo(repo, group, date(2020, 7, 2), date(2020, 7, 2), "食材の買い物", posted_by="u2")
    add_todo(repo, group, date(2020, 7, 3), date(2020, 7, 4), "買い物リスト作成", posted_by="u3")
    add_todo(repo, group, date(2020, 7, 4), date(2020, 7, 9), "掃除", posted_by="u1")
    add_todo(repo, GroupScope(8), date(2020, 7, 1), date(2020, 7, 1), "他グループの買い物", posted_by="u1")
    return repo
