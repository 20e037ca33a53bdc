import psycopg2
import pytest
from psycopg2 import errors as pg_errors

from users_api.errors import ConflictError, StoreError
from users_api.users import UserStore


class StubDatabase:
    """Records statements and answers with canned results or errors."""

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def _run(self, query, params):
        self.calls.append((query, params))
        if self.error is not None:
            raise self.error
        return self.result

    def fetch_one(self, query, params=None):
        return self._run(query, params)

    def fetch_all(self, query, params=None):
        return self._run(query, params)

    def execute(self, query, params=None):
        return self._run(query, params)

    def execute_returning_one(self, query, params=None):
        return self._run(query, params)


def test_create_user_returns_new_id_and_passes_params():
    db = StubDatabase(result={"id": 5})
    assert UserStore(db).create_user("Ann", "ann@x.com", "$2b$10$hash") == 5

    query, params = db.calls[0]
    assert query.startswith("INSERT INTO users")
    assert "%s" in query
    assert params == ["Ann", "ann@x.com", "$2b$10$hash"]


def test_create_user_without_hash_inserts_null():
    db = StubDatabase(result={"id": 1})
    UserStore(db).create_user("Bob", "bob@x.com")
    assert db.calls[0][1] == ["Bob", "bob@x.com", None]


def test_unique_violation_becomes_conflict():
    db = StubDatabase(error=pg_errors.UniqueViolation("duplicate key"))
    with pytest.raises(ConflictError) as exc:
        UserStore(db).create_user("Ann", "ann@x.com")
    assert exc.value.message == "Email already exists"


def test_other_driver_errors_become_store_error():
    db = StubDatabase(error=psycopg2.OperationalError("connection refused"))
    with pytest.raises(StoreError) as exc:
        UserStore(db).list_users()
    assert "connection refused" not in exc.value.message


def test_update_and_delete_report_matches():
    assert UserStore(StubDatabase(result=1)).update_user(1, "Ann", "ann@x.com") is True
    assert UserStore(StubDatabase(result=0)).update_user(1, "Ann", "ann@x.com") is False
    assert UserStore(StubDatabase(result=1)).delete_user(1) is True
    assert UserStore(StubDatabase(result=0)).delete_user(1) is False


def test_update_params_order():
    db = StubDatabase(result=1)
    UserStore(db).update_user(3, "Ann", "ann@x.com")
    assert db.calls[0][1] == ["Ann", "ann@x.com", 3]


def test_lookup_by_email_is_parameterized():
    db = StubDatabase(result=None)
    hostile = "x@x.com' OR '1'='1"
    assert UserStore(db).get_by_email(hostile) is None
    query, params = db.calls[0]
    assert hostile not in query
    assert params == [hostile]
