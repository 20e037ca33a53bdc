from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from users_api.errors import ConflictError, StoreError
from users_api.main import create_app
from users_api.users import get_user_store


class InMemoryUserStore:
    """Stands in for UserStore; enforces the UNIQUE email constraint."""

    def __init__(self):
        self.rows: Dict[int, Dict[str, Any]] = {}
        self._next_id = 1

    def _email_taken(self, email: str, exclude_id: Optional[int] = None) -> bool:
        return any(r["email"] == email and r["id"] != exclude_id for r in self.rows.values())

    def list_users(self) -> List[Dict[str, Any]]:
        return [dict(self.rows[k]) for k in sorted(self.rows)]

    def create_user(self, name: str, email: str, password_hash: Optional[str] = None) -> int:
        if self._email_taken(email):
            raise ConflictError("Email already exists")
        user_id = self._next_id
        self._next_id += 1
        self.rows[user_id] = {"id": user_id, "name": name, "email": email, "password_hash": password_hash}
        return user_id

    def update_user(self, user_id: int, name: str, email: str) -> bool:
        if user_id not in self.rows:
            return False
        if self._email_taken(email, exclude_id=user_id):
            raise ConflictError("Email already exists")
        self.rows[user_id].update(name=name, email=email)
        return True

    def delete_user(self, user_id: int) -> bool:
        return self.rows.pop(user_id, None) is not None

    def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        for row in self.rows.values():
            if row["email"] == email:
                return dict(row)
        return None

    def get_by_id(self, user_id: int) -> Optional[Dict[str, Any]]:
        row = self.rows.get(user_id)
        return dict(row) if row else None


class FailingUserStore:
    """Every call fails the way an unreachable database does."""

    def __getattr__(self, name):
        def _fail(*args, **kwargs):
            raise StoreError()

        return _fail


@pytest.fixture(autouse=True)
def _jwt_env(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.delenv("JWT_EXPIRES_MINUTES", raising=False)
    monkeypatch.delenv("JWT_ALGORITHM", raising=False)


@pytest.fixture
def store() -> InMemoryUserStore:
    return InMemoryUserStore()


def _client_for(store) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_user_store] = lambda: store
    return TestClient(app)


@pytest.fixture
def client(store) -> TestClient:
    return _client_for(store)


@pytest.fixture
def failing_client() -> TestClient:
    return _client_for(FailingUserStore())
