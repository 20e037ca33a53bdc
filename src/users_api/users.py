import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import psycopg2
from fastapi import Depends
from psycopg2 import errors as pg_errors

from users_api.db import Database, get_db
from users_api.errors import ConflictError, StoreError

logger = logging.getLogger(__name__)


@contextmanager
def _store_errors(action: str):
    try:
        yield
    except pg_errors.UniqueViolation:
        logger.info("Unique constraint rejected %s", action)
        raise ConflictError("Email already exists")
    except psycopg2.Error:
        logger.exception("Database error while trying to %s", action)
        raise StoreError()


class UserStore:
    """The SQL statements behind the users and auth routes."""

    def __init__(self, db: Database):
        self.db = db

    # PUBLIC_INTERFACE
    def list_users(self) -> List[Dict[str, Any]]:
        """Return every user row, ordered by id."""
        with _store_errors("list users"):
            return self.db.fetch_all("SELECT id, name, email, password_hash FROM users ORDER BY id")

    # PUBLIC_INTERFACE
    def create_user(self, name: str, email: str, password_hash: Optional[str] = None) -> int:
        """Insert a user and return the id the store assigned."""
        with _store_errors("create user"):
            row = self.db.execute_returning_one(
                "INSERT INTO users (name, email, password_hash) VALUES (%s, %s, %s) RETURNING id",
                [name, email, password_hash],
            )
        return int(row["id"])

    # PUBLIC_INTERFACE
    def update_user(self, user_id: int, name: str, email: str) -> bool:
        """Set name/email for a user. Returns False when no row matched."""
        with _store_errors("update user"):
            affected = self.db.execute(
                "UPDATE users SET name=%s, email=%s WHERE id=%s",
                [name, email, user_id],
            )
        return affected > 0

    # PUBLIC_INTERFACE
    def delete_user(self, user_id: int) -> bool:
        """Delete a user. Returns False when no row matched."""
        with _store_errors("delete user"):
            affected = self.db.execute("DELETE FROM users WHERE id=%s", [user_id])
        return affected > 0

    def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        with _store_errors("look up user by email"):
            return self.db.fetch_one(
                "SELECT id, name, email, password_hash FROM users WHERE email=%s",
                [email],
            )

    def get_by_id(self, user_id: int) -> Optional[Dict[str, Any]]:
        with _store_errors("look up user by id"):
            return self.db.fetch_one(
                "SELECT id, name, email, password_hash FROM users WHERE id=%s",
                [user_id],
            )


# PUBLIC_INTERFACE
def get_user_store(db: Database = Depends(get_db)) -> UserStore:
    """Dependency that builds a UserStore on the request's Database."""
    return UserStore(db)
