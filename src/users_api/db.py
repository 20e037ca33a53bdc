import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence

import psycopg2
import psycopg2.extras
from fastapi import Request
from psycopg2.pool import ThreadedConnectionPool

from users_api import config

logger = logging.getLogger(__name__)


class Database:
    """PostgreSQL connection pool plus the query helpers the routes use."""

    def __init__(self, dsn: Optional[str] = None, minconn: Optional[int] = None, maxconn: Optional[int] = None):
        self._dsn = dsn
        self._minconn = minconn
        self._maxconn = maxconn
        self._pool: Optional[ThreadedConnectionPool] = None
        self._lock = threading.Lock()

    # PUBLIC_INTERFACE
    def open(self) -> None:
        """Create the connection pool if it does not exist yet."""
        with self._lock:
            if self._pool is not None:
                return
            self._pool = ThreadedConnectionPool(
                minconn=self._minconn if self._minconn is not None else config.pool_min_size(),
                maxconn=self._maxconn if self._maxconn is not None else config.pool_max_size(),
                dsn=self._dsn or config.database_dsn(),
            )
            logger.info("Database pool opened")

    # PUBLIC_INTERFACE
    def close(self) -> None:
        """Close every pooled connection."""
        with self._lock:
            if self._pool is None:
                return
            self._pool.closeall()
            self._pool = None
            logger.info("Database pool closed")

    @contextmanager
    def _get_conn(self):
        if self._pool is None:
            self.open()
        assert self._pool is not None
        conn = self._pool.getconn()
        try:
            yield conn
        except Exception:
            if not conn.closed:
                conn.rollback()
            raise
        finally:
            self._pool.putconn(conn)

    @staticmethod
    def _dict_cursor(conn):
        return conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)

    # PUBLIC_INTERFACE
    def fetch_one(self, query: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        """Fetch a single row as a dict, or None."""
        with self._get_conn() as conn:
            with self._dict_cursor(conn) as cur:
                cur.execute(query, params or [])
                row = cur.fetchone()
                conn.commit()
                return dict(row) if row else None

    # PUBLIC_INTERFACE
    def fetch_all(self, query: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Fetch all rows as dicts."""
        with self._get_conn() as conn:
            with self._dict_cursor(conn) as cur:
                cur.execute(query, params or [])
                rows = cur.fetchall()
                conn.commit()
                return [dict(r) for r in rows]

    # PUBLIC_INTERFACE
    def execute(self, query: str, params: Optional[Sequence[Any]] = None) -> int:
        """Execute a statement (INSERT/UPDATE/DELETE). Returns affected rowcount."""
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params or [])
                affected = cur.rowcount
                conn.commit()
                return affected

    # PUBLIC_INTERFACE
    def execute_returning_one(self, query: str, params: Optional[Sequence[Any]] = None) -> Dict[str, Any]:
        """Execute a statement with RETURNING and return the first row as dict."""
        with self._get_conn() as conn:
            with self._dict_cursor(conn) as cur:
                cur.execute(query, params or [])
                row = cur.fetchone()
                if not row:
                    conn.rollback()
                    raise RuntimeError("Expected one row returned, got none.")
                conn.commit()
                return dict(row)


# PUBLIC_INTERFACE
def get_db(request: Request) -> Database:
    """Dependency returning the application's Database handle."""
    return request.app.state.db
