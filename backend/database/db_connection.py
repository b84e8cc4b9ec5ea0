"""
PostgreSQL connection helper.

Provides the `Database` store client (a pooled psycopg2 connection source with
an explicit open/close lifecycle) and `get_db()` for use by services.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

from flask import Flask, current_app, g
from psycopg2 import sql
from psycopg2.extras import DictCursor
from psycopg2.pool import ThreadedConnectionPool

logger = logging.getLogger(__name__)

EXTENSION_KEY = "database"

# Value types `conditional_update` will write; anything else is dropped.
UPDATABLE_TYPES = (str, int, float, datetime, date)


class Database:
    """
    Store client owning a pool of psycopg2 connections.

    Usage:
        db = Database(url)
        db.open()
        with db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(...)
        db.close()
    """

    def __init__(
        self,
        dsn: str,
        min_connections: int = 1,
        max_connections: int = 10,
        sslmode: Optional[str] = None,
    ) -> None:
        self.dsn = dsn
        self.min_connections = min_connections
        self.max_connections = max_connections
        self.sslmode = sslmode
        self._pool: Optional[ThreadedConnectionPool] = None

    @property
    def is_open(self) -> bool:
        return self._pool is not None and not self._pool.closed

    def open(self) -> "Database":
        """Create the connection pool. Calling it twice is a no-op."""
        if self.is_open:
            return self

        kwargs: Dict[str, Any] = {"cursor_factory": DictCursor}
        if self.sslmode:
            kwargs["sslmode"] = self.sslmode

        try:
            self._pool = ThreadedConnectionPool(
                self.min_connections, self.max_connections, self.dsn, **kwargs
            )
        except Exception:
            logger.exception("[Database] Error connecting to database")
            raise

        logger.info(f"[Database] Pool opened ({self.min_connections}-{self.max_connections} connections)")
        return self

    def acquire(self):
        """
        Take a connection out of the pool.

        Raises:
            RuntimeError: If the pool has not been opened.
            psycopg2.Error: If a new connection cannot be made.
        """
        if not self.is_open:
            raise RuntimeError("Database is not open. Call open() first.")
        return self._pool.getconn()

    def release(self, conn) -> None:
        """Hand a connection back. psycopg2 rolls back any unfinished transaction."""
        if self._pool is None or self._pool.closed:
            conn.close()
            return
        self._pool.putconn(conn)

    @contextmanager
    def connection(self) -> Iterator[Any]:
        """Scoped acquire/release for scripts running outside a request."""
        conn = self.acquire()
        try:
            yield conn
        finally:
            self.release(conn)

    def close(self) -> None:
        if self._pool is not None and not self._pool.closed:
            self._pool.closeall()
            logger.info("[Database] Pool closed")
        self._pool = None


def init_app(app: Flask, database: Database) -> None:
    """
    Attach a store client to the app.

    The request-scoped connection taken by `get_db()` is released when the
    app context tears down, whether the request succeeded or raised.
    """
    app.extensions[EXTENSION_KEY] = database

    @app.teardown_appcontext
    def release_connection(exc: Optional[BaseException]) -> None:
        conn = g.pop("db_conn", None)
        if conn is None:
            return
        if exc is not None:
            logger.warning(f"[Database] Releasing connection after failed request: {exc}")
        database.release(conn)


def get_db():
    """
    Return this request's connection, acquiring it on first use.

    Usage:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(...)

    `with conn` commits on success and rolls back on error; it does not
    close the connection, which stays with the request until teardown.
    """
    if "db_conn" not in g:
        g.db_conn = current_app.extensions[EXTENSION_KEY].acquire()
    return g.db_conn


def conditional_update(
    table: str,
    row_id: int,
    fields: Sequence[Optional[str]],
    values: Sequence[Any],
) -> Union[bool, Optional[Dict[str, Any]]]:
    """
    Update only the columns that were actually supplied.

    Args:
        table (str): Table name.
        row_id (int): Primary key of the row to update.
        fields (list): Column names; falsy entries are ignored.
        values (list): Values paired with `fields` by position.

    Returns:
        False if there was nothing to write, the updated row as a dict,
        or None if no row has that id.

    Raises:
        ValueError: If `fields` and `values` differ in length.
    """
    if len(fields) != len(values):
        raise ValueError("fields and values must be of equal length")

    pairs: List[tuple] = [
        (f, v) for f, v in zip(fields, values)
        if isinstance(f, str) and f and isinstance(v, UPDATABLE_TYPES) and not isinstance(v, bool)
    ]
    if not pairs:
        return False

    updates = sql.SQL(", ").join(
        sql.SQL("{} = %s").format(sql.Identifier(f)) for f, _ in pairs
    )
    query = sql.SQL("UPDATE {} SET {} WHERE id = %s RETURNING *;").format(
        sql.Identifier(table), updates
    )
    params = [v for _, v in pairs] + [row_id]

    logger.info(f"[Database] Conditional update on {table} id={row_id} fields={[f for f, _ in pairs]}")

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(query, params)
            row = cur.fetchone()

    return dict(row) if row else None
