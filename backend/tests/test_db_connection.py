from datetime import datetime

import pytest
from psycopg2.extras import DictCursor

from backend.database.db_connection import Database, conditional_update


@pytest.fixture
def pool_cls(mocker):
    pool_cls = mocker.patch("backend.database.db_connection.ThreadedConnectionPool")
    pool_cls.return_value.closed = False
    return pool_cls


def test_open_builds_pool(pool_cls):
    database = Database("postgresql://db", min_connections=2, max_connections=5, sslmode="require").open()

    pool_cls.assert_called_once_with(2, 5, "postgresql://db", cursor_factory=DictCursor, sslmode="require")
    assert database.is_open

    # Opening twice keeps the same pool
    database.open()
    assert pool_cls.call_count == 1


def test_acquire_before_open():
    with pytest.raises(RuntimeError):
        Database("postgresql://db").acquire()


def test_connection_context_releases_on_error(pool_cls):
    pool = pool_cls.return_value
    database = Database("postgresql://db").open()

    with pytest.raises(ValueError):
        with database.connection() as conn:
            assert conn is pool.getconn.return_value
            raise ValueError("query failed")

    pool.putconn.assert_called_once_with(pool.getconn.return_value)


def test_close(pool_cls):
    pool = pool_cls.return_value
    database = Database("postgresql://db").open()

    database.close()

    pool.closeall.assert_called_once()
    assert not database.is_open


def test_conditional_update_nothing_to_write(mock_db):
    mock_conn, mock_cursor = mock_db

    assert conditional_update("events", 1, [None, None], [None, None]) is False
    mock_cursor.execute.assert_not_called()


def test_conditional_update_length_mismatch(mock_db):
    with pytest.raises(ValueError):
        conditional_update("events", 1, ["name"], [])


def test_conditional_update_only_supplied_fields(mock_db):
    mock_conn, mock_cursor = mock_db
    mock_cursor.fetchone.return_value = {"id": 3, "name": "New"}
    when = datetime(2025, 1, 1)

    row = conditional_update(
        "events", 3,
        ["name", None, "description", "updated", "flag"],
        ["New", "ignored", None, when, True],
    )

    assert row == {"id": 3, "name": "New"}
    args, _ = mock_cursor.execute.call_args
    assert args[1] == ["New", when, 3]


def test_conditional_update_missing_row(mock_db):
    mock_conn, mock_cursor = mock_db
    mock_cursor.fetchone.return_value = None

    assert conditional_update("events", 3, ["name"], ["New"]) is None
