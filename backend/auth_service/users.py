"""
User persistence for the authentication service.

Lookups return None when a user does not exist; database errors propagate so
callers can tell absence apart from an infrastructure failure.
"""

import logging
from typing import Any, Dict, List, Optional, Union

import psycopg2.errors
from flask import current_app
from markupsafe import escape

from backend.auth_service.passwords import hash_password
from backend.database.db_connection import conditional_update, get_db

logger = logging.getLogger(__name__)

PUBLIC_COLUMNS = "id, username, name, admin"


class UsernameTaken(Exception):
    """Insert hit the unique constraint on users.username."""


def strip_password(user: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Return a copy of the user without the password hash."""
    if user is None:
        return None
    return {k: v for k, v in dict(user).items() if k != "password"}


def _hash(password: str) -> str:
    return hash_password(password, current_app.config.get("PASSWORD_HASH_ROUNDS", 1))


def find_by_username(username: str) -> Optional[Dict[str, Any]]:
    """Full user row (password hash included) or None."""
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM users WHERE username = %s;", (username,))
            row = cur.fetchone()
    return dict(row) if row else None


def find_by_id(user_id: int) -> Optional[Dict[str, Any]]:
    """Full user row (password hash included) or None."""
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM users WHERE id = %s;", (user_id,))
            row = cur.fetchone()
    return dict(row) if row else None


def create_user(username: str, name: str, password: str) -> Dict[str, Any]:
    """
    Insert a new, non-admin user. The password is hashed before it is stored.

    Returns:
        dict: The created user, without the password hash.

    Raises:
        UsernameTaken: If another user already has this username.
    """
    pw_hash = _hash(password)

    sql = f"""
        INSERT INTO users (username, name, password)
        VALUES (%s, %s, %s)
        RETURNING {PUBLIC_COLUMNS};
    """

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (username, str(escape(name)), pw_hash))
                user = cur.fetchone()
    except psycopg2.errors.UniqueViolation as e:
        logger.info(f"[Auth] Username {username!r} taken at insert time")
        raise UsernameTaken(username) from e

    return dict(user)


def list_users(offset: int = 0, limit: int = 50) -> List[Dict[str, Any]]:
    sql = f"SELECT {PUBLIC_COLUMNS} FROM users ORDER BY id ASC OFFSET %s LIMIT %s;"
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(sql, (offset, limit))
            return [dict(row) for row in cur.fetchall()]


def update_user(
    user_id: int,
    name: Optional[str] = None,
    password: Optional[str] = None,
) -> Union[bool, Optional[Dict[str, Any]]]:
    """
    Self-service update of name and/or password.

    Returns:
        False if neither was supplied, otherwise the updated user
        (without password hash) or None if the user is gone.
    """
    fields = [
        "name" if isinstance(name, str) else None,
        "password" if isinstance(password, str) else None,
    ]
    values = [
        str(escape(name)) if isinstance(name, str) else None,
        _hash(password) if isinstance(password, str) else None,
    ]

    result = conditional_update("users", user_id, fields, values)
    if result is False:
        return False
    return strip_password(result)


def set_admin(user_id: int, admin: bool) -> Optional[Dict[str, Any]]:
    sql = f"UPDATE users SET admin = %s WHERE id = %s RETURNING {PUBLIC_COLUMNS};"
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(sql, (admin, user_id))
            row = cur.fetchone()
    return dict(row) if row else None
