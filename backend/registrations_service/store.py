"""
Registration persistence.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from markupsafe import escape

from backend.database.db_connection import get_db

REGISTRATION_COLUMNS = "id, name, comment, event, created"


def _serialize(row) -> Dict[str, Any]:
    registration = dict(row)
    if isinstance(registration.get("created"), datetime):
        registration["created"] = registration["created"].isoformat()
    return registration


def create_registration(name: str, comment: Optional[str], event_id: int) -> Dict[str, Any]:
    sql = f"""
        INSERT INTO registrations (name, comment, event)
        VALUES (%s, %s, %s)
        RETURNING {REGISTRATION_COLUMNS};
    """
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(sql, (str(escape(name)), str(escape(comment or "")), event_id))
            return _serialize(cur.fetchone())


def list_registrations(event_id: int) -> List[Dict[str, Any]]:
    sql = f"SELECT {REGISTRATION_COLUMNS} FROM registrations WHERE event = %s ORDER BY id ASC;"
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(sql, (event_id,))
            return [_serialize(row) for row in cur.fetchall()]


def delete_registration(registration_id: int) -> int:
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM registrations WHERE id = %s;", (registration_id,))
            return cur.rowcount
