"""
Event persistence.
"""

import hashlib
import re
import unicodedata
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import psycopg2.errors
from markupsafe import escape

from backend.database.db_connection import conditional_update, get_db

EVENT_COLUMNS = "id, name, slug, description, created, updated"


class SlugTaken(Exception):
    """Another event already uses this slug."""


def slugify(text: str) -> str:
    """
    URL-safe slug derived from an event name.

    "Forritarahittingur í febrúar" -> "forritarahittingur-i-februar"

    Names with no ASCII letters or digits get "event-" plus a short digest of
    the name, so the slug is never empty and stays stable for the same name.
    """
    normalized = unicodedata.normalize("NFKD", text)
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii").lower()
    ascii_text = re.sub(r"[^a-z0-9\s_-]", "", ascii_text)
    slug = re.sub(r"[\s_-]+", "-", ascii_text).strip("-")
    if not slug:
        slug = "event-" + hashlib.sha1(text.encode("utf-8")).hexdigest()[:8]
    return slug


def serialize(row: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Row as JSON-safe dict, timestamps as ISO strings."""
    if row is None:
        return None
    event = dict(row)
    for key in ("created", "updated"):
        if isinstance(event.get(key), datetime):
            event[key] = event[key].isoformat()
    return event


def list_events(offset: int = 0, limit: int = 50) -> List[Dict[str, Any]]:
    sql = f"SELECT {EVENT_COLUMNS} FROM events ORDER BY id ASC OFFSET %s LIMIT %s;"
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(sql, (offset, limit))
            return [serialize(row) for row in cur.fetchall()]


def find_event(event_id: int) -> Optional[Dict[str, Any]]:
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(f"SELECT {EVENT_COLUMNS} FROM events WHERE id = %s;", (event_id,))
            row = cur.fetchone()
    return serialize(row) if row else None


def find_event_by_slug(slug: str) -> Optional[Dict[str, Any]]:
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(f"SELECT {EVENT_COLUMNS} FROM events WHERE slug = %s;", (slug,))
            row = cur.fetchone()
    return serialize(row) if row else None


def create_event(name: str, description: Optional[str] = None) -> Dict[str, Any]:
    """
    Insert an event; the slug is derived from the name.

    Raises:
        SlugTaken: If the slug is already in use.
    """
    sql = f"""
        INSERT INTO events (name, slug, description)
        VALUES (%s, %s, %s)
        RETURNING {EVENT_COLUMNS};
    """
    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (str(escape(name)), slugify(name), str(escape(description or ""))))
                row = cur.fetchone()
    except psycopg2.errors.UniqueViolation as e:
        raise SlugTaken(slugify(name)) from e

    return serialize(row)


def update_event(
    event_id: int,
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> Union[bool, Optional[Dict[str, Any]]]:
    """
    Patch name and/or description. A new name also moves the slug.

    Returns:
        False when no string field was given (nothing written), the updated
        event, or None if it does not exist.

    Raises:
        SlugTaken: If the new name's slug belongs to another event.
    """
    has_name = isinstance(name, str)
    has_description = isinstance(description, str)

    if not has_name and not has_description:
        return False

    fields = [
        "name" if has_name else None,
        "slug" if has_name else None,
        "description" if has_description else None,
        "updated",
    ]
    values = [
        str(escape(name)) if has_name else None,
        slugify(name) if has_name else None,
        str(escape(description)) if has_description else None,
        datetime.now(timezone.utc),
    ]

    try:
        row = conditional_update("events", event_id, fields, values)
    except psycopg2.errors.UniqueViolation as e:
        raise SlugTaken(slugify(name)) from e

    return serialize(row)


def delete_event(event_id: int) -> int:
    """Number of rows deleted (0 or 1)."""
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM events WHERE id = %s;", (event_id,))
            return cur.rowcount
