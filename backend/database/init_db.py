"""
Create (or drop and recreate) the database schema.

Run from the project root:
    python -m backend.database.init_db          # create tables
    python -m backend.database.init_db --drop   # drop, then create

If ADMIN_USER and ADMIN_PASS are set, an admin account with those
credentials is created as well (skipped if the username already exists).
"""

import argparse
import os
import sys

import psycopg2.errors

from backend.auth_service.passwords import hash_password
from backend.config import Settings
from backend.database.db_connection import Database

# Display text is stored HTML-escaped; its length limits apply to the raw
# input in the validation chain, not to the column type.
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id SERIAL PRIMARY KEY,
    username VARCHAR(256) NOT NULL UNIQUE,
    name TEXT NOT NULL,
    password VARCHAR(256) NOT NULL,
    admin BOOLEAN NOT NULL DEFAULT FALSE
);

CREATE TABLE IF NOT EXISTS events (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    slug TEXT NOT NULL UNIQUE,
    description TEXT DEFAULT '',
    created TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS registrations (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    comment TEXT DEFAULT '',
    event INTEGER NOT NULL REFERENCES events (id) ON DELETE CASCADE,
    created TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

DROP_SQL = """
DROP TABLE IF EXISTS registrations;
DROP TABLE IF EXISTS events;
DROP TABLE IF EXISTS users;
"""


def create_schema(conn) -> None:
    with conn:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)


def drop_schema(conn) -> None:
    with conn:
        with conn.cursor() as cur:
            cur.execute(DROP_SQL)


def create_admin(conn, username: str, password: str, rounds: int) -> bool:
    """
    Insert an admin user.

    Returns:
        bool: False if the username was already taken.
    """
    try:
        with conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO users (username, name, password, admin)
                    VALUES (%s, %s, %s, TRUE);
                    """,
                    (username, username, hash_password(password, rounds)),
                )
    except psycopg2.errors.UniqueViolation:
        return False
    return True


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create the events database schema.")
    parser.add_argument("--drop", action="store_true", help="drop existing tables first")
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    database = Database(
        settings.database_url,
        sslmode="require" if settings.is_production else None,
    ).open()

    try:
        with database.connection() as conn:
            if args.drop:
                drop_schema(conn)
                print("Dropped existing tables.")

            create_schema(conn)
            print("Schema created.")

            admin_user = os.getenv("ADMIN_USER")
            admin_pass = os.getenv("ADMIN_PASS")
            if admin_user and admin_pass:
                if create_admin(conn, admin_user, admin_pass, settings.password_hash_rounds):
                    print(f"Admin user '{admin_user}' created.")
                else:
                    print(f"Admin user '{admin_user}' already exists, skipped.")
    except Exception as e:
        print(f"Schema setup FAILED: {e}")
        return 1
    finally:
        database.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
