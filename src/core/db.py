"""
SQLite foundation for work items, metadata, identities and role assignments.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from . import config
from .errors import StoreError

REQUIRED_TABLES = [
    'persons', 'groups', 'group_members', 'work_items',
    'metadata', 'role_assignments', 'workflow_events'
]


@contextmanager
def get_db() -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection; sqlite errors surface as StoreError."""
    try:
        conn = sqlite3.connect(config.DB_PATH)
    except sqlite3.Error as e:
        raise StoreError(f"Cannot open database {config.DB_PATH}: {e}") from e
    try:
        conn.execute("PRAGMA foreign_keys = ON")
        yield conn
    except sqlite3.Error as e:
        conn.rollback()
        raise StoreError(str(e)) from e
    finally:
        conn.close()


def init_db():
    """Initialize the database with required tables."""
    Path(config.DB_PATH).parent.mkdir(parents=True, exist_ok=True)

    with get_db() as conn:
        cursor = conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS persons (
                id TEXT PRIMARY KEY,
                email TEXT NOT NULL,
                name TEXT
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS groups (
                id TEXT PRIMARY KEY,
                name TEXT UNIQUE,
                permanent BOOLEAN DEFAULT FALSE
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS group_members (
                group_id TEXT NOT NULL REFERENCES groups(id) ON DELETE CASCADE,
                person_id TEXT NOT NULL REFERENCES persons(id) ON DELETE CASCADE,
                PRIMARY KEY (group_id, person_id)
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS work_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                submitter_id TEXT REFERENCES persons(id),
                step_id TEXT NOT NULL,
                active BOOLEAN DEFAULT TRUE,
                last_modified TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        # place keeps insertion order per item
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS metadata (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                item_id INTEGER NOT NULL REFERENCES work_items(id) ON DELETE CASCADE,
                schema_name TEXT NOT NULL,
                element TEXT NOT NULL,
                qualifier TEXT,
                language TEXT,
                value TEXT,
                authority TEXT,
                place INTEGER NOT NULL
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS role_assignments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                item_id INTEGER NOT NULL REFERENCES work_items(id) ON DELETE CASCADE,
                role_id TEXT NOT NULL,
                person_id TEXT REFERENCES persons(id),
                group_id TEXT REFERENCES groups(id),
                UNIQUE (item_id, role_id)
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS workflow_events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                item_id INTEGER NOT NULL,
                ts TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                actor TEXT,
                action TEXT,
                payload TEXT
            )
        ''')

        cursor.execute('CREATE INDEX IF NOT EXISTS idx_metadata_item_field ON metadata(item_id, schema_name, element)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_work_items_submitter ON work_items(submitter_id, active)')

        conn.commit()


def health_check():
    """Check database health."""
    try:
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
            table_names = [row[0] for row in cursor.fetchall()]
            return all(table in table_names for table in REQUIRED_TABLES)
    except StoreError:
        return False
