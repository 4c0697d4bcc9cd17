"""
Storage connection helper.

This module centralizes how connections to the local storage file are
created. `get_conn()` opens a new SQLite connection per call against
`settings.storage_path`.

Usage:
    from db import get_conn
    conn = get_conn()
    try:
        with conn:  # commits on success, rolls back on error
            conn.execute("SELECT 1;")
    finally:
        conn.close()

Note: the key-value table is the only schema. `ensure_schema()` is safe to
call on every startup.
"""

import os
import sqlite3

from settings import settings

DDL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""


def get_conn() -> sqlite3.Connection:
    """Return a new sqlite3 connection using `settings.storage_path`.

    A short busy `timeout` keeps a second process holding the write lock
    from blocking a request for long.
    """

    return sqlite3.connect(settings.storage_path, timeout=5)


def ensure_schema() -> None:
    """Create the storage directory and the `kv_store` table if missing."""

    directory = os.path.dirname(settings.storage_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    conn = get_conn()
    try:
        with conn:
            conn.execute(DDL)
    finally:
        conn.close()
