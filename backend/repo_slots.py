"""
Repository: key-value operations for `kv_store`.

This file contains only storage interaction code. Values are opaque
strings here; serializing records is the store's job. Keep business
rules out of this module.

Important notes:
- `set` is an upsert and commits before returning; callers expect the
  write to be durable after the method returns.
- Each call opens and closes its own connection.
"""

from typing import Optional

from db import get_conn


class SlotRepo:
    """Storage access only. No business logic here.

    Responsibilities:
    - Read and overwrite a single value per key
    - Keep transaction/commit boundaries local and explicit
    """

    def get(self, key: str) -> Optional[str]:
        """Return the value stored under `key`, or None if absent."""

        conn = get_conn()
        try:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
        finally:
            conn.close()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        """Overwrite the value under `key` unconditionally."""

        conn = get_conn()
        try:
            with conn:
                conn.execute(
                    "INSERT INTO kv_store (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                    (key, value),
                )
        finally:
            conn.close()

    def ping(self) -> None:
        """Lightweight storage health check. Raises on error.

        Used by the top-level `/health` endpoint to validate that the
        storage file is reachable and the table exists.
        """

        conn = get_conn()
        try:
            conn.execute("SELECT COUNT(*) FROM kv_store").fetchone()
        finally:
            conn.close()
