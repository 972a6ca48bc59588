"""Database initialisation.

``init_db(conn)`` is idempotent and safe to call on an existing database.
"""

from __future__ import annotations

import sqlite3

from linkguard.config import settings


def init_db(conn: sqlite3.Connection) -> None:
    """Create the scan tables from ``schema.sql``.

    Args:
        conn: An open SQLite connection.
    """
    # executescript() issues an implicit COMMIT first; fine for DDL only.
    conn.executescript(settings.schema_path.read_text(encoding="utf-8"))
