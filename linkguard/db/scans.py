"""CRUD helpers for the ``scans`` table.

Each row keeps the summary counters as columns (for listing) and the full
:class:`~linkguard.scan.models.ScanResult` as a JSON payload.  Rows are
grouped by a caller-chosen ``scan_key`` (a user or account id).
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from time import time
from typing import Optional

from linkguard.db.models import StoredScan
from linkguard.scan.models import ScanResult, ScanStatistics


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_scan(row: sqlite3.Row, with_payload: bool = False) -> StoredScan:
    return StoredScan(
        id=row["id"],
        scan_key=row["scan_key"],
        target=row["target"],
        statistics=ScanStatistics(
            total_links=row["total_links"],
            working_links=row["working_links"],
            warning_links=row["warning_links"],
            broken_links=row["broken_links"],
        ),
        scanned_videos=row["scanned_videos"],
        videos_with_links=row["videos_with_links"],
        scanned_at=row["scanned_at"],
        created_at=row["created_at"],
        result=ScanResult.from_dict(json.loads(row["payload"])) if with_payload else None,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def save_scan(
    conn: sqlite3.Connection,
    scan_key: str,
    target: str,
    result: ScanResult,
) -> StoredScan:
    """Persist *result* under *scan_key* and return the stored row.

    Args:
        conn: Open DB connection.
        scan_key: Owner of the scan (user or account id).
        target: Channel identifier, or a short label for a video list.
        result: The finished scan.
    """
    scan_id = str(uuid.uuid4())
    stats = result.statistics
    with conn:
        conn.execute(
            """
            INSERT INTO scans (
                id, scan_key, target, scanned_videos, videos_with_links,
                total_links, broken_links, warning_links, working_links,
                payload, scanned_at, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                scan_id,
                scan_key,
                target,
                result.scanned_videos,
                result.videos_with_links,
                stats.total_links,
                stats.broken_links,
                stats.warning_links,
                stats.working_links,
                json.dumps(result.to_dict()),
                result.scanned_at,
                int(time()),
            ),
        )
    return get_scan(conn, scan_id)  # type: ignore[return-value]


def get_scan(conn: sqlite3.Connection, scan_id: str) -> Optional[StoredScan]:
    """Fetch one scan with its full result.  Returns ``None`` if not found."""
    row = conn.execute("SELECT * FROM scans WHERE id = ?", (scan_id,)).fetchone()
    return _row_to_scan(row, with_payload=True) if row else None


def list_scans(
    conn: sqlite3.Connection,
    scan_key: Optional[str] = None,
    limit: int = 20,
) -> list[StoredScan]:
    """Return scan summaries, newest first, optionally filtered by *scan_key*."""
    if scan_key is None:
        rows = conn.execute(
            "SELECT * FROM scans ORDER BY created_at DESC, rowid DESC LIMIT ?",
            (limit,),
        ).fetchall()
    else:
        rows = conn.execute(
            """
            SELECT * FROM scans
            WHERE  scan_key = ?
            ORDER  BY created_at DESC, rowid DESC
            LIMIT  ?
            """,
            (scan_key, limit),
        ).fetchall()
    return [_row_to_scan(r) for r in rows]


def delete_scan(conn: sqlite3.Connection, scan_id: str) -> bool:
    """Delete a scan.  Returns ``True`` if a row was removed."""
    with conn:
        cur = conn.execute("DELETE FROM scans WHERE id = ?", (scan_id,))
    return cur.rowcount > 0
