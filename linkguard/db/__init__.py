"""Database layer package.

Public re-exports so callers can write::

    from linkguard.db import get_connection, init_db
    from linkguard.db import scans
"""

from linkguard.db.connection import get_connection
from linkguard.db.schema import init_db
from linkguard.db import scans

__all__ = ["get_connection", "init_db", "scans"]
