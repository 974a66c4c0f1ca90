"""
Database connection management.

Provides the SQLite connection used by the document store.
"""

import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = "lien_ledger.db"

# Seconds to wait for another CLI process holding the write lock
BUSY_TIMEOUT = 5.0


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Open a SQLite connection, creating the parent directory if needed.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLite connection with foreign keys enabled and a busy timeout
    """
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path), timeout=BUSY_TIMEOUT)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn
