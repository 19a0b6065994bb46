# Core - Central SQLite Connection Helper
#
# Every dbclient-vault SQLite database is opened through `connect()` from
# this module instead of raw `sqlite3.connect()`. Each connection gets:
#
#   - WAL journal mode (readers do not block the single writer)
#   - busy_timeout to avoid SQLITE_BUSY under contention
#   - foreign_keys enforcement
#   - secure_delete, so replaced or deleted ciphertext is zeroed on disk

import sqlite3
from pathlib import Path
from typing import Union

BUSY_TIMEOUT_MS = 5000


def connect(
    db_path: Union[str, Path],
    *,
    check_same_thread: bool = True,
    busy_timeout_ms: int = BUSY_TIMEOUT_MS,
) -> sqlite3.Connection:
    """Open a SQLite connection with WAL mode and the vault's PRAGMAs.

    Args:
        db_path: Path to the database file, or ":memory:".
        check_same_thread: Passed to sqlite3.connect().
        busy_timeout_ms: How long a writer waits on a locked database.

    Raises:
        sqlite3.Error: The file cannot be opened or configured. The
            half-opened connection is closed first.
    """
    conn = sqlite3.connect(str(db_path), check_same_thread=check_same_thread)
    try:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
        conn.execute("PRAGMA foreign_keys=ON")
        conn.execute("PRAGMA secure_delete=ON")
    except sqlite3.Error:
        conn.close()
        raise
    return conn
