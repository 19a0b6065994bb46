# Vault - Connection Store
#
# SQLite table of connection profiles with AES-256-GCM encrypted secrets.
# save / load / list / delete, schema created lazily on first use.
# Key check via an encrypted canary in vault_meta.

import json
import logging
import sqlite3
from contextlib import closing, contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Union

from ..core import EventSeverity, EventType, connect, get_audit_logger
from .codec import COLUMNS, ConnectionRow, RecordCodec
from .encryption import CipherBox
from .exceptions import DecryptionError, EncryptionError, KeyDerivationError, StorageError
from .keys import (
    ARGON2_MEMORY_COST,
    ARGON2_PARALLELISM,
    ARGON2_TIME_COST,
    KEY_LENGTH,
    derive_key_from_password,
    generate_salt,
)
from .models import ConnectionProfile

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"

_CREATE_CONNECTIONS = """
    CREATE TABLE IF NOT EXISTS connections (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        color TEXT NOT NULL,
        db_type TEXT NOT NULL,
        host TEXT NOT NULL,
        port INTEGER NOT NULL,
        username TEXT NOT NULL,
        password TEXT NOT NULL,
        database TEXT,
        ssh_config TEXT,
        ssl_config TEXT,
        created_at INTEGER DEFAULT (strftime('%s', 'now'))
    )
"""

_CREATE_META = """
    CREATE TABLE IF NOT EXISTS vault_meta (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    )
"""

# "database" is an SQL keyword, so identifiers are quoted
_SELECT_COLUMNS = ", ".join(f'"{col}"' for col in COLUMNS)

# created_at is left out of the update so it keeps its first-insert value
_UPSERT = (
    f"INSERT INTO connections ({_SELECT_COLUMNS}) "
    f"VALUES ({', '.join('?' for _ in COLUMNS)}) "
    "ON CONFLICT(id) DO UPDATE SET "
    + ", ".join(f'"{col}" = excluded."{col}"' for col in COLUMNS if col != "id")
)

META_SALT = "kdf_salt"
META_KDF = "kdf_params"
META_CANARY = "verify_canary"


class ConnectionStore:
    """
    Encrypted store of connection profiles.

    Security:
    - Each secret encrypted with AES-256-GCM under the active key, fresh nonce per save
    - The key is never stored; only the password-derivation salt is
    - Every operation re-reads or re-writes SQLite, nothing is cached

    The store does no locking of its own. The owning application serializes
    calls (see commands.AppState).

    Args:
        db_path: Path to the SQLite file, or ":memory:"
        encryption_key: Active 256-bit key for the lifetime of this instance
    """

    CANARY_PLAINTEXT = "DBCLIENT_VAULT_OK"

    def __init__(self, db_path: Union[str, Path], encryption_key: bytes):
        if len(encryption_key) != KEY_LENGTH:
            raise EncryptionError(
                f"Invalid key length: expected {KEY_LENGTH} bytes, got {len(encryption_key)}"
            )

        self.db_path = db_path if str(db_path) == MEMORY_DB else Path(db_path)
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._codec = RecordCodec(encryption_key)
        self._key = encryption_key
        self._schema_ready = False
        self.logger = get_audit_logger()

        try:
            self._conn: Optional[sqlite3.Connection] = connect(
                self.db_path, check_same_thread=False
            )
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open {self.db_path}: {e}") from e

        self.logger.log_event(
            event_type=EventType.STORE_OPENED,
            severity=EventSeverity.INFO,
            message="Connection store opened",
            details={"db_path": str(self.db_path)}
        )

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def open_with_password(cls, db_path: Union[str, Path], password: str) -> "ConnectionStore":
        """
        Open a store whose key is derived from a password (Argon2id).

        The salt and Argon2 parameters live in vault_meta; they are generated
        on first use. The derived key is checked against the stored canary
        before the store is returned.

        Raises:
            DecryptionError: Incorrect password
            KeyDerivationError: Stored salt unusable
            StorageError: SQLite failure
        """
        if str(db_path) == MEMORY_DB:
            raise StorageError("Password-derived stores need a database file")

        db_path = Path(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with closing(connect(db_path)) as conn:
                with conn:
                    conn.execute(_CREATE_META)
                    salt_b64 = CipherBox.encode_for_storage(generate_salt())
                    params = json.dumps({
                        "algorithm": "argon2id",
                        "time_cost": ARGON2_TIME_COST,
                        "memory_cost": ARGON2_MEMORY_COST,
                        "parallelism": ARGON2_PARALLELISM,
                    }, sort_keys=True)
                    # First writer wins; later opens read back the existing values
                    conn.execute(
                        "INSERT OR IGNORE INTO vault_meta (key, value) VALUES (?, ?)",
                        (META_SALT, salt_b64)
                    )
                    conn.execute(
                        "INSERT OR IGNORE INTO vault_meta (key, value) VALUES (?, ?)",
                        (META_KDF, params)
                    )
                stored_salt = conn.execute(
                    "SELECT value FROM vault_meta WHERE key = ?", (META_SALT,)
                ).fetchone()[0]
                stored_params = conn.execute(
                    "SELECT value FROM vault_meta WHERE key = ?", (META_KDF,)
                ).fetchone()[0]
        except sqlite3.Error as e:
            raise StorageError(f"Cannot read vault metadata: {e}") from e

        try:
            stored_params = json.loads(stored_params)
            salt = CipherBox.decode_from_storage(stored_salt)
            kdf_options = {
                "time_cost": int(stored_params["time_cost"]),
                "memory_cost": int(stored_params["memory_cost"]),
                "parallelism": int(stored_params["parallelism"]),
            }
        except (ValueError, KeyError, TypeError, DecryptionError) as e:
            raise KeyDerivationError(f"Corrupted key derivation metadata: {e}") from e

        key = derive_key_from_password(password, salt, **kdf_options)
        get_audit_logger().log_event(
            event_type=EventType.KEY_DERIVED,
            severity=EventSeverity.INFO,
            message="Vault key derived from password",
            details={"db_path": str(db_path), "kdf": stored_params.get("algorithm")}
        )

        store = cls(db_path, key)
        try:
            store.verify_key()
        except Exception:
            store.close()
            raise
        return store

    def verify_key(self) -> None:
        """
        Check the active key against the encrypted canary in vault_meta.

        On first use the canary is written with the active key, after the key
        has opened a stored secret if the vault already holds profiles.
        Afterwards a different key fails here instead of on the first
        profile load.

        Raises:
            DecryptionError: The active key is not the vault's key
        """
        self._ensure_schema()
        stored = self._get_meta(META_CANARY)
        if stored is None:
            # Vaults written without a canary: the key must open an existing
            # secret before it is recorded as the vault's key
            with self._storage("read a stored secret") as conn:
                row = conn.execute("SELECT password FROM connections LIMIT 1").fetchone()
            if row is not None and not self._opens(row[0]):
                self._reject_key()
            self._set_meta(META_CANARY, CipherBox.seal(self.CANARY_PLAINTEXT, self._key))
            return

        if not self._opens(stored, self.CANARY_PLAINTEXT):
            self._reject_key()

    def _opens(self, sealed: str, expected: Optional[str] = None) -> bool:
        try:
            plaintext = CipherBox.open(sealed, self._key)
        except DecryptionError:
            return False
        return expected is None or plaintext == expected

    def _reject_key(self) -> None:
        self.logger.log_event(
            event_type=EventType.KEY_VERIFY_FAILED,
            severity=EventSeverity.ALERT,
            message="Vault key verification failed: incorrect password or key",
            details={"db_path": str(self.db_path)}
        )
        raise DecryptionError("Incorrect vault password or key")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._conn is None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError("Connection store is closed")
        return self._conn

    @contextmanager
    def _storage(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Run one transaction; sqlite3 errors surface as StorageError."""
        conn = self.conn
        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            self.logger.log_event(
                event_type=EventType.STORE_ERROR,
                severity=EventSeverity.CRITICAL,
                message=f"Failed to {operation}: {e}"
            )
            raise StorageError(f"Failed to {operation}: {e}") from e

    def _ensure_schema(self) -> None:
        """Create tables if absent (never destructive). Runs once per instance."""
        if self._schema_ready:
            return
        existed = self.is_initialized()
        with self._storage("initialize schema") as conn:
            conn.execute(_CREATE_CONNECTIONS)
            conn.execute(_CREATE_META)
        self._schema_ready = True
        if not existed:
            self.logger.log_event(
                event_type=EventType.STORE_SCHEMA_CREATED,
                severity=EventSeverity.INFO,
                message="Connection store schema created",
                details={"db_path": str(self.db_path)}
            )

    def _get_meta(self, key: str) -> Optional[str]:
        with self._storage("read vault metadata") as conn:
            row = conn.execute(
                "SELECT value FROM vault_meta WHERE key = ?", (key,)
            ).fetchone()
        return row[0] if row else None

    def _set_meta(self, key: str, value: str) -> None:
        with self._storage("write vault metadata") as conn:
            conn.execute(
                "INSERT OR REPLACE INTO vault_meta (key, value) VALUES (?, ?)",
                (key, value)
            )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def is_initialized(self) -> bool:
        """True once the connections table exists."""
        try:
            row = self.conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'connections'"
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to inspect schema: {e}") from e
        return row is not None

    def save(self, profile: ConnectionProfile) -> None:
        """
        Insert or fully replace the profile with the same id.

        The secret is encrypted with a fresh nonce on every save. Encoding
        happens before the write, so a failure never leaves a partial row.

        Raises:
            EncryptionError, SerializationError, StorageError
        """
        self._ensure_schema()
        row = self._codec.encode(profile)

        with self._storage("save connection") as conn:
            conn.execute(_UPSERT, row.as_params())

        self.logger.log_event(
            event_type=EventType.PROFILE_SAVED,
            severity=EventSeverity.INFO,
            message=f"Connection profile saved: {profile.name}",
            details={"profile_id": profile.id, "db_type": row.db_type}
        )

    def load(self, profile_id: str) -> Optional[ConnectionProfile]:
        """
        Load and decrypt a profile by id.

        Returns:
            The profile, or None if no row has this id

        Raises:
            DecryptionError: Wrong key or tampered secret
            SerializationError: Unknown database type or malformed nested config
        """
        self._ensure_schema()
        with self._storage("load connection") as conn:
            row = conn.execute(
                f"SELECT {_SELECT_COLUMNS} FROM connections WHERE id = ?",
                (profile_id,)
            ).fetchone()

        if row is None:
            return None

        profile = self._codec.decode(ConnectionRow.from_db_row(row))

        self.logger.log_event(
            event_type=EventType.PROFILE_LOADED,
            severity=EventSeverity.INFO,
            message=f"Connection profile accessed: {profile.name}",
            details={"profile_id": profile_id}
        )
        return profile

    def list_profiles(self) -> List[ConnectionProfile]:
        """
        All profiles ordered by name.

        Ties on name are ordered by insertion time, then id. A single row
        that fails to decode aborts the whole listing.
        """
        self._ensure_schema()
        with self._storage("list connections") as conn:
            rows = conn.execute(
                f"SELECT {_SELECT_COLUMNS} FROM connections ORDER BY name, created_at, id"
            ).fetchall()

        profiles = [self._codec.decode(ConnectionRow.from_db_row(row)) for row in rows]

        self.logger.log_event(
            event_type=EventType.PROFILE_LISTED,
            severity=EventSeverity.INFO,
            message="Connection profiles listed",
            details={"count": len(profiles)}
        )
        return profiles

    def delete(self, profile_id: str) -> None:
        """Delete a profile; deleting an unknown id is a no-op."""
        self._ensure_schema()
        with self._storage("delete connection") as conn:
            cursor = conn.execute("DELETE FROM connections WHERE id = ?", (profile_id,))

        if cursor.rowcount:
            self.logger.log_event(
                event_type=EventType.PROFILE_DELETED,
                severity=EventSeverity.INFO,
                message="Connection profile deleted",
                details={"profile_id": profile_id}
            )
        else:
            logger.debug("Delete of unknown profile id %s ignored", profile_id)

    def count(self) -> int:
        self._ensure_schema()
        with self._storage("count connections") as conn:
            return conn.execute("SELECT COUNT(*) FROM connections").fetchone()[0]

    def created_at(self, profile_id: str) -> Optional[int]:
        """Engine-assigned insertion time (epoch seconds) of a profile."""
        self._ensure_schema()
        with self._storage("read created_at") as conn:
            row = conn.execute(
                "SELECT created_at FROM connections WHERE id = ?", (profile_id,)
            ).fetchone()
        return row[0] if row else None

    def close(self) -> None:
        """Close the SQLite handle. Further calls raise StorageError."""
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        self.logger.log_event(
            event_type=EventType.STORE_CLOSED,
            severity=EventSeverity.INFO,
            message="Connection store closed"
        )

    def __enter__(self) -> "ConnectionStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
