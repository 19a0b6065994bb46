# Commands - connection profile operations for the desktop client
#
# The application owns exactly one ConnectionStore, wrapped in AppState with
# a single exclusive lock held for the full duration of every call. Command
# functions receive the AppState explicitly; there is no module-level store.
#
# Failures are reported as CommandError carrying one human-readable message
# per failure kind (storage / encryption / serialization / key derivation).

import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from .config import VaultSettings
from .core import EventSeverity, EventType, configure_audit_logger, get_audit_logger
from .vault import (
    ConnectionProfile,
    ConnectionStore,
    KeyStrategy,
    VaultError,
    describe_error,
)
from .vault.keys import resolve_key

logger = logging.getLogger(__name__)


class CommandError(Exception):
    """A failed command, with the message shown to the user."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


@dataclass
class AppState:
    """The application's single store instance and the lock that serializes it."""

    store: ConnectionStore
    lock: threading.Lock = field(default_factory=threading.Lock)

    @classmethod
    def open(cls, settings: VaultSettings) -> "AppState":
        """
        Open the store described by settings and check its key.

        Raises:
            CommandError: Key cannot be obtained, wrong password, or storage failure
        """
        if settings.audit_dir is not None:
            configure_audit_logger(settings.audit_dir)

        try:
            if settings.key_strategy == KeyStrategy.PASSWORD:
                if not settings.password:
                    raise CommandError("A vault password is required for the password key strategy")
                store = ConnectionStore.open_with_password(settings.db_path, settings.password)
            else:
                key = resolve_key(
                    settings.key_strategy,
                    passphrase=settings.passphrase,
                    key_file=settings.key_file,
                )
                store = ConnectionStore(settings.db_path, key)
                try:
                    store.verify_key()
                except VaultError:
                    store.close()
                    raise
        except VaultError as e:
            raise CommandError(describe_error(e), e) from e

        get_audit_logger().log_event(
            event_type=EventType.SYSTEM_START,
            severity=EventSeverity.INFO,
            message="Connection vault ready",
            details={"key_strategy": settings.key_strategy.value}
        )
        return cls(store=store)

    def close(self) -> None:
        with self.lock:
            if self.store.closed:
                return
            self.store.close()
        get_audit_logger().log_event(
            event_type=EventType.SYSTEM_STOP,
            severity=EventSeverity.INFO,
            message="Connection vault closed"
        )


def _run(state: AppState, operation: str, func, *args):
    with state.lock:
        try:
            return func(*args)
        except VaultError as e:
            logger.warning("%s failed: %s", operation, e)
            raise CommandError(describe_error(e), e) from e


def save_connection(state: AppState, profile: ConnectionProfile) -> None:
    """Insert or replace a profile."""
    _run(state, "save_connection", state.store.save, profile)


def load_connection(state: AppState, profile_id: str) -> Optional[ConnectionProfile]:
    """Load a profile; None when the id is unknown."""
    return _run(state, "load_connection", state.store.load, profile_id)


def list_connections(state: AppState) -> List[ConnectionProfile]:
    """All profiles, name ascending."""
    return _run(state, "list_connections", state.store.list_profiles)


def delete_connection(state: AppState, profile_id: str) -> None:
    """Delete a profile; unknown ids succeed silently."""
    _run(state, "delete_connection", state.store.delete, profile_id)


def check_connection_fields(profile: ConnectionProfile) -> str:
    """
    Validate the fields needed to connect.

    Only checks the profile; opening a database session is left to the
    query adapter.
    """
    if not profile.host:
        raise CommandError("Host is required")
    if not profile.username:
        raise CommandError("Username is required")
    return f"Connection test successful to {profile.username}@{profile.host}:{profile.port}"
