# Core - Audit Logging
#
# Structured, append-only audit trail for connection vault activity.
# Every store operation (save, load, delete, open) and every key decision is
# written as one JSON line with an event ID. Secrets never reach the trail:
# callers pass profile IDs and counts, and a processor scrubs any detail
# whose name looks like a credential.

import getpass
import logging
import os
import socket
import sys
from datetime import date, datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, MutableMapping, Optional
from uuid import uuid4

import structlog

AUDIT_LOGGER_NAME = "dbclient_vault.audit"
AUDIT_DIR_ENV = "DBCLIENT_VAULT_AUDIT_DIR"
DEFAULT_AUDIT_DIR = Path("./audit_logs")

# Detail keys that are never written, whatever the caller passes
_SENSITIVE_KEYS = frozenset({"password", "passphrase", "secret", "key", "encryption_key"})
_SCRUBBED = "[scrubbed]"


class EventType(str, Enum):
    """Vault events recorded in the audit trail."""

    # Store lifecycle
    STORE_OPENED = "store.opened"
    STORE_CLOSED = "store.closed"
    STORE_SCHEMA_CREATED = "store.schema.created"
    STORE_ERROR = "store.error"

    # Profile operations
    PROFILE_SAVED = "profile.saved"
    PROFILE_LOADED = "profile.loaded"
    PROFILE_LISTED = "profile.listed"
    PROFILE_DELETED = "profile.deleted"

    # Key material
    KEY_GENERATED = "key.generated"
    KEY_DERIVED = "key.derived"
    KEY_PLACEHOLDER_USED = "key.placeholder_used"
    KEY_VERIFY_FAILED = "key.verify.failed"

    # Application
    SYSTEM_START = "system.start"
    SYSTEM_STOP = "system.stop"


class EventSeverity(str, Enum):
    """
    How much attention an event deserves.

    - INFO: Normal activity
    - WARNING: Weakened key posture (e.g. placeholder key)
    - ALERT: Failed key verification
    - CRITICAL: Storage failure
    """
    INFO = "info"
    WARNING = "warning"
    ALERT = "alert"
    CRITICAL = "critical"


# Stdlib level each severity is emitted at
_LEVELS = {
    EventSeverity.INFO: logging.INFO,
    EventSeverity.WARNING: logging.WARNING,
    EventSeverity.ALERT: logging.ERROR,
    EventSeverity.CRITICAL: logging.CRITICAL,
}


def scrub_sensitive_details(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor: mask credential-looking entries in ``details``."""
    details = event_dict.get("details")
    if isinstance(details, dict):
        event_dict["details"] = {
            k: (_SCRUBBED if k.lower() in _SENSITIVE_KEYS else v)
            for k, v in details.items()
        }
    return event_dict


_structlog_configured = False


def _configure_structlog() -> None:
    global _structlog_configured
    if _structlog_configured:
        return
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            scrub_sensitive_details,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _structlog_configured = True


class AuditLogger:
    """
    Writes vault events to ``<log_dir>/audit_<YYYY-MM-DD>.log``.

    The file is picked when the logger is created; a long-running process
    keeps appending to that day's file.
    """

    def __init__(self, log_dir: Optional[Path] = None):
        self.log_dir = Path(log_dir) if log_dir else DEFAULT_AUDIT_DIR
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = self.log_dir / f"audit_{date.today().isoformat()}.log"

        _configure_structlog()

        self._handler = logging.FileHandler(self.log_file, mode="a", encoding="utf-8")
        self._handler.setLevel(logging.INFO)
        # structlog renders the JSON; the handler writes it as is
        self._handler.setFormatter(logging.Formatter("%(message)s"))

        stdlib_logger = logging.getLogger(AUDIT_LOGGER_NAME)
        stdlib_logger.addHandler(self._handler)
        stdlib_logger.setLevel(logging.INFO)

        self.logger = structlog.get_logger(AUDIT_LOGGER_NAME)
        self._host = self._host_context()

    def close(self) -> None:
        """Detach and close this logger's file handler."""
        logging.getLogger(AUDIT_LOGGER_NAME).removeHandler(self._handler)
        self._handler.close()

    def log_event(
        self,
        event_type: EventType,
        severity: EventSeverity,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        user_context: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Record one vault event.

        Args:
            event_type: What happened
            severity: INFO/WARNING/ALERT/CRITICAL, mapped to a stdlib level
            message: Human-readable description (no secrets)
            details: IDs, counts, paths
            user_context: Defaults to OS user, hostname and platform

        Returns:
            The event's UUID
        """
        event_id = str(uuid4())
        self.logger.log(
            _LEVELS[severity],
            "vault_event",
            event_id=event_id,
            event_type=event_type.value,
            severity=severity.value,
            message=message,
            timestamp=datetime.now(timezone.utc).isoformat(),
            details=dict(details) if details else {},
            user_context=user_context or self._host,
        )
        return event_id

    @staticmethod
    def _host_context() -> Dict[str, Any]:
        try:
            os_user = getpass.getuser()
        except (KeyError, OSError):
            os_user = None
        return {
            "os_user": os_user,
            "hostname": socket.gethostname(),
            "platform": sys.platform,
        }


_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Process-wide audit logger, created on first use.

    The directory comes from DBCLIENT_VAULT_AUDIT_DIR, else ./audit_logs.
    """
    global _audit_logger
    if _audit_logger is None:
        log_dir = os.environ.get(AUDIT_DIR_ENV)
        _audit_logger = AuditLogger(Path(log_dir) if log_dir else None)
    return _audit_logger


def configure_audit_logger(log_dir: Optional[Path] = None) -> AuditLogger:
    """Close the current audit logger and start a new one in log_dir."""
    global _audit_logger
    if _audit_logger is not None:
        _audit_logger.close()
    _audit_logger = AuditLogger(log_dir)
    return _audit_logger


def log_vault_event(
    event_type: EventType,
    severity: EventSeverity,
    message: str,
    **kwargs
) -> str:
    """
    Shortcut for ``get_audit_logger().log_event(...)``.

    Usage:
        log_vault_event(
            EventType.PROFILE_DELETED,
            EventSeverity.INFO,
            "Connection profile deleted",
            details={"profile_id": "c1"}
        )
    """
    return get_audit_logger().log_event(event_type, severity, message, **kwargs)
