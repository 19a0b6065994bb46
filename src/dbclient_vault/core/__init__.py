# Core Module - Shared Utilities
#
# Core module provides shared functionality across the vault:
# - Audit logging
# - SQLite connection helper

from .audit_log import (
    AuditLogger,
    configure_audit_logger,
    EventSeverity,
    EventType,
    get_audit_logger,
    log_vault_event,
)
from .db import connect

__all__ = [
    # Audit Logging
    "AuditLogger",
    "configure_audit_logger",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
    "log_vault_event",
    # SQLite
    "connect",
]
