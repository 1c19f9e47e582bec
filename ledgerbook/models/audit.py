"""
Audit Models for Ledgerbook

Every write to the books is logged for audit purposes:
1. Complete traceability of ledger, voucher and reconciliation changes
2. Old and new values kept side by side
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. Events are keyed by a
monotonic id assigned by the audit store. They are never modified or deleted.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ledgerbook.models.accounts import utc_now


class AuditOperation(str, Enum):
    """What happened to the entity."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    LOGIN = "login"
    LOGOUT = "logout"
    IMPORT = "import"
    MATCH_PROPOSED = "match_proposed"
    MATCH_CONFIRMED = "match_confirmed"
    MATCH_REJECTED = "match_rejected"
    ERROR = "error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Frozen: once built, an event cannot be changed.
    """
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = Field(
        default=None,
        description="Monotonic id assigned when appended to the log"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    entity_type: str = Field(
        ...,
        description="Type of entity (e.g., 'ledger', 'voucher', 'bank_statement')"
    )
    entity_id: Optional[int] = None
    operation: AuditOperation
    severity: AuditSeverity = AuditSeverity.INFO

    user_id: Optional[str] = None
    user_name: Optional[str] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one statement import)"
    )

    description: str = Field(
        default="",
        max_length=500
    )
    changes: Optional[dict[str, Any]] = None
    old_values: Optional[dict[str, Any]] = None
    new_values: Optional[dict[str, Any]] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "audit_id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "operation": self.operation.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "changes": self.changes,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.operation("voucher", 12, AuditOperation.CREATE, ...)
        event = AuditEventBuilder.match_confirmed(statement_id, voucher_id)
    """

    @staticmethod
    def operation(
        entity_type: str,
        entity_id: Optional[int],
        operation: AuditOperation,
        changes: Optional[dict] = None,
        old_values: Optional[dict] = None,
        new_values: Optional[dict] = None,
        user_id: Optional[str] = None,
        user_name: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            entity_type=entity_type,
            entity_id=entity_id,
            operation=operation,
            description=f"{entity_type} {entity_id} {operation.value}",
            changes=changes,
            old_values=old_values,
            new_values=new_values,
            user_id=user_id,
            user_name=user_name,
            correlation_id=correlation_id,
        )

    @staticmethod
    def statements_imported(
        ledger_id: Optional[int],
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            entity_type="bank_statement",
            entity_id=ledger_id,
            operation=AuditOperation.IMPORT,
            description=f"Imported {count} statement lines",
            changes={"ledger_id": ledger_id, "count": count},
            correlation_id=correlation_id,
        )

    @staticmethod
    def match_proposed(
        statement_id: int,
        voucher_id: int,
        accuracy: float,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            entity_type="bank_statement",
            entity_id=statement_id,
            operation=AuditOperation.MATCH_PROPOSED,
            description=f"Voucher {voucher_id} proposed with {accuracy:.0f}% accuracy",
            changes={"voucher_id": voucher_id, "accuracy": accuracy},
            correlation_id=correlation_id,
        )

    @staticmethod
    def match_confirmed(
        statement_id: int,
        voucher_id: int,
        user_id: Optional[str] = None,
        user_name: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            entity_type="bank_statement",
            entity_id=statement_id,
            operation=AuditOperation.MATCH_CONFIRMED,
            description=f"Statement line matched to voucher {voucher_id}",
            changes={"matched_voucher_id": voucher_id},
            user_id=user_id,
            user_name=user_name,
        )

    @staticmethod
    def match_rejected(
        statement_id: int,
        previous_voucher_id: Optional[int],
        user_id: Optional[str] = None,
        user_name: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            entity_type="bank_statement",
            entity_id=statement_id,
            operation=AuditOperation.MATCH_REJECTED,
            severity=AuditSeverity.INFO,
            description="Proposed match rejected",
            changes={"previous_voucher_id": previous_voucher_id},
            user_id=user_id,
            user_name=user_name,
        )

    @staticmethod
    def system_error(
        error_kind: str,
        error_message: str,
        entity_type: str = "system",
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            entity_type=entity_type,
            operation=AuditOperation.ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_kind}",
            error_message=error_message,
            changes=details or {},
            correlation_id=correlation_id,
        )
