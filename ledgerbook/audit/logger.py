"""
Audit Logger

DESIGN DECISION: Every write to the books is logged.
This provides:
1. Complete traceability of who changed what
2. Debugging capability
3. A history the user can browse

The audit logger:
- Is async so stores can await it after releasing their lock
- Gracefully handles failures (a failed audit write never fails the operation)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from ledgerbook.config import get_settings
from ledgerbook.models.audit import AuditEvent, AuditEventBuilder, AuditOperation
from ledgerbook.services.storage.interface import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit store (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
        user_id: Optional[str] = None,
        user_name: Optional[str] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
            user_id: Recorded on every operation. Defaults to settings.
            user_name: Recorded on every operation. Defaults to settings.
        """
        settings = get_settings().app
        self._storage = storage
        self._logger = structlog.get_logger("ledgerbook.audit")
        self.user_id = user_id or settings.audit_user_id
        self.user_name = user_name or settings.audit_user_name

    async def log(self, event: AuditEvent) -> Optional[AuditEvent]:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns the stored event (with its id), the event itself when
        no storage is configured, or None if the storage write failed.
        """
        if event.user_id is None:
            event = event.model_copy(
                update={"user_id": self.user_id, "user_name": self.user_name}
            )

        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage is not None:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    entity_type=event.entity_type,
                    entity_id=event.entity_id,
                )
                return None

        return event

    async def log_operation(
        self,
        entity_type: str,
        entity_id: Optional[int],
        operation: AuditOperation,
        changes: Optional[dict] = None,
        old_values: Optional[dict] = None,
        new_values: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[AuditEvent]:
        """Log a create, update or delete on any store."""
        event = AuditEventBuilder.operation(
            entity_type=entity_type,
            entity_id=entity_id,
            operation=operation,
            changes=changes,
            old_values=old_values,
            new_values=new_values,
            user_id=self.user_id,
            user_name=self.user_name,
            correlation_id=correlation_id,
        )
        return await self.log(event)

    async def log_statements_imported(
        self,
        ledger_id: Optional[int],
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.statements_imported(
            ledger_id=ledger_id,
            count=count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_match_proposed(
        self,
        statement_id: int,
        voucher_id: int,
        accuracy: float,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.match_proposed(
            statement_id=statement_id,
            voucher_id=voucher_id,
            accuracy=accuracy,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_match_confirmed(self, statement_id: int, voucher_id: int) -> None:
        """Log a human confirming a statement match."""
        event = AuditEventBuilder.match_confirmed(
            statement_id=statement_id,
            voucher_id=voucher_id,
            user_id=self.user_id,
            user_name=self.user_name,
        )
        await self.log(event)

    async def log_match_rejected(
        self,
        statement_id: int,
        previous_voucher_id: Optional[int],
    ) -> None:
        event = AuditEventBuilder.match_rejected(
            statement_id=statement_id,
            previous_voucher_id=previous_voucher_id,
            user_id=self.user_id,
            user_name=self.user_name,
        )
        await self.log(event)

    async def log_error(
        self,
        error_kind: str,
        error_message: str,
        entity_type: str = "system",
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_kind=error_kind,
            error_message=error_message,
            entity_type=entity_type,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a multi-step action (e.g., a statement import).
    Pass it through all subsequent operations.
    """
    return uuid4()
