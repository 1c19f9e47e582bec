"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the in-memory repositories swappable for a real database later
2. Inject stores into the report engine and matcher instead of importing singletons
3. Keep business logic decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Every repository owns its collection and exposes CRUD plus the few
queries the reports and reconciliation need.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Generic, Optional, TypeVar
from uuid import UUID

from ledgerbook.errors import DuplicateKeyError, NotFoundError
from ledgerbook.models.accounts import Ledger
from ledgerbook.models.audit import AuditEvent
from ledgerbook.models.banking import BankStatementLine, MatchProposal
from ledgerbook.models.voucher import Voucher, VoucherType

T = TypeVar("T")


class RepositoryInterface(ABC, Generic[T]):
    """
    CRUD contract shared by every store.

    Reads return snapshots: mutating a returned object never changes
    what the store holds.
    """

    @property
    @abstractmethod
    def version(self) -> int:
        """Incremented on every successful write. Used as a cache key."""
        pass

    @abstractmethod
    async def get_all(self) -> list[T]:
        pass

    @abstractmethod
    async def get_by_id(self, item_id: int) -> T:
        """
        Retrieve an item by id.

        Raises:
            NotFoundError: If the id is absent. Never returns None.
        """
        pass

    @abstractmethod
    async def create(self, item: T) -> T:
        """Store a new item and return it with its assigned id."""
        pass

    @abstractmethod
    async def update(self, item_id: int, item: T) -> T:
        """
        Replace an existing item.

        Raises:
            NotFoundError: If the id is absent
        """
        pass

    @abstractmethod
    async def delete(self, item_id: int) -> bool:
        """
        Delete an item by id.

        Raises:
            NotFoundError: If the id is absent
        """
        pass


class LedgerStorageInterface(RepositoryInterface[Ledger]):
    """Ledger store contract."""

    @abstractmethod
    async def get_by_group(self, group_id: int) -> list[Ledger]:
        pass

    @abstractmethod
    async def exists(self, ledger_id: int) -> bool:
        pass


class VoucherStorageInterface(RepositoryInterface[Voucher]):
    """Voucher store contract."""

    @abstractmethod
    async def get_by_ledger_and_date(
        self,
        ledger_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Voucher]:
        """
        Vouchers dated in the inclusive range with at least one
        entry on the ledger.
        """
        pass

    @abstractmethod
    async def get_by_date_range(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Voucher]:
        pass

    @abstractmethod
    async def get_by_type(self, voucher_type: VoucherType) -> list[Voucher]:
        pass


class BankStatementStorageInterface(RepositoryInterface[BankStatementLine]):
    """Bank statement store contract."""

    @abstractmethod
    async def import_statements(
        self,
        lines: list[BankStatementLine],
        ledger_id: Optional[int],
        correlation_id: Optional[UUID] = None,
    ) -> list[BankStatementLine]:
        pass

    @abstractmethod
    async def find_matches(
        self,
        lines: Optional[list[BankStatementLine]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> dict[int, MatchProposal]:
        pass

    @abstractmethod
    async def confirm_match(self, statement_id: int, voucher_id: int) -> BankStatementLine:
        pass

    @abstractmethod
    async def reject_match(self, statement_id: int) -> BankStatementLine:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - there is no update or delete.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> AuditEvent:
        """
        Append an audit event to the log.

        Returns:
            The stored event carrying its assigned monotonic id
        """
        pass

    @abstractmethod
    async def get_by_id(self, event_id: int) -> AuditEvent:
        pass

    @abstractmethod
    async def get_all(self) -> list[AuditEvent]:
        """All events, newest first."""
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one statement import).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_by_entity(
        self,
        entity_type: str,
        entity_id: Optional[int] = None,
    ) -> list[AuditEvent]:
        """Events for an entity type, optionally one entity. Newest first."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


__all__ = [
    "AuditStorageInterface",
    "BankStatementStorageInterface",
    "DuplicateKeyError",
    "LedgerStorageInterface",
    "NotFoundError",
    "RepositoryInterface",
    "VoucherStorageInterface",
]
