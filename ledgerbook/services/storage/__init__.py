"""
Storage Services Package

Provides abstract interfaces and the in-memory implementations the
bookkeeping stores are built on. Designed to be swappable for a database.
"""

from ledgerbook.services.storage.interface import (
    AuditStorageInterface,
    BankStatementStorageInterface,
    DuplicateKeyError,
    LedgerStorageInterface,
    NotFoundError,
    RepositoryInterface,
    VoucherStorageInterface,
)
from ledgerbook.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryRepository,
    dump_for_audit,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BankStatementStorageInterface",
    "LedgerStorageInterface",
    "RepositoryInterface",
    "VoucherStorageInterface",
    # Exceptions
    "DuplicateKeyError",
    "NotFoundError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryRepository",
    "dump_for_audit",
]
