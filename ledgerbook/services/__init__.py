"""Services package: the bookkeeping stores."""

from ledgerbook.services.bank_statements import BankStatementStore
from ledgerbook.services.currencies import CurrencyStore
from ledgerbook.services.custom_fields import CustomFieldStore, validate_field_value
from ledgerbook.services.groups import GroupStore
from ledgerbook.services.ledgers import LedgerStore
from ledgerbook.services.stock_items import StockItemStore
from ledgerbook.services.storage import (
    AuditStorageInterface,
    DuplicateKeyError,
    InMemoryAuditStorage,
    InMemoryRepository,
    NotFoundError,
)
from ledgerbook.services.vouchers import VoucherStore

__all__ = [
    # Stores
    "BankStatementStore",
    "CurrencyStore",
    "CustomFieldStore",
    "GroupStore",
    "LedgerStore",
    "StockItemStore",
    "VoucherStore",
    "validate_field_value",
    # Storage
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryRepository",
    # Exceptions
    "DuplicateKeyError",
    "NotFoundError",
]
