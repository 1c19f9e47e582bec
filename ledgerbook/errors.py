"""
Error Kinds

Every error raised by a store, the aggregator or the importer is a
LedgerbookError. Each carries:
- error_kind: a stable identifier callers can branch on
- user_message: text that is safe to show to the person using the books

The exception message itself is for logs and may contain internal detail.
"""

from typing import Optional


class LedgerbookError(Exception):
    """Base exception for all bookkeeping errors."""

    error_kind = "error"
    default_user_message = "Something went wrong. Please try again."

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        self.user_message = user_message or self.default_user_message

    def to_dict(self) -> dict:
        return {
            "error_kind": self.error_kind,
            "message": str(self),
            "user_message": self.user_message,
        }


class NotFoundError(LedgerbookError):
    """Entity id is absent from its store."""

    error_kind = "not_found"
    default_user_message = "The requested record could not be found."


class ValidationError(LedgerbookError):
    """Required field missing, format invalid or range violated."""

    error_kind = "validation_error"
    default_user_message = "Some of the details entered are not valid."

    def __init__(
        self,
        message: str,
        user_message: Optional[str] = None,
        issues: Optional[list[str]] = None,
    ):
        super().__init__(message, user_message)
        self.issues = issues or []


class InvalidEntryError(ValidationError):
    """A voucher entry is missing its ledger, has a non-positive amount,
    or the voucher has too few entries."""

    error_kind = "invalid_entry"
    default_user_message = "All entries must have a ledger and an amount."


class VoucherImbalanceError(LedgerbookError):
    """Debit and credit totals differ beyond the tolerance."""

    error_kind = "voucher_imbalance"
    default_user_message = "Debit and Credit totals must match."

    def __init__(self, message: str, difference=None, user_message: Optional[str] = None):
        super().__init__(message, user_message)
        self.difference = difference


class DuplicateKeyError(LedgerbookError):
    """A unique key (currency code, custom field name) already exists."""

    error_kind = "duplicate_key"
    default_user_message = "A record with the same key already exists."


class UnknownLedgerReferenceError(LedgerbookError):
    """An entry references a ledger that does not exist."""

    error_kind = "unknown_ledger_reference"
    default_user_message = "A voucher refers to a ledger that does not exist."

    def __init__(self, ledger_id, voucher_id=None, user_message: Optional[str] = None):
        message = f"Unknown ledger {ledger_id}"
        if voucher_id is not None:
            message += f" referenced by voucher {voucher_id}"
        super().__init__(message, user_message)
        self.ledger_id = ledger_id
        self.voucher_id = voucher_id


class BalanceSheetImbalanceError(LedgerbookError):
    """Derived balance sheet does not balance."""

    error_kind = "balance_sheet_imbalance"
    default_user_message = (
        "The balance sheet does not balance. Please check opening balances."
    )

    def __init__(self, message: str, imbalance=None, user_message: Optional[str] = None):
        super().__init__(message, user_message)
        self.imbalance = imbalance


class ImportParseError(LedgerbookError):
    """Unsupported file type or a malformed statement row."""

    error_kind = "import_parse_error"
    default_user_message = "The statement file could not be read."

    def __init__(
        self,
        message: str,
        row_number: Optional[int] = None,
        user_message: Optional[str] = None,
    ):
        super().__init__(message, user_message)
        self.row_number = row_number
