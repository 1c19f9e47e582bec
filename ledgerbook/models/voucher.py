"""
Voucher Models

A voucher is one transaction made of debit and credit entries.
Entries have no identity of their own; they belong to exactly one voucher.

CRITICAL: The balance rule (total debit == total credit) is NOT enforced
by these models. Entry amounts and ledger ids are deliberately permissive
here so the validation gate can report every problem with a proper
error kind. The voucher store refuses to store anything that fails it.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ledgerbook.models.accounts import utc_now


class VoucherType(str, Enum):
    SALES = "sales"
    PURCHASE = "purchase"
    PAYMENT = "payment"
    RECEIPT = "receipt"
    CONTRA = "contra"
    JOURNAL = "journal"


class VoucherStatus(str, Enum):
    DRAFT = "draft"
    POSTED = "posted"
    CANCELLED = "cancelled"


class EntrySide(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


_SIDE_ALIASES = {
    "dr": EntrySide.DEBIT,
    "debit": EntrySide.DEBIT,
    "cr": EntrySide.CREDIT,
    "credit": EntrySide.CREDIT,
}


class Entry(BaseModel):
    """One debit or credit line of a voucher."""

    ledger_id: Optional[int] = Field(
        default=None,
        description="Ledger this entry posts to"
    )
    amount: Decimal = Field(
        ...,
        description="Positive amount; the side gives the direction"
    )
    side: EntrySide
    stock_details: Optional[dict[str, Any]] = Field(
        default=None,
        description="Item, quantity and rate for inventory vouchers"
    )

    @field_validator('side', mode='before')
    @classmethod
    def accept_short_sides(cls, v):
        """Accept 'dr'/'cr' as used on paper vouchers."""
        if isinstance(v, str):
            side = _SIDE_ALIASES.get(v.strip().lower())
            if side is not None:
                return side
        return v

    @property
    def signed_amount(self) -> Decimal:
        """Debit positive, credit negative."""
        return self.amount if self.side == EntrySide.DEBIT else -self.amount


class GstDetails(BaseModel):
    cgst: Decimal = Decimal("0")
    sgst: Decimal = Decimal("0")
    igst: Decimal = Decimal("0")
    total_tax: Decimal = Decimal("0")


class Voucher(BaseModel):
    """A transaction record composed of debit and credit entries."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = Field(
        default=None,
        description="Assigned by the voucher store"
    )
    type: VoucherType
    number: str = Field(
        default="",
        max_length=50,
        description="Voucher number, assigned per type when left blank"
    )
    date: date
    narration: str = Field(
        default="",
        max_length=1000
    )
    entries: list[Entry] = Field(default_factory=list)
    gst_details: Optional[GstDetails] = None
    status: VoucherStatus = VoucherStatus.POSTED
    custom_fields: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def total_debit(self) -> Decimal:
        return sum(
            (e.amount for e in self.entries if e.side == EntrySide.DEBIT),
            Decimal("0"),
        )

    @property
    def total_credit(self) -> Decimal:
        return sum(
            (e.amount for e in self.entries if e.side == EntrySide.CREDIT),
            Decimal("0"),
        )

    @property
    def difference(self) -> Decimal:
        return self.total_debit - self.total_credit

    def is_balanced(self, tolerance: Decimal = Decimal("0.01")) -> bool:
        return abs(self.difference) <= tolerance

    def ledger_ids(self) -> set[int]:
        return {e.ledger_id for e in self.entries if e.ledger_id is not None}

    def net_for_ledger(self, ledger_id: int) -> Decimal:
        """Debit-minus-credit of this voucher's entries on one ledger."""
        return sum(
            (e.signed_amount for e in self.entries if e.ledger_id == ledger_id),
            Decimal("0"),
        )


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'imbalance', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """
    Result of validating a voucher.

    Stage 1: Structural rules (entries, amounts, balance)
    Stage 2: Semantic checks (dates, duplicates, odd postings)
    """

    voucher_number: str = ""
    validated_at: datetime = Field(default_factory=utc_now)

    structure_valid: bool
    is_balanced: bool
    total_debit: Decimal = Decimal("0")
    total_credit: Decimal = Decimal("0")

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.structure_valid and self.is_balanced and not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
