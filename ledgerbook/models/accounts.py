"""
Chart of Accounts Models

Groups, ledgers, currencies and custom field definitions.

DESIGN DECISION: A group's nature (Assets, Liabilities, Income, Expenses)
is an explicit field set when the group is created. It is never inferred
from the group's name. Reports partition ledgers by this field only.

DESIGN DECISION: A ledger stores its opening balance but NOT its current
balance. The current balance is a projection of the voucher log and is
computed on read by the report engine.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class GroupNature(str, Enum):
    """Which report section a group's ledgers belong to."""
    ASSETS = "Assets"
    LIABILITIES = "Liabilities"
    INCOME = "Income"
    EXPENSES = "Expenses"

    @property
    def is_debit_natured(self) -> bool:
        """Assets and expenses normally carry debit balances."""
        return self in (GroupNature.ASSETS, GroupNature.EXPENSES)


class GroupRole(str, Enum):
    """
    Reserved purpose of a group, used by the cash flow statement and
    the financial ratios. Sub-groups inherit their parent's role.
    """
    CASH = "cash"
    FIXED_ASSETS = "fixed_assets"
    INVESTMENTS = "investments"
    LOANS = "loans"
    EQUITY = "equity"

    @property
    def nature(self) -> GroupNature:
        if self in (GroupRole.LOANS, GroupRole.EQUITY):
            return GroupNature.LIABILITIES
        return GroupNature.ASSETS


class CustomFieldEntity(str, Enum):
    """Entity types a custom field can be attached to."""
    LEDGER = "ledger"
    VOUCHER = "voucher"
    ALL = "all"


class CustomFieldType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    EMAIL = "email"
    DATE = "date"
    SELECT = "select"
    CHECKBOX = "checkbox"
    TEXTAREA = "textarea"


# =============================================================================
# GROUPS AND LEDGERS
# =============================================================================

class Group(BaseModel):
    """
    Classification bucket for ledgers.

    Groups nest through parent_id. A sub-group always shares its
    parent's nature (enforced by the group store).
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = Field(
        default=None,
        description="Assigned by the group store"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Group name"
    )
    nature: GroupNature = Field(
        ...,
        description="Report section for ledgers in this group"
    )
    parent_id: Optional[int] = Field(
        default=None,
        description="Parent group id, None for a primary group"
    )
    role: Optional[GroupRole] = Field(
        default=None,
        description="Reserved purpose (cash, loans, equity...), None for an ordinary group"
    )
    description: Optional[str] = Field(
        default=None,
        max_length=500
    )


class Currency(BaseModel):
    """A currency ledgers may be kept in."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = None
    code: str = Field(
        ...,
        min_length=3,
        max_length=3,
        description="ISO 4217 code"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100
    )
    symbol: Optional[str] = Field(
        default=None,
        max_length=5
    )
    exchange_rate: Decimal = Field(
        default=Decimal("1"),
        gt=0,
        description="Units of base currency per unit of this currency"
    )
    is_base_currency: bool = False
    is_active: bool = True

    @field_validator('code')
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.upper()


class Ledger(BaseModel):
    """
    An account in the chart of accounts.

    opening_balance is signed: positive is a debit balance,
    negative is a credit balance.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = Field(
        default=None,
        description="Assigned by the ledger store"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Ledger name"
    )
    group_id: int = Field(
        ...,
        description="Group this ledger belongs to"
    )
    currency: Optional[str] = Field(
        default=None,
        min_length=3,
        max_length=3,
        description="Currency code, defaults to the base currency"
    )
    opening_balance: Decimal = Field(
        default=Decimal("0"),
        decimal_places=2,
        description="Signed opening balance (debit positive)"
    )
    gst_applicable: bool = False
    is_active: bool = True
    custom_fields: dict[str, Any] = Field(default_factory=dict)

    @field_validator('currency')
    @classmethod
    def upper_currency(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


# =============================================================================
# CUSTOM FIELDS
# =============================================================================

class FieldValidationRule(BaseModel):
    """Value rule attached to a custom field definition."""

    type: str = Field(
        ...,
        pattern="^(number|text|email)$",
        description="Which rule family applies"
    )
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = Field(
        default=None,
        description="Regular expression a text value must match"
    )


class CustomFieldDefinition(BaseModel):
    """A user-defined field on ledgers or vouchers."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = None
    name: str = Field(
        ...,
        min_length=1,
        max_length=50,
        pattern="^[A-Za-z_][A-Za-z0-9_]*$",
        description="Key used in custom_fields dicts"
    )
    label: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Label shown to users and used in error messages"
    )
    entity_type: CustomFieldEntity = CustomFieldEntity.ALL
    field_type: CustomFieldType = CustomFieldType.TEXT
    required: bool = False
    validation: Optional[FieldValidationRule] = None
    description: Optional[str] = Field(default=None, max_length=500)
    options: list[str] = Field(
        default_factory=list,
        description="Allowed values for select fields"
    )
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def applies_to(self, entity_type: str) -> bool:
        return self.entity_type in (CustomFieldEntity.ALL, CustomFieldEntity(entity_type))


# =============================================================================
# INVENTORY
# =============================================================================

class StockItem(BaseModel):
    """
    An inventory item that voucher entries can carry in stock_details.

    Opening stock is quantity and rate; its value is always derived.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = None
    name: str = Field(
        ...,
        min_length=1,
        max_length=200
    )
    unit: str = Field(
        default="Nos",
        min_length=1,
        max_length=20,
        description="Unit of measure (Nos, Kg, Ltr...)"
    )
    hsn_code: str = Field(
        default="",
        max_length=8,
        pattern=r"^\d*$",
        description="HSN classification code, digits only"
    )
    gst_rate: Decimal = Field(
        default=Decimal("18"),
        ge=0,
        le=100,
        description="GST rate in percent"
    )
    opening_quantity: Decimal = Field(default=Decimal("0"), ge=0)
    opening_rate: Decimal = Field(default=Decimal("0"), ge=0)

    @property
    def opening_value(self) -> Decimal:
        return self.opening_quantity * self.opening_rate
