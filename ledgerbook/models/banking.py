"""
Bank Statement Models

Statement lines are created in batches when a statement file is imported.
After that only the matcher (potential) or a human (matched / unmatched)
changes their match state.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MatchStatus(str, Enum):
    """
    Reconciliation state of a statement line.

    CRITICAL: Lines only become MATCHED by explicit confirmation.
    The matcher never goes further than POTENTIAL.
    """
    UNMATCHED = "unmatched"
    POTENTIAL = "potential"
    MATCHED = "matched"


class BankStatementLine(BaseModel):
    """One line of an imported bank statement."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = None
    ledger_id: Optional[int] = Field(
        default=None,
        description="Bank ledger the statement was imported for"
    )
    date: date
    description: str = Field(
        default="",
        max_length=500
    )
    amount: Decimal = Field(
        ...,
        description="Signed amount: deposits positive, withdrawals negative"
    )
    balance: Decimal = Field(
        default=Decimal("0"),
        description="Running balance reported by the bank"
    )
    match_status: MatchStatus = MatchStatus.UNMATCHED
    matched_voucher_id: Optional[int] = None
    proposed_voucher_id: Optional[int] = None
    match_accuracy: Optional[float] = None
    import_date: Optional[date] = None


class MatchProposal(BaseModel):
    """The best voucher candidate for one statement line."""
    model_config = ConfigDict(frozen=True)

    statement_id: int
    voucher_id: int
    accuracy: float = Field(ge=0.0, le=100.0)
    amount_score: float = 0.0
    date_score: float = 0.0
    description_score: float = 0.0
