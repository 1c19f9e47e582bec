"""
Report Models

Everything here is derived. Reports are computed fresh per request from
a snapshot of the stores and are never written back.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ledgerbook.models.accounts import GroupNature
from ledgerbook.models.voucher import VoucherType

ZERO = Decimal("0")


class TrialBalanceRow(BaseModel):
    """Per-ledger debit and credit totals. Immutable once built."""
    model_config = ConfigDict(frozen=True)

    ledger_id: int
    name: str
    group_id: int
    group_name: Optional[str] = None
    debit: Decimal = ZERO
    credit: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        """Debit minus credit."""
        return self.debit - self.credit


class TrialBalance(BaseModel):
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    rows: list[TrialBalanceRow] = Field(default_factory=list)
    total_debit: Decimal = ZERO
    total_credit: Decimal = ZERO
    is_balanced: bool = True


class ProfitAndLoss(BaseModel):
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    income: list[TrialBalanceRow] = Field(default_factory=list)
    expenses: list[TrialBalanceRow] = Field(default_factory=list)
    total_income: Decimal = ZERO
    total_expenses: Decimal = ZERO
    net_profit: Decimal = ZERO


class BalanceSheet(BaseModel):
    """
    Assets against liabilities and equity.

    retained_earnings is the income-minus-expenses result of the same
    trial balance, carried to the equity side.
    """
    as_of: Optional[date] = None
    assets: list[TrialBalanceRow] = Field(default_factory=list)
    liabilities: list[TrialBalanceRow] = Field(default_factory=list)
    total_assets: Decimal = ZERO
    total_liabilities: Decimal = ZERO
    retained_earnings: Decimal = ZERO
    total_liabilities_and_equity: Decimal = ZERO
    imbalance: Decimal = ZERO
    is_balanced: bool = True
    warnings: list[str] = Field(default_factory=list)


class LedgerStatementRow(BaseModel):
    date: Optional[date]
    particulars: str
    voucher_id: Optional[int] = None
    voucher_type: Optional[VoucherType] = None
    voucher_number: str = ""
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    balance: Decimal = Field(
        ...,
        description="Signed running balance (debit positive)"
    )

    @property
    def balance_amount(self) -> Decimal:
        return abs(self.balance)

    @property
    def balance_side(self) -> str:
        return "Cr" if self.balance < 0 else "Dr"


class LedgerStatement(BaseModel):
    ledger_id: int
    ledger_name: str
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    opening_balance: Decimal = ZERO
    closing_balance: Decimal = ZERO
    rows: list[LedgerStatementRow] = Field(default_factory=list)


class DayBookRow(BaseModel):
    voucher_id: int
    date: date
    type: VoucherType
    number: str
    narration: str = ""
    amount: Decimal = Field(
        ...,
        description="Total of the voucher's debit entries"
    )


class LedgerBalance(BaseModel):
    ledger_id: int
    name: str
    group_id: int
    nature: Optional[GroupNature] = None
    opening_balance: Decimal = ZERO
    balance: Decimal = ZERO


class BalanceSummary(BaseModel):
    total_assets: Decimal = ZERO
    total_liabilities: Decimal = ZERO
    net_worth: Decimal = ZERO
    count: int = 0


class AnalyticsSummary(BaseModel):
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    total_revenue: Decimal = ZERO
    total_expenses: Decimal = ZERO
    net_profit: Decimal = ZERO
    voucher_count: int = 0
    voucher_type_counts: dict[str, int] = Field(default_factory=dict)


class VarianceLine(BaseModel):
    current: Decimal = ZERO
    previous: Decimal = ZERO
    variance: Decimal = ZERO
    variance_percent: float = 0.0


class VarianceAnalysis(BaseModel):
    revenue: VarianceLine
    expenses: VarianceLine


class CashFlowStatement(BaseModel):
    """
    Movement on cash and bank ledgers over a period.

    Each voucher touching a cash ledger is split by its other entries:
    fixed assets and investments are investing, loans and equity are
    financing, everything else is operating.
    closing_cash == opening_cash + net_cash_flow always holds.
    """
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    cash_ledger_ids: list[int] = Field(default_factory=list)
    opening_cash: Decimal = ZERO
    operating: Decimal = ZERO
    investing: Decimal = ZERO
    financing: Decimal = ZERO
    net_cash_flow: Decimal = ZERO
    closing_cash: Decimal = ZERO


class FinancialRatios(BaseModel):
    """
    Ratios over balances as of a date.

    total_equity is the equity groups' credit balance plus retained
    earnings; total_liabilities excludes equity groups. A ratio whose
    denominator is zero is reported as 0.
    """
    as_of: Optional[date] = None
    total_assets: Decimal = ZERO
    total_liabilities: Decimal = ZERO
    total_equity: Decimal = ZERO
    debt_to_equity_ratio: float = 0.0
    current_ratio: float = 0.0
    equity_ratio: float = 0.0
