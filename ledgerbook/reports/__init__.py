"""Reports package: balance aggregation and derived reports."""

from ledgerbook.reports.aggregator import (
    compute_trial_balance,
    ledger_balance,
    trial_balance_totals,
)
from ledgerbook.reports.derivations import (
    balance_sheet,
    balance_summary,
    cash_flow_statement,
    day_book,
    financial_ratios,
    ledger_balances,
    ledger_statement,
    profit_and_loss,
    resolve_roles,
    top_by_balance,
    trial_balance,
)
from ledgerbook.reports.engine import ReportEngine

__all__ = [
    "ReportEngine",
    "balance_sheet",
    "balance_summary",
    "cash_flow_statement",
    "compute_trial_balance",
    "day_book",
    "financial_ratios",
    "ledger_balance",
    "ledger_balances",
    "ledger_statement",
    "profit_and_loss",
    "resolve_roles",
    "top_by_balance",
    "trial_balance",
    "trial_balance_totals",
]
