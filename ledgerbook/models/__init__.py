"""
Data Models Package

This package contains all Pydantic models used in Ledgerbook.
All data flowing through the stores and reports must conform to these schemas.
"""

from ledgerbook.models.accounts import (
    Currency,
    CustomFieldDefinition,
    CustomFieldEntity,
    CustomFieldType,
    FieldValidationRule,
    Group,
    GroupNature,
    GroupRole,
    Ledger,
    StockItem,
)
from ledgerbook.models.voucher import (
    Entry,
    EntrySide,
    GstDetails,
    ValidationIssue,
    ValidationResult,
    Voucher,
    VoucherStatus,
    VoucherType,
)
from ledgerbook.models.banking import (
    BankStatementLine,
    MatchProposal,
    MatchStatus,
)
from ledgerbook.models.reports import (
    AnalyticsSummary,
    BalanceSheet,
    BalanceSummary,
    CashFlowStatement,
    DayBookRow,
    FinancialRatios,
    LedgerBalance,
    LedgerStatement,
    LedgerStatementRow,
    ProfitAndLoss,
    TrialBalance,
    TrialBalanceRow,
    VarianceAnalysis,
    VarianceLine,
)
from ledgerbook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditOperation,
    AuditSeverity,
)

__all__ = [
    # Chart of accounts
    "Currency",
    "CustomFieldDefinition",
    "CustomFieldEntity",
    "CustomFieldType",
    "FieldValidationRule",
    "Group",
    "GroupNature",
    "GroupRole",
    "Ledger",
    "StockItem",
    # Vouchers
    "Entry",
    "EntrySide",
    "GstDetails",
    "ValidationIssue",
    "ValidationResult",
    "Voucher",
    "VoucherStatus",
    "VoucherType",
    # Banking
    "BankStatementLine",
    "MatchProposal",
    "MatchStatus",
    # Reports
    "AnalyticsSummary",
    "BalanceSheet",
    "BalanceSummary",
    "CashFlowStatement",
    "DayBookRow",
    "FinancialRatios",
    "LedgerBalance",
    "LedgerStatement",
    "LedgerStatementRow",
    "ProfitAndLoss",
    "TrialBalance",
    "TrialBalanceRow",
    "VarianceAnalysis",
    "VarianceLine",
    # Audit
    "AuditEvent",
    "AuditEventBuilder",
    "AuditOperation",
    "AuditSeverity",
]
