"""
Main Orchestrator for Ledgerbook

This module ties the stores, the audit logger and the report engine
together, and defines the end-to-end flows:
1. Voucher posting (validate → store → audit)
2. Statement reconciliation (file → parse → import → propose matches)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No voucher is stored unless it balances
- No statement line is matched without a human confirming it
- Every step is audited

Stores never import each other as singletons. Everything is built here
and injected.
"""

from typing import Optional, Union

import structlog

from ledgerbook.audit import AuditLogger, create_correlation_id
from ledgerbook.config import get_settings
from ledgerbook.errors import ImportParseError
from ledgerbook.models.banking import BankStatementLine, MatchProposal
from ledgerbook.models.voucher import ValidationResult, Voucher
from ledgerbook.reports import ReportEngine
from ledgerbook.services import (
    BankStatementStore,
    CurrencyStore,
    CustomFieldStore,
    GroupStore,
    InMemoryAuditStorage,
    LedgerStore,
    StockItemStore,
    VoucherStore,
)
from ledgerbook.validation import VoucherValidator

logger = structlog.get_logger("ledgerbook.orchestrator")


class VoucherPostingFlow:
    """
    Flow for posting a voucher.

    Steps:
    1. Validate (structure, balance, ledgers, warnings)
    2. Store (the store re-runs the gate under its lock)
    3. The store audits the write
    """

    def __init__(self, vouchers: VoucherStore, validator: VoucherValidator):
        self._vouchers = vouchers
        self._validator = validator

    async def preview(self, voucher: Voucher) -> tuple[ValidationResult, str]:
        """Validation result plus the summary shown to the user."""
        result = await self._vouchers.validate(voucher)
        return result, self._validator.get_user_friendly_summary(result)

    async def post(self, voucher: Voucher) -> Voucher:
        """
        Raises:
            InvalidEntryError, VoucherImbalanceError,
            UnknownLedgerReferenceError: Nothing is stored
        """
        stored = await self._vouchers.create(voucher)
        logger.info(
            "voucher_posted",
            voucher_id=stored.id,
            type=stored.type.value,
            number=stored.number,
            amount=str(stored.total_debit),
        )
        return stored


class ReconciliationFlow:
    """
    Flow for importing a bank statement and proposing matches.

    Steps:
    1. Parse the file (CSV or XLSX)
    2. Import the lines for the bank ledger
    3. Propose a voucher for each line (status becomes potential)
    4. A human confirms or rejects each proposal later

    All events of one import share a correlation id.
    """

    def __init__(self, statements: BankStatementStore, audit_logger: AuditLogger):
        self._statements = statements
        self._audit_logger = audit_logger

    async def import_file(
        self,
        filename: str,
        content: Union[bytes, str],
        ledger_id: Optional[int],
    ) -> tuple[list[BankStatementLine], dict[int, MatchProposal]]:
        """
        Returns:
            (imported lines, proposals keyed by statement id)

        Raises:
            ImportParseError: The file could not be read; nothing is imported
        """
        correlation_id = create_correlation_id()

        try:
            parsed = self._statements.parse_file(filename, content)
        except ImportParseError as e:
            await self._audit_logger.log_error(
                error_kind=e.error_kind,
                error_message=str(e),
                entity_type="bank_statement",
                details={"filename": filename, "row_number": e.row_number},
                correlation_id=correlation_id,
            )
            raise

        imported = await self._statements.import_statements(parsed, ledger_id, correlation_id)
        proposals = await self._statements.find_matches(imported, correlation_id)

        logger.info(
            "statement_imported",
            filename=filename,
            ledger_id=ledger_id,
            lines=len(imported),
            proposals=len(proposals),
            correlation_id=str(correlation_id),
        )
        refreshed = [await self._statements.get_by_id(line.id) for line in imported]
        return refreshed, proposals

    async def confirm(self, statement_id: int, voucher_id: int) -> BankStatementLine:
        return await self._statements.confirm_match(statement_id, voucher_id)

    async def reject(self, statement_id: int) -> BankStatementLine:
        return await self._statements.reject_match(statement_id)


class AppComponents:
    """Everything create_app_components builds, wired together."""

    def __init__(
        self,
        audit_storage: InMemoryAuditStorage,
        audit_logger: AuditLogger,
        groups: GroupStore,
        currencies: CurrencyStore,
        custom_fields: CustomFieldStore,
        ledgers: LedgerStore,
        vouchers: VoucherStore,
        statements: BankStatementStore,
        stock_items: StockItemStore,
        validator: VoucherValidator,
        reports: ReportEngine,
    ):
        self.audit_storage = audit_storage
        self.audit_logger = audit_logger
        self.groups = groups
        self.currencies = currencies
        self.custom_fields = custom_fields
        self.ledgers = ledgers
        self.vouchers = vouchers
        self.statements = statements
        self.stock_items = stock_items
        self.validator = validator
        self.reports = reports
        self.posting = VoucherPostingFlow(vouchers, validator)
        self.reconciliation = ReconciliationFlow(statements, audit_logger)


def create_app_components(
    latency_ms: Optional[int] = None,
    seed: Optional[dict[str, list]] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        latency_ms: Artificial delay for every store call.
                    Defaults to LEDGERBOOK_SIMULATED_LATENCY_MS.
        seed: Optional initial data keyed by store name
              ("groups", "currencies", "custom_fields", "ledgers",
              "vouchers", "statements", "stock_items"). Seed data is not validated
              or audited.

    Returns:
        AppComponents with every store sharing one audit logger
    """
    seed = seed or {}
    if latency_ms is None:
        latency_ms = get_settings().app.simulated_latency_ms

    audit_storage = InMemoryAuditStorage()
    audit_logger = AuditLogger(audit_storage)

    groups = GroupStore(seed.get("groups"), audit_logger, latency_ms)
    currencies = CurrencyStore(seed.get("currencies"), audit_logger, latency_ms)
    custom_fields = CustomFieldStore(seed.get("custom_fields"), audit_logger, latency_ms)
    ledgers = LedgerStore(
        seed.get("ledgers"),
        audit_logger,
        latency_ms,
        groups=groups,
        custom_fields=custom_fields,
    )
    validator = VoucherValidator(ledger_storage=ledgers)
    vouchers = VoucherStore(
        seed.get("vouchers"),
        audit_logger,
        latency_ms,
        custom_fields=custom_fields,
        validator=validator,
    )
    statements = BankStatementStore(
        seed.get("statements"),
        audit_logger,
        latency_ms,
        vouchers=vouchers,
    )
    stock_items = StockItemStore(seed.get("stock_items"), audit_logger, latency_ms)
    reports = ReportEngine(ledgers, groups, vouchers)

    # Deletion checks look downstream: groups at ledgers, ledgers at vouchers
    groups.attach_ledgers(ledgers)
    ledgers.attach_vouchers(vouchers)

    return AppComponents(
        audit_storage=audit_storage,
        audit_logger=audit_logger,
        groups=groups,
        currencies=currencies,
        custom_fields=custom_fields,
        ledgers=ledgers,
        vouchers=vouchers,
        statements=statements,
        stock_items=stock_items,
        validator=validator,
        reports=reports,
    )


__all__ = [
    "AppComponents",
    "ReconciliationFlow",
    "VoucherPostingFlow",
    "create_app_components",
]
