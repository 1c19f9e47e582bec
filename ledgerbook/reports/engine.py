"""
Report Engine

Wires the stores to the pure report functions.

DESIGN DECISION: Every request reads a snapshot of the stores and
computes the report from scratch, so concurrent report requests can
never see a half-applied write. Trial balances are cached per
(ledger version, group version, voucher version, date range): any write
to one of those stores bumps its version and the stale entries go away.
Within one version the cache holds at most `cache_size` date ranges and
evicts the oldest first.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

import structlog

from ledgerbook.config import get_settings
from ledgerbook.models.reports import (
    BalanceSheet,
    BalanceSummary,
    CashFlowStatement,
    DayBookRow,
    FinancialRatios,
    LedgerBalance,
    LedgerStatement,
    ProfitAndLoss,
    TrialBalance,
)
from ledgerbook.reports import derivations
from ledgerbook.services.groups import GroupStore
from ledgerbook.services.ledgers import LedgerStore
from ledgerbook.services.vouchers import VoucherStore

logger = structlog.get_logger("ledgerbook.reports")

CacheKey = tuple[int, int, int, Optional[date], Optional[date]]


class ReportEngine:
    """
    Computes reports from injected stores.

    Usage:
        engine = ReportEngine(ledgers, groups, vouchers)
        tb = await engine.trial_balance(date(2024, 4, 1), date(2025, 3, 31))
    """

    def __init__(
        self,
        ledgers: LedgerStore,
        groups: GroupStore,
        vouchers: VoucherStore,
        tolerance: Optional[Decimal] = None,
        cache_size: Optional[int] = None,
    ):
        settings = get_settings().app
        self._ledgers = ledgers
        self._groups = groups
        self._vouchers = vouchers
        self._tolerance = tolerance if tolerance is not None else settings.balance_tolerance
        self._max_cached = cache_size if cache_size is not None else settings.report_cache_size
        self._cache: dict[CacheKey, TrialBalance] = {}

    def _versions(self) -> tuple[int, int, int]:
        return (self._ledgers.version, self._groups.version, self._vouchers.version)

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def clear_cache(self) -> None:
        self._cache.clear()

    # ------------------------------------------------------------------
    # Trial balance family
    # ------------------------------------------------------------------

    async def trial_balance(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> TrialBalance:
        versions = self._versions()
        key = (*versions, date_from, date_to)

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("trial_balance_cache_hit", date_from=str(date_from), date_to=str(date_to))
            return cached.model_copy(deep=True)

        # Drop entries computed against older store versions
        self._cache = {k: v for k, v in self._cache.items() if k[:3] == versions}

        ledgers = await self._ledgers.get_all()
        groups = await self._groups.get_all()
        vouchers = await self._vouchers.get_all()

        result = derivations.trial_balance(
            ledgers, groups, vouchers, date_from, date_to, self._tolerance
        )
        if not result.is_balanced:
            logger.warning(
                "trial_balance_not_balanced",
                total_debit=str(result.total_debit),
                total_credit=str(result.total_credit),
            )

        while len(self._cache) >= self._max_cached:
            self._cache.pop(next(iter(self._cache)))
        self._cache[key] = result
        return result.model_copy(deep=True)

    async def profit_and_loss(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> ProfitAndLoss:
        tb = await self.trial_balance(date_from, date_to)
        groups = await self._groups.get_all()
        return derivations.profit_and_loss_from_rows(tb.rows, groups, date_from, date_to)

    async def balance_sheet(
        self,
        as_of: Optional[date] = None,
        strict: bool = False,
    ) -> BalanceSheet:
        """
        Balance sheet from all vouchers dated up to `as_of`.

        Raises:
            BalanceSheetImbalanceError: With strict=True, if it does not balance
        """
        tb = await self.trial_balance(None, as_of)
        groups = await self._groups.get_all()
        return derivations.balance_sheet_from_rows(
            tb.rows, groups, as_of, strict, self._tolerance
        )

    # ------------------------------------------------------------------
    # Per-ledger and chronological reports
    # ------------------------------------------------------------------

    async def ledger_statement(
        self,
        ledger_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> LedgerStatement:
        """
        Raises:
            NotFoundError: Unknown ledger
        """
        ledger = await self._ledgers.get_by_id(ledger_id)
        vouchers = await self._vouchers.get_by_ledger_and_date(ledger_id, None, date_to)
        return derivations.ledger_statement(ledger, vouchers, date_from, date_to)

    async def day_book(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[DayBookRow]:
        vouchers = await self._vouchers.get_by_date_range(date_from, date_to)
        return derivations.day_book(vouchers)

    async def ledger_balances(self) -> list[LedgerBalance]:
        ledgers = await self._ledgers.get_all()
        groups = await self._groups.get_all()
        vouchers = await self._vouchers.get_all()
        return derivations.ledger_balances(ledgers, groups, vouchers)

    async def get_ledger_balance(self, ledger_id: int) -> LedgerBalance:
        """
        Raises:
            NotFoundError: Unknown ledger
        """
        ledger = await self._ledgers.get_by_id(ledger_id)
        groups = await self._groups.get_all()
        vouchers = await self._vouchers.get_by_ledger_and_date(ledger_id)
        return derivations.ledger_balances([ledger], groups, vouchers)[0]

    async def get_balance_summary(self) -> BalanceSummary:
        return derivations.balance_summary(await self.ledger_balances())

    async def get_top_by_balance(self, limit: int = 10) -> list[LedgerBalance]:
        return derivations.top_by_balance(await self.ledger_balances(), limit)

    async def get_top_transactions(
        self,
        limit: int = 10,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[DayBookRow]:
        return await self._vouchers.get_top_transactions(limit, date_from, date_to)

    # ------------------------------------------------------------------
    # Cash flow and ratios
    # ------------------------------------------------------------------

    async def cash_flow_statement(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> CashFlowStatement:
        """
        Cash flow by activity. Cash ledgers are those under a group with
        the cash role (directly or through a parent).
        """
        ledgers = await self._ledgers.get_all()
        groups = await self._groups.get_all()
        vouchers = await self._vouchers.get_by_date_range(None, date_to)
        statement = derivations.cash_flow_statement(ledgers, groups, vouchers, date_from, date_to)
        if not statement.cash_ledger_ids:
            logger.warning("cash_flow_without_cash_ledgers")
        return statement

    async def financial_ratios(self, as_of: Optional[date] = None) -> FinancialRatios:
        ledgers = await self._ledgers.get_all()
        groups = await self._groups.get_all()
        vouchers = await self._vouchers.get_all()
        return derivations.financial_ratios(ledgers, groups, vouchers, as_of)
