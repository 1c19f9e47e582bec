"""
Voucher Store

CRITICAL: Every voucher passes the validation gate before it is stored.
An unbalanced voucher, an entry without a ledger or a non-positive
amount raises and leaves the store untouched.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from ledgerbook.models.accounts import CustomFieldEntity
from ledgerbook.models.reports import AnalyticsSummary, DayBookRow, VarianceAnalysis, VarianceLine
from ledgerbook.models.voucher import ValidationResult, Voucher, VoucherStatus, VoucherType
from ledgerbook.services.storage import InMemoryRepository, VoucherStorageInterface
from ledgerbook.validation import VoucherValidator

if TYPE_CHECKING:
    from ledgerbook.audit import AuditLogger
    from ledgerbook.services.custom_fields import CustomFieldStore
    from ledgerbook.services.ledgers import LedgerStore

REVENUE_TYPES = (VoucherType.SALES, VoucherType.RECEIPT)
EXPENSE_TYPES = (VoucherType.PURCHASE, VoucherType.PAYMENT)


def in_range(day: date, date_from: Optional[date], date_to: Optional[date]) -> bool:
    """Inclusive date range check; None bounds are open."""
    if date_from is not None and day < date_from:
        return False
    if date_to is not None and day > date_to:
        return False
    return True


def chronological(vouchers: list[Voucher]) -> list[Voucher]:
    return sorted(vouchers, key=lambda v: (v.date, v.id or 0))


class VoucherStore(InMemoryRepository[Voucher], VoucherStorageInterface):
    """Repository of vouchers."""

    model = Voucher
    entity_type = "voucher"
    entity_label = "Voucher"

    def __init__(
        self,
        items: Optional[list] = None,
        audit_logger: Optional["AuditLogger"] = None,
        latency_ms: Optional[int] = None,
        ledgers: Optional["LedgerStore"] = None,
        custom_fields: Optional["CustomFieldStore"] = None,
        validator: Optional[VoucherValidator] = None,
    ):
        """
        Initialize the store.

        Args:
            ledgers: Used by the validator to reject unknown ledger ids.
            custom_fields: Used to validate voucher custom field values.
            validator: Defaults to a VoucherValidator over `ledgers`.
        """
        super().__init__(items, audit_logger, latency_ms)
        self._custom_fields = custom_fields
        self._validator = validator or VoucherValidator(ledger_storage=ledgers)

    def _changes(self, item: Voucher) -> dict:
        return {
            "type": item.type.value,
            "number": item.number,
            "date": item.date.isoformat(),
            "status": item.status.value,
        }

    def _next_number(self, voucher_type: VoucherType) -> str:
        numbers = [
            int(v.number) for v in self._items.values()
            if v.type == voucher_type and v.number.isdigit()
        ]
        return str(max(numbers, default=0) + 1)

    async def _gate(self, item: Voucher) -> Voucher:
        if not item.number:
            item = item.model_copy(update={"number": self._next_number(item.type)})

        await self._validator.ensure_valid(item, self._values())

        if self._custom_fields is not None:
            await self._custom_fields.ensure_valid_values(
                CustomFieldEntity.VOUCHER, item.custom_fields
            )
        return item

    async def _prepare_create(self, item: Voucher) -> Voucher:
        return await self._gate(item)

    async def _prepare_update(self, existing: Voucher, item: Voucher) -> Voucher:
        item = item.model_copy(update={"id": existing.id, "created_at": existing.created_at})
        return await self._gate(item)

    async def validate(self, voucher: Voucher) -> ValidationResult:
        """Validation result (errors and warnings) without storing anything."""
        return await self._validator.validate(voucher, self._values())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_by_ledger_and_date(
        self,
        ledger_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Voucher]:
        await self._delay()
        return [
            self._snapshot(v) for v in self._values()
            if in_range(v.date, date_from, date_to) and ledger_id in v.ledger_ids()
        ]

    async def uses_ledger(self, ledger_id: int) -> bool:
        return any(ledger_id in v.ledger_ids() for v in self._items.values())

    async def get_by_date_range(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Voucher]:
        await self._delay()
        return [
            self._snapshot(v) for v in self._values()
            if in_range(v.date, date_from, date_to)
        ]

    async def get_by_type(self, voucher_type: VoucherType) -> list[Voucher]:
        await self._delay()
        return [self._snapshot(v) for v in self._values() if v.type == voucher_type]

    async def get_recent(self, limit: int = 10) -> list[Voucher]:
        """Latest vouchers first."""
        await self._delay()
        newest = sorted(self._values(), key=lambda v: (v.date, v.id), reverse=True)
        return [self._snapshot(v) for v in newest[:limit]]

    async def search(
        self,
        query: str = "",
        voucher_type: Optional[VoucherType] = None,
        status: Optional[VoucherStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        min_amount: Optional[Decimal] = None,
        max_amount: Optional[Decimal] = None,
    ) -> list[Voucher]:
        await self._delay()
        needle = query.strip().lower()
        results = []
        for voucher in self._values():
            if needle and needle not in voucher.narration.lower() and needle not in voucher.number.lower():
                continue
            if voucher_type is not None and voucher.type != voucher_type:
                continue
            if status is not None and voucher.status != status:
                continue
            if not in_range(voucher.date, date_from, date_to):
                continue
            if min_amount is not None and voucher.total_debit < Decimal(str(min_amount)):
                continue
            if max_amount is not None and voucher.total_debit > Decimal(str(max_amount)):
                continue
            results.append(self._snapshot(voucher))
        return results

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    async def get_top_transactions(
        self,
        limit: int = 10,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[DayBookRow]:
        """Largest vouchers by debit total; equal totals keep (date, id) order."""
        await self._delay()
        ranked = sorted(
            (v for v in self._values() if in_range(v.date, date_from, date_to)),
            key=lambda v: (-v.total_debit, v.date, v.id),
        )
        return [
            DayBookRow(
                voucher_id=v.id,
                date=v.date,
                type=v.type,
                number=v.number,
                narration=v.narration,
                amount=v.total_debit,
            )
            for v in ranked[:limit]
        ]

    async def get_analytics_summary(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> AnalyticsSummary:
        """
        Revenue and expense totals for a period.

        Revenue is the total of sales and receipt vouchers, expenses the
        total of purchase and payment vouchers.
        """
        await self._delay()
        revenue = Decimal("0")
        expenses = Decimal("0")
        counts: dict[str, int] = {}
        vouchers = [v for v in self._values() if in_range(v.date, date_from, date_to)]

        for voucher in vouchers:
            counts[voucher.type.value] = counts.get(voucher.type.value, 0) + 1
            if voucher.type in REVENUE_TYPES:
                revenue += voucher.total_debit
            elif voucher.type in EXPENSE_TYPES:
                expenses += voucher.total_debit

        return AnalyticsSummary(
            from_date=date_from,
            to_date=date_to,
            total_revenue=revenue,
            total_expenses=expenses,
            net_profit=revenue - expenses,
            voucher_count=len(vouchers),
            voucher_type_counts=counts,
        )

    async def get_variance_analysis(
        self,
        current_from: Optional[date],
        current_to: Optional[date],
        previous_from: Optional[date],
        previous_to: Optional[date],
    ) -> VarianceAnalysis:
        """Compare revenue and expenses between two periods."""
        current = await self.get_analytics_summary(current_from, current_to)
        previous = await self.get_analytics_summary(previous_from, previous_to)

        def line(now: Decimal, before: Decimal) -> VarianceLine:
            variance = now - before
            percent = float(variance / before * 100) if before != 0 else 0.0
            return VarianceLine(
                current=now,
                previous=before,
                variance=variance,
                variance_percent=round(percent, 2),
            )

        return VarianceAnalysis(
            revenue=line(current.total_revenue, previous.total_revenue),
            expenses=line(current.total_expenses, previous.total_expenses),
        )
