"""
Ledger Store

DESIGN DECISION: Ledgers keep an opening balance only. The current
balance is derived from the voucher log by the report engine, so there
is no balance field that could drift out of step with the vouchers.
"""

from typing import Optional, TYPE_CHECKING

from ledgerbook.config import get_settings
from ledgerbook.errors import NotFoundError, ValidationError
from ledgerbook.models.accounts import CustomFieldEntity, Ledger
from ledgerbook.services.storage import InMemoryRepository, LedgerStorageInterface

if TYPE_CHECKING:
    from ledgerbook.audit import AuditLogger
    from ledgerbook.services.custom_fields import CustomFieldStore
    from ledgerbook.services.groups import GroupStore
    from ledgerbook.services.vouchers import VoucherStore


class LedgerStore(InMemoryRepository[Ledger], LedgerStorageInterface):
    """
    Repository of ledgers.

    With a GroupStore injected, the ledger's group must exist.
    With a CustomFieldStore injected, custom field values are validated.
    With a VoucherStore attached, a ledger that vouchers still post to
    cannot be deleted.
    """

    model = Ledger
    entity_type = "ledger"
    entity_label = "Ledger"

    def __init__(
        self,
        items: Optional[list] = None,
        audit_logger: Optional["AuditLogger"] = None,
        latency_ms: Optional[int] = None,
        groups: Optional["GroupStore"] = None,
        custom_fields: Optional["CustomFieldStore"] = None,
    ):
        super().__init__(items, audit_logger, latency_ms)
        self._groups = groups
        self._custom_fields = custom_fields
        self._vouchers: Optional["VoucherStore"] = None

    def attach_vouchers(self, vouchers: "VoucherStore") -> None:
        self._vouchers = vouchers

    def _changes(self, item: Ledger) -> dict:
        return {
            "name": item.name,
            "group_id": item.group_id,
            "opening_balance": str(item.opening_balance),
        }

    async def _validate(self, item: Ledger) -> Ledger:
        if self._groups is not None and not await self._groups.exists(item.group_id):
            raise NotFoundError(
                f"Group not found: {item.group_id}",
                user_message="Group not found",
            )
        if self._custom_fields is not None:
            await self._custom_fields.ensure_valid_values(
                CustomFieldEntity.LEDGER, item.custom_fields
            )
        if item.currency is None:
            item = item.model_copy(update={"currency": get_settings().app.base_currency})
        return item

    async def _prepare_create(self, item: Ledger) -> Ledger:
        return await self._validate(item)

    async def _prepare_update(self, existing: Ledger, item: Ledger) -> Ledger:
        return await self._validate(item)

    async def _check_delete(self, existing: Ledger) -> None:
        if self._vouchers is not None and await self._vouchers.uses_ledger(existing.id):
            raise ValidationError(
                f"Ledger {existing.id} is used by vouchers",
                user_message="Cannot delete a ledger that has vouchers posted to it",
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def exists(self, ledger_id: int) -> bool:
        return ledger_id in self._items

    async def any_in_group(self, group_id: int) -> bool:
        return any(ledger.group_id == group_id for ledger in self._items.values())

    async def get_by_group(self, group_id: int) -> list[Ledger]:
        await self._delay()
        return [self._snapshot(ledger) for ledger in self._values() if ledger.group_id == group_id]

    async def get_active(self) -> list[Ledger]:
        await self._delay()
        return [self._snapshot(ledger) for ledger in self._values() if ledger.is_active]

    async def search(
        self,
        query: str = "",
        group_id: Optional[int] = None,
        currency: Optional[str] = None,
        gst_applicable: Optional[bool] = None,
    ) -> list[Ledger]:
        await self._delay()
        needle = query.strip().lower()
        results = []
        for ledger in self._values():
            if needle and needle not in ledger.name.lower():
                continue
            if group_id is not None and ledger.group_id != group_id:
                continue
            if currency is not None and ledger.currency != currency.upper():
                continue
            if gst_applicable is not None and ledger.gst_applicable != gst_applicable:
                continue
            results.append(self._snapshot(ledger))
        return results
