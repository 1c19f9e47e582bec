"""
Currency Store

Exactly one currency is the base currency once any is marked as such.
Codes are unique regardless of case.
"""

from typing import Optional

from ledgerbook.errors import DuplicateKeyError, NotFoundError, ValidationError
from ledgerbook.models.accounts import Currency
from ledgerbook.models.audit import AuditOperation
from ledgerbook.services.storage import InMemoryRepository


class CurrencyStore(InMemoryRepository[Currency]):
    """Repository of currencies."""

    model = Currency
    entity_type = "currency"
    entity_label = "Currency"

    def _changes(self, item: Currency) -> dict:
        return {"code": item.code, "exchange_rate": str(item.exchange_rate)}

    def _check_code(self, code: str, item_id: Optional[int] = None) -> None:
        for existing in self._items.values():
            if existing.id != item_id and existing.code == code.upper():
                raise DuplicateKeyError(
                    f"Currency code already exists: {code}",
                    user_message="Currency code already exists",
                )

    async def _prepare_create(self, item: Currency) -> Currency:
        self._check_code(item.code)
        if item.is_base_currency:
            self._clear_base()
        return item

    async def _prepare_update(self, existing: Currency, item: Currency) -> Currency:
        self._check_code(item.code, existing.id)
        # Base status only moves through set_base_currency
        return item.model_copy(update={"is_base_currency": existing.is_base_currency})

    async def _check_delete(self, existing: Currency) -> None:
        if existing.is_base_currency:
            raise ValidationError(
                f"Currency {existing.code} is the base currency",
                user_message="Cannot delete base currency",
            )

    def _clear_base(self) -> None:
        for item_id, existing in self._items.items():
            if existing.is_base_currency:
                self._items[item_id] = existing.model_copy(update={"is_base_currency": False})

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_by_code(self, code: str) -> Currency:
        await self._delay()
        for currency in self._items.values():
            if currency.code == code.upper():
                return self._snapshot(currency)
        raise NotFoundError(
            f"Currency not found: {code}",
            user_message="Currency not found",
        )

    async def get_active(self) -> list[Currency]:
        await self._delay()
        return [self._snapshot(c) for c in self._values() if c.is_active]

    async def get_base_currency(self) -> Optional[Currency]:
        await self._delay()
        for currency in self._values():
            if currency.is_base_currency:
                return self._snapshot(currency)
        return None

    async def set_base_currency(self, currency_id: int) -> Currency:
        """Make one currency the base, clearing the flag on all others."""
        await self._delay()
        async with self._lock:
            existing = self._require(currency_id)
            self._clear_base()
            stored = existing.model_copy(update={"is_base_currency": True})
            self._items[currency_id] = stored
            self._version += 1

        await self._audit(
            currency_id,
            AuditOperation.UPDATE,
            {"is_base_currency": True},
            existing,
            stored,
        )
        return self._snapshot(stored)
