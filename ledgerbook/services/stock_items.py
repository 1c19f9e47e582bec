"""
Stock Item Store

Inventory items referenced from voucher entries' stock_details.
Names are unique regardless of case.
"""

from decimal import Decimal

from ledgerbook.errors import DuplicateKeyError
from ledgerbook.models.accounts import StockItem
from ledgerbook.services.storage import InMemoryRepository


class StockItemStore(InMemoryRepository[StockItem]):
    """Repository of stock items."""

    model = StockItem
    entity_type = "stock_item"
    entity_label = "Stock item"

    def _changes(self, item: StockItem) -> dict:
        return {
            "name": item.name,
            "unit": item.unit,
            "opening_value": str(item.opening_value),
        }

    def _check_name(self, item: StockItem, item_id=None) -> None:
        for existing in self._items.values():
            if existing.id != item_id and existing.name.lower() == item.name.lower():
                raise DuplicateKeyError(
                    f"Stock item already exists: {item.name}",
                    user_message="A stock item with this name already exists",
                )

    async def _prepare_create(self, item: StockItem) -> StockItem:
        self._check_name(item)
        return item

    async def _prepare_update(self, existing: StockItem, item: StockItem) -> StockItem:
        self._check_name(item, existing.id)
        return item

    async def search(self, query: str = "") -> list[StockItem]:
        """Match on name or HSN code."""
        await self._delay()
        needle = query.strip().lower()
        return [
            self._snapshot(item) for item in self._values()
            if not needle or needle in item.name.lower() or needle in item.hsn_code
        ]

    async def get_total_opening_value(self) -> Decimal:
        await self._delay()
        return sum((item.opening_value for item in self._values()), Decimal("0"))
