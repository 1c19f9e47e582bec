"""
Group Store

Groups classify ledgers and decide which report section they land in.
"""

from typing import Optional, TYPE_CHECKING

from ledgerbook.errors import NotFoundError, ValidationError
from ledgerbook.models.accounts import Group, GroupNature
from ledgerbook.services.storage import InMemoryRepository

if TYPE_CHECKING:
    from ledgerbook.services.ledgers import LedgerStore


class GroupStore(InMemoryRepository[Group]):
    """
    Repository of account groups.

    Rules:
    - A parent group must exist
    - A sub-group carries the same nature as its parent
    - A role must fit the nature (loans and equity are liabilities,
      the other roles are assets)
    - A group with sub-groups or ledgers cannot be deleted

    The ledger store is attached after construction, since ledgers
    need the group store to exist first.
    """

    model = Group
    entity_type = "group"
    entity_label = "Group"

    _ledgers: Optional["LedgerStore"] = None

    def attach_ledgers(self, ledgers: "LedgerStore") -> None:
        self._ledgers = ledgers

    def _changes(self, item: Group) -> dict:
        return {"name": item.name, "nature": item.nature.value}

    def _check_parent(self, item: Group, item_id: Optional[int] = None) -> None:
        if item.parent_id is None:
            return
        if item_id is not None and item.parent_id == item_id:
            raise ValidationError(
                f"Group {item_id} cannot be its own parent",
                user_message="A group cannot be its own parent",
            )
        parent = self._items.get(item.parent_id)
        if parent is None:
            raise NotFoundError(
                f"Parent group not found: {item.parent_id}",
                user_message="Parent group not found",
            )
        if parent.nature != item.nature:
            raise ValidationError(
                f"Group nature {item.nature.value} differs from parent "
                f"nature {parent.nature.value}",
                user_message=f"A sub-group of {parent.name} must be {parent.nature.value}",
            )

    def _check_role(self, item: Group) -> None:
        if item.role is not None and item.role.nature != item.nature:
            raise ValidationError(
                f"Role {item.role.value} needs nature {item.role.nature.value}, "
                f"got {item.nature.value}",
                user_message=f"A {item.role.value.replace('_', ' ')} group must be {item.role.nature.value}",
            )

    async def _prepare_create(self, item: Group) -> Group:
        self._check_parent(item)
        self._check_role(item)
        return item

    async def _prepare_update(self, existing: Group, item: Group) -> Group:
        self._check_parent(item, existing.id)
        self._check_role(item)
        return item

    async def _check_delete(self, existing: Group) -> None:
        if any(g.parent_id == existing.id for g in self._items.values()):
            raise ValidationError(
                f"Group {existing.id} has sub-groups",
                user_message="Cannot delete a group that has sub-groups",
            )
        if self._ledgers is not None and await self._ledgers.any_in_group(existing.id):
            raise ValidationError(
                f"Group {existing.id} still holds ledgers",
                user_message="Cannot delete a group that has ledgers",
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def exists(self, group_id: int) -> bool:
        return group_id in self._items

    async def get_by_nature(self, nature: GroupNature) -> list[Group]:
        await self._delay()
        return [self._snapshot(g) for g in self._values() if g.nature == nature]

    async def get_root_groups(self) -> list[Group]:
        """Primary groups (no parent)."""
        await self._delay()
        return [self._snapshot(g) for g in self._values() if g.parent_id is None]

    async def search(
        self,
        query: str = "",
        nature: Optional[GroupNature] = None,
    ) -> list[Group]:
        await self._delay()
        needle = query.strip().lower()
        results = []
        for group in self._values():
            if nature is not None and group.nature != nature:
                continue
            if needle and needle not in group.name.lower() and needle not in (
                group.description or ""
            ).lower():
                continue
            results.append(self._snapshot(group))
        return results

    async def nature_map(self) -> dict[int, GroupNature]:
        """Group id to nature, for the report engine."""
        return {gid: g.nature for gid, g in self._items.items()}
