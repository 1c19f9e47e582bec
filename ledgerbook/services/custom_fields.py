"""
Custom Field Store

User-defined fields for ledgers and vouchers. A field defined for
entity type "all" applies to both.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ledgerbook.errors import DuplicateKeyError, ValidationError
from ledgerbook.models.accounts import (
    CustomFieldDefinition,
    CustomFieldEntity,
    utc_now,
)
from ledgerbook.services.storage import InMemoryRepository

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def validate_field_value(field_def: CustomFieldDefinition, value: Any) -> Optional[str]:
    """
    Check one value against its field definition.

    Returns:
        An error message naming the field's label, or None if the value is fine.
    """
    label = field_def.label
    if field_def.required and _is_blank(value):
        return f"{label} is required"

    rule = field_def.validation
    if _is_blank(value) or rule is None:
        return None

    if rule.type == "number":
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            return f"{label} must be a valid number"
        if not number.is_finite():
            return f"{label} must be a valid number"
        if rule.min is not None and number < Decimal(str(rule.min)):
            return f"{label} must be at least {rule.min:g}"
        if rule.max is not None and number > Decimal(str(rule.max)):
            return f"{label} must be at most {rule.max:g}"

    elif rule.type == "text":
        text = str(value)
        if rule.min is not None and len(text) < rule.min:
            return f"{label} must be at least {rule.min:g} characters"
        if rule.max is not None and len(text) > rule.max:
            return f"{label} must be at most {rule.max:g} characters"
        if rule.pattern and not re.search(rule.pattern, text):
            return f"{label} format is invalid"

    elif rule.type == "email":
        if not EMAIL_PATTERN.match(str(value)):
            return f"{label} must be a valid email address"

    return None


class CustomFieldStore(InMemoryRepository[CustomFieldDefinition]):
    """Repository of custom field definitions."""

    model = CustomFieldDefinition
    entity_type = "custom_field"
    entity_label = "Custom field"

    validate_field_value = staticmethod(validate_field_value)

    def _changes(self, item: CustomFieldDefinition) -> dict:
        return {"name": item.name, "entity_type": item.entity_type.value}

    def _check_name(self, item: CustomFieldDefinition, item_id: Optional[int] = None) -> None:
        for existing in self._items.values():
            if (
                existing.id != item_id
                and existing.name == item.name
                and existing.entity_type == item.entity_type
            ):
                raise DuplicateKeyError(
                    f"Custom field {item.name} already exists for {item.entity_type.value}",
                    user_message="Field name already exists for this entity type",
                )

    async def _prepare_create(self, item: CustomFieldDefinition) -> CustomFieldDefinition:
        self._check_name(item)
        now = utc_now()
        return item.model_copy(update={"created_at": now, "updated_at": now})

    async def _prepare_update(
        self,
        existing: CustomFieldDefinition,
        item: CustomFieldDefinition,
    ) -> CustomFieldDefinition:
        self._check_name(item, existing.id)
        return item.model_copy(
            update={"created_at": existing.created_at, "updated_at": utc_now()}
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_by_entity(self, entity_type: CustomFieldEntity) -> list[CustomFieldDefinition]:
        """Fields for an entity type, including those defined for all."""
        await self._delay()
        return [
            self._snapshot(f) for f in self._values()
            if f.applies_to(CustomFieldEntity(entity_type))
        ]

    async def search(
        self,
        query: str = "",
        entity_type: Optional[CustomFieldEntity] = None,
        field_type: Optional[str] = None,
    ) -> list[CustomFieldDefinition]:
        await self._delay()
        needle = query.strip().lower()
        results = []
        for field in self._values():
            if entity_type is not None and entity_type != CustomFieldEntity.ALL:
                if field.entity_type != CustomFieldEntity(entity_type):
                    continue
            if field_type is not None and field.field_type != field_type:
                continue
            if needle:
                haystack = " ".join([
                    field.name,
                    field.label,
                    field.description or "",
                    field.entity_type.value,
                ]).lower()
                if needle not in haystack:
                    continue
            results.append(self._snapshot(field))
        return results

    async def validate_values(
        self,
        entity_type: CustomFieldEntity,
        values: dict[str, Any],
    ) -> list[str]:
        """All error messages for a set of custom field values."""
        errors = []
        for field in self._values():
            if not field.applies_to(CustomFieldEntity(entity_type)):
                continue
            error = validate_field_value(field, values.get(field.name))
            if error:
                errors.append(error)
        return errors

    async def ensure_valid_values(
        self,
        entity_type: CustomFieldEntity,
        values: dict[str, Any],
    ) -> None:
        """
        Raises:
            ValidationError: If any custom field value is invalid
        """
        errors = await self.validate_values(entity_type, values)
        if errors:
            raise ValidationError(
                "; ".join(errors),
                user_message=errors[0],
                issues=errors,
            )
