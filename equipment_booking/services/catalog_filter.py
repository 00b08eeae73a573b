"""Client-side catalog search.

Cheap enough to run on every keystroke: one linear pass, no I/O, and malformed
bounds are dropped instead of raising.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from equipment_booking.schemas.catalog import CatalogFilter, EquipmentItem
from equipment_booking.services.form_fields import clean_text, coerce_decimal


def _matches_text(item: EquipmentItem, needle: str) -> bool:
    for field in (item.name, item.description, item.manufacturer, item.model):
        if field and needle in field.lower():
            return True
    return False


def filter_catalog(
    items: Iterable[EquipmentItem],
    criteria: CatalogFilter | dict[str, Any] | None = None,
) -> list[EquipmentItem]:
    if criteria is None:
        criteria = CatalogFilter()
    elif isinstance(criteria, dict):
        criteria = CatalogFilter.model_validate(criteria)

    needle = clean_text(criteria.text).lower()
    category = clean_text(criteria.categoryName).lower()
    min_price = coerce_decimal(criteria.minPrice)
    max_price = coerce_decimal(criteria.maxPrice)

    matched: list[EquipmentItem] = []
    for item in items:
        if needle and not _matches_text(item, needle):
            continue
        if category and (item.category_name or "").lower() != category:
            continue
        if min_price is not None and item.dailyPrice < min_price:
            continue
        if max_price is not None and item.dailyPrice > max_price:
            continue
        matched.append(item)
    return matched


def category_names(items: Iterable[EquipmentItem]) -> list[str]:
    seen: set[str] = set()
    names: list[str] = []
    for item in items:
        name = item.category_name
        if not name or name.lower() in seen:
            continue
        seen.add(name.lower())
        names.append(name)
    return names
