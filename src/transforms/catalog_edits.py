"""Pure catalog edit operations.

Each function takes a CatalogState and returns the edited copy, or None
when the edit references something that does not exist or names are
invalid. Callers decide whether and how to persist the result.
"""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Callable, Iterable, Mapping, Sequence

from core.types import CatalogState, Product, Rack, RackItem
from transforms.catalog_normalization import (
    Clock,
    clamp_quantity,
    clean_product,
    clean_rack,
    clean_rack_items,
    coerce_number,
    current_time_ms,
)
from transforms.taxonomy import TaxonomyBuilder


def ensure_category(state: CatalogState, category: str) -> CatalogState | None:
    """Register a category if missing.

    Args:
        state: Current catalog.
        category: Category name, trimmed before use.

    Returns:
        Updated catalog, or None when the name is empty.
    """
    name = _clean_name(category)
    if not name:
        return None
    taxonomy = TaxonomyBuilder.from_state(state)
    taxonomy.add_category(name)
    return taxonomy.apply(state)


def ensure_make(state: CatalogState, category: str, make: str) -> CatalogState | None:
    """Register a make, creating its category when needed."""
    category_name, make_name = _clean_name(category), _clean_name(make)
    if not category_name or not make_name:
        return None
    taxonomy = TaxonomyBuilder.from_state(state)
    taxonomy.add_make(category_name, make_name)
    return taxonomy.apply(state)


def ensure_model(
    state: CatalogState,
    category: str,
    make: str,
    model: str,
) -> CatalogState | None:
    """Register a model, creating its category and make when needed."""
    names = (_clean_name(category), _clean_name(make), _clean_name(model))
    if not all(names):
        return None
    taxonomy = TaxonomyBuilder.from_state(state)
    taxonomy.add_model(*names)
    return taxonomy.apply(state)


def delete_category(
    state: CatalogState,
    category: str,
    cascade: bool = False,
) -> CatalogState | None:
    """Remove a category with its make and model maps.

    Args:
        state: Current catalog.
        category: Category to remove.
        cascade: Also delete products in the category and prune rack items.

    Returns:
        Updated catalog, or None when nothing matched.
    """
    name = _clean_name(category)
    taxonomy = TaxonomyBuilder.from_state(state)
    removed = taxonomy.remove_category(name)
    updated = taxonomy.apply(state)
    if cascade:
        pruned = _delete_products_where(updated, lambda product: product.category == name)
        if pruned is not None:
            return pruned
    return updated if removed else None


def delete_make(
    state: CatalogState,
    category: str,
    make: str,
    cascade: bool = False,
) -> CatalogState | None:
    """Remove a make and its model list from a category."""
    category_name, make_name = _clean_name(category), _clean_name(make)
    taxonomy = TaxonomyBuilder.from_state(state)
    removed = taxonomy.remove_make(category_name, make_name)
    updated = taxonomy.apply(state)
    if cascade:
        pruned = _delete_products_where(
            updated,
            lambda product: product.category == category_name and product.make == make_name,
        )
        if pruned is not None:
            return pruned
    return updated if removed else None


def delete_model(
    state: CatalogState,
    category: str,
    make: str,
    model: str,
) -> CatalogState | None:
    """Remove a model, its products, and their rack line items.

    Returns:
        Updated catalog, or None when the make has no model list.
    """
    category_name, make_name, model_name = (
        _clean_name(category),
        _clean_name(make),
        _clean_name(model),
    )
    taxonomy = TaxonomyBuilder.from_state(state)
    if not taxonomy.has_make_models(category_name, make_name):
        return None
    taxonomy.remove_model(category_name, make_name, model_name)
    updated = taxonomy.apply(state)
    pruned = _delete_products_where(
        updated,
        lambda product: (
            product.category == category_name
            and product.make == make_name
            and product.model == model_name
        ),
    )
    return pruned if pruned is not None else updated


def upsert_product(
    state: CatalogState,
    raw_product: Mapping[str, object] | Product,
    clock: Clock = current_time_ms,
) -> tuple[CatalogState, Product]:
    """Clean, timestamp, and insert or replace a product by id.

    The product's category, make, and model are registered in the
    taxonomy when missing.

    Returns:
        Updated catalog and the stored product.
    """
    payload = raw_product.to_dict() if isinstance(raw_product, Product) else dict(raw_product)
    payload["updatedAt"] = clock()
    product = clean_product(payload, clock)
    taxonomy = TaxonomyBuilder.from_state(state)
    taxonomy.ensure_product(product)
    products = list(state.products)
    index = _index_of(products, product.id)
    if index is None:
        products.append(product)
    else:
        products[index] = product
    return taxonomy.apply(replace(state, products=tuple(products))), product


def delete_product(state: CatalogState, product_id: str) -> CatalogState | None:
    """Remove a product and prune it from every rack."""
    target_id = str(product_id or "")
    return _delete_products_where(state, lambda product: product.id == target_id)


def upsert_rack(
    state: CatalogState,
    raw_rack: Mapping[str, object] | Rack,
) -> tuple[CatalogState, Rack]:
    """Clean and insert or replace a rack by id."""
    rack = clean_rack(raw_rack)
    racks = list(state.racks)
    index = _index_of(racks, rack.id)
    if index is None:
        racks.append(rack)
    else:
        racks[index] = rack
    return replace(state, racks=tuple(racks)), rack


def delete_rack(state: CatalogState, rack_id: str) -> CatalogState | None:
    target_id = str(rack_id or "")
    racks = tuple(rack for rack in state.racks if rack.id != target_id)
    if len(racks) == len(state.racks):
        return None
    return replace(state, racks=racks)


def add_product_to_rack(
    state: CatalogState,
    rack_id: str,
    product_id: str,
    qty: object = 1,
) -> CatalogState | None:
    """Increase a line item quantity, appending the line when missing."""
    target_id = str(product_id or "")
    rack = _find_rack(state, rack_id)
    if rack is None or not target_id:
        return None
    amount = clamp_quantity(qty, 1)
    items = list(rack.items)
    index = _item_index(items, target_id)
    if index is None:
        items.append(RackItem(product_id=target_id, qty=amount))
    else:
        items[index] = replace(items[index], qty=max(1, items[index].qty + amount))
    return _replace_items(state, rack, items)


def remove_product_from_rack(
    state: CatalogState,
    rack_id: str,
    product_id: str,
    qty: object = 1,
) -> CatalogState | None:
    """Decrease a line item quantity; the line is removed at zero."""
    rack = _find_rack(state, rack_id)
    if rack is None:
        return None
    items = list(rack.items)
    index = _item_index(items, str(product_id or ""))
    if index is None:
        return None
    remaining = max(0, items[index].qty - clamp_quantity(qty, 1))
    if remaining <= 0:
        del items[index]
    else:
        items[index] = replace(items[index], qty=remaining)
    return _replace_items(state, rack, items)


def set_rack_item_qty(
    state: CatalogState,
    rack_id: str,
    product_id: str,
    qty: object,
) -> CatalogState | None:
    """Set a line item quantity; zero or less removes, missing lines are added."""
    target_id = str(product_id or "")
    rack = _find_rack(state, rack_id)
    if rack is None or not target_id:
        return None
    number = coerce_number(qty, 0)
    amount = max(0, math.floor(number if number is not None else 0))
    items = list(rack.items)
    index = _item_index(items, target_id)
    if index is None:
        if amount > 0:
            items.append(RackItem(product_id=target_id, qty=amount))
    elif amount <= 0:
        del items[index]
    else:
        items[index] = replace(items[index], qty=amount)
    return _replace_items(state, rack, items)


def set_rack_items(
    state: CatalogState,
    rack_id: str,
    items: Iterable[Mapping[str, object] | RackItem] | None,
) -> CatalogState | None:
    """Replace a rack's line items wholesale."""
    rack = _find_rack(state, rack_id)
    if rack is None:
        return None
    return _replace_items(state, rack, clean_rack_items(list(items or ())))


def move_rack_item(
    state: CatalogState,
    rack_id: str,
    from_index: int,
    to_index: int,
) -> CatalogState | None:
    """Move one line item to a new position.

    Returns:
        Updated catalog, or None when the rack is unknown or either index
        is not an int inside ``[0, len(items))``.
    """
    rack = _find_rack(state, rack_id)
    if rack is None:
        return None
    if not _is_index(from_index) or not _is_index(to_index):
        return None
    items = list(rack.items)
    if not (0 <= from_index < len(items) and 0 <= to_index < len(items)):
        return None
    moved = items.pop(from_index)
    items.insert(to_index, moved)
    return _replace_items(state, rack, items)


def prune_rack_items(state: CatalogState, removed_ids: set[str]) -> CatalogState:
    """Drop rack line items that reference any of the removed product ids."""
    if not removed_ids:
        return state
    racks = tuple(
        replace(
            rack,
            items=tuple(item for item in rack.items if item.product_id not in removed_ids),
        )
        for rack in state.racks
    )
    return replace(state, racks=racks)


def _delete_products_where(
    state: CatalogState,
    predicate: Callable[[Product], bool],
) -> CatalogState | None:
    removed_ids = {product.id for product in state.products if predicate(product)}
    if not removed_ids:
        return None
    products = tuple(product for product in state.products if product.id not in removed_ids)
    return prune_rack_items(replace(state, products=products), removed_ids)


def _find_rack(state: CatalogState, rack_id: str) -> Rack | None:
    target_id = str(rack_id or "")
    for rack in state.racks:
        if rack.id == target_id:
            return rack
    return None


def _replace_items(state: CatalogState, rack: Rack, items: list[RackItem]) -> CatalogState:
    updated_rack = replace(rack, items=tuple(items))
    racks = tuple(updated_rack if item.id == rack.id else item for item in state.racks)
    return replace(state, racks=racks)


def _index_of(records: Sequence[Product | Rack], record_id: str) -> int | None:
    for index, record in enumerate(records):
        if record.id == record_id:
            return index
    return None


def _item_index(items: list[RackItem], product_id: str) -> int | None:
    for index, item in enumerate(items):
        if item.product_id == product_id:
            return index
    return None


def _clean_name(value: object) -> str:
    return str(value or "").strip()


def _is_index(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
