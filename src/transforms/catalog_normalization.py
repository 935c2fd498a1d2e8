"""Catalog document normalization and schema migration.

This module turns any decoded document into a current-version
CatalogState. It never raises: malformed input degrades to defaults,
and cleaning is a fixed point so repeated normalization is stable.
"""

from __future__ import annotations

import math
import time
import uuid
from typing import Callable, Iterable, Mapping, Sequence, TypeVar

from core.constants import (
    CURRENT_SCHEMA_VERSION,
    DEFAULT_CATEGORIES,
    DEFAULT_PRODUCT_CATEGORY,
    DEFAULT_PRODUCT_MAKE,
    DEFAULT_PRODUCT_MODEL,
    DEFAULT_RACK_HEIGHT,
    DEFAULT_RACK_LENGTH,
    DEFAULT_RACK_NAME,
    DEFAULT_RACK_WEIGHT,
    DEFAULT_RACK_WIDTH,
    LEGACY_MAKE_NAME,
    MAX_RACK_UNITS,
    MIN_RACK_UNITS,
)
from core.logging_config import get_logger
from core.types import (
    CatalogState,
    Number,
    Product,
    ProductDims,
    Rack,
    RackItem,
    seed_catalog_state,
)
from transforms.taxonomy import TaxonomyBuilder

_LOGGER = get_logger(__name__)

Clock = Callable[[], int]
_RecordT = TypeVar("_RecordT", Product, Rack)


def current_time_ms() -> int:
    """Return wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def new_record_id() -> str:
    return str(uuid.uuid4())


def normalize_catalog(raw: object, clock: Clock = current_time_ms) -> CatalogState:
    """Normalize any decoded document into the current schema.

    Args:
        raw: Decoded JSON value, mapping, or an existing CatalogState.
        clock: Millisecond clock used for missing product timestamps.

    Returns:
        Canonical current-version catalog state.
    """
    if isinstance(raw, CatalogState):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping):
        return seed_catalog_state()
    try:
        schema_version = raw.get("schemaVersion")
        if _is_version(schema_version, CURRENT_SCHEMA_VERSION):
            return _normalize_current(raw, clock)
        if _is_version(schema_version, 2):
            return _normalize_v2(raw, clock)
        return _migrate_legacy(raw, clock)
    except (TypeError, ValueError, AttributeError, OverflowError) as error:
        _LOGGER.warning("catalog_normalize_failed", error=str(error))
        return seed_catalog_state()


def clean_product(raw: object, clock: Clock = current_time_ms) -> Product:
    """Clean one product payload into a Product.

    Missing ids are generated, scalar fields are stringified or defaulted,
    legacy ``width/height/length`` and ``image`` fields are folded in, and
    ``rackU`` is clamped into the supported range.

    Args:
        raw: Product mapping or Product instance.
        clock: Millisecond clock used when ``updatedAt`` is missing.

    Returns:
        Cleaned product.
    """
    if isinstance(raw, Product):
        raw = raw.to_dict()
    payload: Mapping[str, object] = raw if isinstance(raw, Mapping) else {}
    dims_payload = payload.get("dims")
    dims: Mapping[str, object] = dims_payload if isinstance(dims_payload, Mapping) else {}
    updated_at = coerce_number(payload.get("updatedAt"), None)
    return Product(
        id=_text(payload.get("id"), "") or new_record_id(),
        name=_text(payload.get("name"), ""),
        category=_taxonomy_name(payload.get("category"), DEFAULT_PRODUCT_CATEGORY),
        make=_taxonomy_name(payload.get("make"), DEFAULT_PRODUCT_MAKE),
        model=_taxonomy_name(payload.get("model"), DEFAULT_PRODUCT_MODEL),
        type_tags=unique_strings(_sequence(payload.get("typeTags"))),
        dims=ProductDims(
            w=_dimension(dims.get("w"), payload.get("width")),
            h=_dimension(dims.get("h"), payload.get("height")),
            l=_dimension(dims.get("l"), payload.get("length")),
        ),
        weight=_number_or(payload.get("weight"), 0),
        description=_text(payload.get("description"), ""),
        images=_clean_images(payload),
        rack_u=_clamp_rack_units(payload.get("rackU")),
        updated_at=int(updated_at) if updated_at is not None else clock(),
    )


def clean_rack(raw: object) -> Rack:
    """Clean one rack payload into a Rack.

    Args:
        raw: Rack mapping or Rack instance.

    Returns:
        Cleaned rack with well-formed line items only.
    """
    if isinstance(raw, Rack):
        raw = raw.to_dict()
    payload: Mapping[str, object] = raw if isinstance(raw, Mapping) else {}
    return Rack(
        id=_text(payload.get("id"), "") or new_record_id(),
        name=_text(payload.get("name"), DEFAULT_RACK_NAME),
        width=_number_or(payload.get("width"), DEFAULT_RACK_WIDTH),
        height=_number_or(payload.get("height"), DEFAULT_RACK_HEIGHT),
        length=_number_or(payload.get("length"), DEFAULT_RACK_LENGTH),
        weight=_number_or(payload.get("weight"), DEFAULT_RACK_WEIGHT),
        items=clean_rack_items(_sequence(payload.get("items"))),
    )


def clean_rack_items(raw_items: Sequence[object]) -> tuple[RackItem, ...]:
    """Keep only line items that carry a product id, with qty of at least 1."""
    items: list[RackItem] = []
    for raw_item in raw_items:
        if isinstance(raw_item, RackItem):
            raw_item = raw_item.to_dict()
        if not isinstance(raw_item, Mapping):
            continue
        product_id = _text(raw_item.get("productId"), "")
        if not product_id:
            continue
        items.append(RackItem(product_id=product_id, qty=clamp_quantity(raw_item.get("qty"), 1)))
    return tuple(items)


def clamp_quantity(value: object, default: int) -> int:
    """Floor a quantity to an integer of at least 1."""
    number = coerce_number(value, default)
    return max(1, math.floor(number if number is not None else default))


def coerce_number(value: object, default: Number | None) -> Number | None:
    """Coerce a JSON-ish value to a finite number.

    Args:
        value: Raw value; numeric strings are accepted.
        default: Value returned for missing, non-numeric, or non-finite input.

    Returns:
        Int for integral values, float otherwise, or the default.
    """
    if value is None or isinstance(value, bool):
        number: float = float(value) if isinstance(value, bool) else math.nan
    elif isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return default
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    if not math.isfinite(number):
        return default
    return int(number) if number.is_integer() else number


def unique_strings(values: Sequence[object], strip: bool = False) -> tuple[str, ...]:
    """Stringify, drop empty entries, and de-duplicate preserving order."""
    seen: list[str] = []
    for value in values:
        if value is None or value is False:
            continue
        text = str(value).strip() if strip else str(value)
        if text and text not in seen:
            seen.append(text)
    return tuple(seen)


def _normalize_current(raw: Mapping[str, object], clock: Clock) -> CatalogState:
    categories_payload = raw.get("categories")
    categories = (
        _sequence(categories_payload)
        if isinstance(categories_payload, (list, tuple))
        else DEFAULT_CATEGORIES
    )
    return _build_state(raw, categories, clock)


def _normalize_v2(raw: Mapping[str, object], clock: Clock) -> CatalogState:
    # v2 carried the same taxonomy maps; racks may be absent.
    return _normalize_current(raw, clock)


def _build_state(
    raw: Mapping[str, object],
    categories: Sequence[object],
    clock: Clock,
) -> CatalogState:
    taxonomy = TaxonomyBuilder(
        unique_strings(categories, strip=True),
        _clean_makes(raw.get("makes")),
        _clean_models(raw.get("models")),
    )
    state = CatalogState(
        schema_version=CURRENT_SCHEMA_VERSION,
        products=_unique_by_id(
            clean_product(item, clock) for item in _sequence(raw.get("products"))
        ),
        racks=_unique_by_id(clean_rack(item) for item in _sequence(raw.get("racks"))),
    )
    return taxonomy.apply(state)


def _migrate_legacy(raw: Mapping[str, object], clock: Clock) -> CatalogState:
    """Migrate a schema-1 (or unversioned) document.

    Per-category ``subcats`` become models under a ``Generic`` make, and
    legacy ``subcategory`` product fields become the product model.
    """
    categories_payload = _sequence(raw.get("categories"))
    categories = unique_strings(categories_payload, strip=True) or DEFAULT_CATEGORIES
    taxonomy = TaxonomyBuilder(categories)
    subcats = raw.get("subcats")
    if isinstance(subcats, Mapping):
        for category_key, subcat_values in subcats.items():
            category = str(category_key).strip()
            if not category:
                continue
            taxonomy.add_models(
                category,
                LEGACY_MAKE_NAME,
                unique_strings(_sequence(subcat_values), strip=True),
            )
    products: list[Product] = []
    for raw_product in _sequence(raw.get("products")):
        payload = dict(raw_product) if isinstance(raw_product, Mapping) else {}
        categories_now = taxonomy.categories
        fallback = categories_now[0] if categories_now else DEFAULT_PRODUCT_CATEGORY
        payload["category"] = _taxonomy_name(payload.get("category"), fallback)
        payload["make"] = _taxonomy_name(payload.get("make"), DEFAULT_PRODUCT_MAKE)
        payload["model"] = _taxonomy_name(
            payload.get("model"),
            _taxonomy_name(payload.get("subcategory"), DEFAULT_PRODUCT_MODEL),
        )
        product = clean_product(payload, clock)
        taxonomy.ensure_product(product)
        products.append(product)
    state = CatalogState(schema_version=CURRENT_SCHEMA_VERSION, products=_unique_by_id(products))
    return taxonomy.apply(state)


def _clean_makes(raw: object) -> dict[str, list[str]]:
    makes: dict[str, list[str]] = {}
    if not isinstance(raw, Mapping):
        return makes
    for category_key, values in raw.items():
        category = str(category_key).strip()
        if not category:
            continue
        bucket = makes.setdefault(category, [])
        bucket.extend(unique_strings(_sequence(values), strip=True))
    return makes


def _clean_models(raw: object) -> dict[str, dict[str, list[str]]]:
    models: dict[str, dict[str, list[str]]] = {}
    if not isinstance(raw, Mapping):
        return models
    for category_key, by_make in raw.items():
        category = str(category_key).strip()
        if not category or not isinstance(by_make, Mapping):
            continue
        category_models = models.setdefault(category, {})
        for make_key, values in by_make.items():
            make = str(make_key).strip()
            if not make:
                continue
            bucket = category_models.setdefault(make, [])
            bucket.extend(unique_strings(_sequence(values), strip=True))
    return models


def _unique_by_id(records: Iterable[_RecordT]) -> tuple[_RecordT, ...]:
    """Keep the last record for each id, at the position of its first occurrence."""
    by_id: dict[str, _RecordT] = {}
    for record in records:
        by_id[record.id] = record
    return tuple(by_id.values())


def _clean_images(payload: Mapping[str, object]) -> tuple[str, ...]:
    images = [str(item) for item in _sequence(payload.get("images")) if item]
    if images:
        return tuple(images)
    legacy_image = _text(payload.get("image"), "")
    return (legacy_image,) if legacy_image else ()


def _clamp_rack_units(value: object) -> int | None:
    if value is None or value == "":
        return None
    number = coerce_number(value, None)
    if number is None:
        return None
    return int(max(MIN_RACK_UNITS, min(MAX_RACK_UNITS, number)))


def _dimension(value: object, legacy_value: object) -> Number:
    return _number_or(value if value is not None else legacy_value, 0)


def _number_or(value: object, default: Number) -> Number:
    number = coerce_number(value, default)
    return number if number is not None else default


def _text(value: object, default: str) -> str:
    if value is None or value is False or value == "":
        return default
    return str(value)


def _taxonomy_name(value: object, default: str) -> str:
    return _text(value, "").strip() or default


def _sequence(value: object) -> Sequence[object]:
    if isinstance(value, (list, tuple)):
        return value
    return ()


def _is_version(value: object, expected: int) -> bool:
    return not isinstance(value, bool) and isinstance(value, (int, float)) and value == expected
