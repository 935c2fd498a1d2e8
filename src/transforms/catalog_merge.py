"""Id-keyed catalog merge with recency-based conflict resolution.

This module folds an incoming catalog into the current one. Products
are matched by id and the record with the larger ``updatedAt`` wins,
with ties going to the incoming record. Racks are never touched.
"""

from __future__ import annotations

from dataclasses import replace

from core.constants import CURRENT_SCHEMA_VERSION
from core.types import CatalogState, Product
from transforms.catalog_normalization import unique_strings
from transforms.taxonomy import TaxonomyBuilder


def merge_catalogs(current: CatalogState, incoming: CatalogState) -> CatalogState:
    """Merge an incoming catalog into the current one.

    Args:
        current: Catalog currently held by the store.
        incoming: Normalized catalog decoded from an external document.

    Returns:
        Merged catalog with categories unioned, current make and model
        maps kept as a base, and every merged product's taxonomy ensured.
    """
    by_id: dict[str, Product] = {product.id: product for product in current.products}
    for candidate in incoming.products:
        existing = by_id.get(candidate.id)
        by_id[candidate.id] = pick_newer(existing, candidate) if existing else candidate
    taxonomy = TaxonomyBuilder(
        unique_strings([*current.categories, *incoming.categories]),
        current.makes,
        current.models,
    )
    products = tuple(by_id.values())
    for product in products:
        taxonomy.ensure_product(product)
    merged = replace(
        current,
        schema_version=CURRENT_SCHEMA_VERSION,
        products=products,
        racks=current.racks,
    )
    return taxonomy.apply(merged)


def pick_newer(existing: Product, candidate: Product) -> Product:
    """Return the more recently updated product, preferring the candidate on ties."""
    return candidate if candidate.updated_at >= existing.updated_at else existing
