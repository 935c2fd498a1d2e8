"""Shared typed models.

This module defines the immutable catalog document used by the
normalizer, persistence backends, cache, and SDK layers. Instances are
never mutated in place; edits build new objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from core.constants import CURRENT_SCHEMA_VERSION, DEFAULT_CATEGORIES

Number = int | float


@dataclass(frozen=True)
class ProductDims:
    """Product bounding box dimensions."""

    w: Number = 0
    h: Number = 0
    l: Number = 0  # noqa: E741

    def to_dict(self) -> dict[str, Number]:
        return {"w": self.w, "h": self.h, "l": self.l}


@dataclass(frozen=True)
class Product:
    """One catalog product.

    Attributes:
        id: Opaque unique identifier.
        name: Display name.
        category: Taxonomy category.
        make: Taxonomy make within the category.
        model: Taxonomy model within the make.
        type_tags: Unordered, de-duplicated tag strings.
        dims: Width/height/length.
        weight: Product weight.
        description: Free-form description.
        images: Ordered image references (URL, data URI, or relative ref).
        rack_u: Rack height units in [1, 5], or None.
        updated_at: Logical timestamp in epoch milliseconds for merges.
    """

    id: str
    name: str = ""
    category: str = "AV"
    make: str = "Generic"
    model: str = "Default"
    type_tags: tuple[str, ...] = ()
    dims: ProductDims = field(default_factory=ProductDims)
    weight: Number = 0
    description: str = ""
    images: tuple[str, ...] = ()
    rack_u: int | None = None
    updated_at: int = 0

    @property
    def image(self) -> str:
        """Cover image reference, empty when the product has no images."""
        return self.images[0] if self.images else ""

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "make": self.make,
            "model": self.model,
            "typeTags": list(self.type_tags),
            "dims": self.dims.to_dict(),
            "weight": self.weight,
            "description": self.description,
            "image": self.image,
            "images": list(self.images),
            "rackU": self.rack_u,
            "updatedAt": self.updated_at,
        }


@dataclass(frozen=True)
class RackItem:
    """One rack line item referencing a product."""

    product_id: str
    qty: int = 1

    def to_dict(self) -> dict[str, object]:
        return {"productId": self.product_id, "qty": self.qty}


@dataclass(frozen=True)
class Rack:
    """Rack with ordered product line items."""

    id: str
    name: str = "Rack"
    width: Number = 60
    height: Number = 200
    length: Number = 80
    weight: Number = 0
    items: tuple[RackItem, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "width": self.width,
            "height": self.height,
            "length": self.length,
            "weight": self.weight,
            "items": [item.to_dict() for item in self.items],
        }


@dataclass(frozen=True)
class CatalogState:
    """The single persisted catalog document.

    Attributes:
        schema_version: Document schema version, always current after load.
        categories: Ordered unique category names.
        makes: Category to ordered unique make names.
        models: Category to make to ordered unique model names.
        products: Products, unique by id.
        racks: Racks, unique by id.
    """

    schema_version: int = CURRENT_SCHEMA_VERSION
    categories: tuple[str, ...] = DEFAULT_CATEGORIES
    makes: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    models: Mapping[str, Mapping[str, tuple[str, ...]]] = field(default_factory=dict)
    products: tuple[Product, ...] = ()
    racks: tuple[Rack, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "schemaVersion": self.schema_version,
            "categories": list(self.categories),
            "makes": {category: list(makes) for category, makes in self.makes.items()},
            "models": {
                category: {make: list(models) for make, models in by_make.items()}
                for category, by_make in self.models.items()
            },
            "products": [product.to_dict() for product in self.products],
            "racks": [rack.to_dict() for rack in self.racks],
        }


def seed_catalog_state() -> CatalogState:
    """Return the empty catalog used when no stored document exists."""
    return CatalogState()
