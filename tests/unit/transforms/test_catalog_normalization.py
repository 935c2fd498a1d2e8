"""Unit tests for catalog normalization and schema migration."""

from __future__ import annotations

import pytest

from core.constants import DEFAULT_CATEGORIES
from core.types import CatalogState, Product, RackItem
from transforms.catalog_normalization import (
    clean_product,
    clean_rack,
    coerce_number,
    normalize_catalog,
)


def _fixed_clock() -> int:
    return 5_000


@pytest.mark.parametrize("raw", [None, "text", 42, ["a"], True])
def test_non_object_input_returns_seed(raw: object) -> None:
    """Non-object documents should degrade to the seed catalog."""
    state = normalize_catalog(raw)

    assert state == CatalogState()


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"schemaVersion": 3},
        {"schemaVersion": 3, "categories": ["AV", "AV", " Lighting ", ""]},
        {"schemaVersion": 2, "categories": ["A"], "makes": {"A": ["M"]}},
        {
            "schemaVersion": 3,
            "products": [
                {"name": "Desk", "typeTags": ["x", "x", ""], "rackU": "9", "width": "12"},
                {"id": "p1", "image": "a.png", "dims": {"w": 2.5}, "updatedAt": "77"},
            ],
            "racks": [{"items": [{"productId": "p1", "qty": 0}, {"qty": 3}, None]}],
            "makes": {" AV ": ["Yamaha", "Yamaha", None]},
            "models": {"AV": {"Yamaha": ["CL5"]}, "bad": "shape"},
        },
        {
            "categories": ["AV"],
            "subcats": {"AV": ["Mixer", "Amp"]},
            "products": [{"subcategory": "Mixer", "name": "X"}, "junk"],
        },
    ],
)
def test_normalize_is_idempotent(raw: object) -> None:
    """Normalizing an already normalized catalog should change nothing."""
    once = normalize_catalog(raw, _fixed_clock)

    twice = normalize_catalog(once.to_dict(), _fixed_clock)

    assert twice == once


def test_current_version_deduplicates_categories() -> None:
    """Schema-3 categories should be trimmed and de-duplicated."""
    state = normalize_catalog({"schemaVersion": 3, "categories": ["AV", " AV", "", "Network"]})

    assert state.categories == ("AV", "Network")


def test_current_version_missing_categories_uses_defaults() -> None:
    """Schema-3 documents without categories should take the defaults."""
    state = normalize_catalog({"schemaVersion": 3})

    assert state.categories == DEFAULT_CATEGORIES


def test_version_two_keeps_taxonomy_and_initializes_racks() -> None:
    """Schema-2 documents should keep taxonomy maps and get empty racks."""
    raw = {
        "schemaVersion": 2,
        "categories": ["AV"],
        "makes": {"AV": ["Yamaha"]},
        "models": {"AV": {"Yamaha": ["CL5"]}},
    }

    state = normalize_catalog(raw)

    assert (state.schema_version, state.models["AV"]["Yamaha"], state.racks) == (3, ("CL5",), ())


def test_legacy_v1_document_migrates_subcategories() -> None:
    """Legacy subcats should become models under a Generic make."""
    raw = {
        "categories": ["AV"],
        "subcats": {"AV": ["Mixer"]},
        "products": [{"category": "AV", "subcategory": "Mixer", "name": "X"}],
    }

    state = normalize_catalog(raw)

    product = state.products[0]
    assert (
        state.categories,
        state.makes["AV"],
        state.models["AV"]["Generic"],
        (product.name, product.category, product.make, product.model, product.rack_u),
    ) == (("AV",), ("Generic",), ("Mixer",), ("X", "AV", "Generic", "Mixer", None))


def test_legacy_product_without_category_uses_first_category() -> None:
    """Legacy products without a category should fall into the first one."""
    raw = {"schemaVersion": 1, "categories": ["Rigging", "AV"], "products": [{"name": "Truss"}]}

    state = normalize_catalog(raw)

    assert state.products[0].category == "Rigging"


def test_legacy_product_registers_taxonomy() -> None:
    """Legacy product make/model should be registered in the taxonomy."""
    raw = {"products": [{"category": "Lighting", "make": "Martin", "model": "Mac"}]}

    state = normalize_catalog(raw)

    assert state.models["Lighting"]["Martin"] == ("Mac",)


def test_legacy_document_has_no_racks() -> None:
    """Racks did not exist before schema 2 and should be dropped."""
    state = normalize_catalog({"racks": [{"id": "r1"}]})

    assert state.racks == ()


def test_clean_product_defaults() -> None:
    """An empty payload should produce a fully defaulted product."""
    product = clean_product({}, _fixed_clock)

    assert (
        bool(product.id),
        product.name,
        product.category,
        product.make,
        product.model,
        product.dims.to_dict(),
        product.rack_u,
        product.updated_at,
    ) == (True, "", "AV", "Generic", "Default", {"w": 0, "h": 0, "l": 0}, None, 5_000)


def test_clean_product_uses_legacy_dimension_fields() -> None:
    """Legacy width/height/length should fill missing dims."""
    product = clean_product({"width": "10", "height": 20, "dims": {"l": 3.5}})

    assert product.dims.to_dict() == {"w": 10, "h": 20, "l": 3.5}


def test_clean_product_seeds_images_from_legacy_image() -> None:
    """A legacy single image should become the first image and the cover."""
    product = clean_product({"image": "cover.png", "images": []})

    assert (product.images, product.image) == (("cover.png",), "cover.png")


def test_clean_product_filters_empty_images() -> None:
    """Empty image entries should be dropped and the cover taken from the rest."""
    product = clean_product({"images": ["", None, "a.png", "b.png"], "image": "old.png"})

    assert (product.images, product.image) == (("a.png", "b.png"), "a.png")


@pytest.mark.parametrize(
    ("raw_value", "expected"),
    [(None, None), ("", None), (0, 1), (3, 3), ("7", 5), (2.9, 2), ("abc", None)],
)
def test_clean_product_clamps_rack_units(raw_value: object, expected: int | None) -> None:
    """rackU should be clamped into [1, 5] or become None."""
    product = clean_product({"rackU": raw_value})

    assert product.rack_u == expected


def test_clean_product_type_tags_are_unique() -> None:
    """typeTags should drop duplicates and empty entries."""
    product = clean_product({"typeTags": ["audio", "", "audio", None, "digital"]})

    assert product.type_tags == ("audio", "digital")


def test_clean_product_trims_taxonomy_fields() -> None:
    """Category, make, and model should be trimmed, defaulting when blank."""
    product = clean_product({"category": "  Lighting ", "make": "   ", "model": " Mac "})

    assert (product.category, product.make, product.model) == ("Lighting", "Generic", "Mac")


def test_clean_product_accepts_product_instance() -> None:
    """Cleaning an existing Product should be a fixed point."""
    product = Product(id="p1", name="Amp", images=("a.png",), updated_at=10)

    assert clean_product(product) == product


def test_clean_rack_filters_items() -> None:
    """Rack items without productId should be dropped and qty floored at 1."""
    rack = clean_rack({"items": [{"productId": "a", "qty": -4}, {"qty": 2}, {"productId": "b"}]})

    assert rack.items == (RackItem("a", 1), RackItem("b", 1))


def test_clean_rack_defaults() -> None:
    """Missing rack fields should take their defaults."""
    rack = clean_rack({"id": "r1", "width": "wide"})

    dimensions = (rack.width, rack.height, rack.length, rack.weight)
    assert (rack.name, dimensions) == ("Rack", (60, 200, 80, 0))


def test_duplicate_product_ids_collapse() -> None:
    """Products sharing an id should collapse to one record."""
    raw = {"schemaVersion": 3, "products": [{"id": "a", "name": "one"}, {"id": "a", "name": "two"}]}

    state = normalize_catalog(raw)

    assert [product.name for product in state.products] == ["two"]


@pytest.mark.parametrize(
    ("value", "expected"),
    [(None, -1), (True, 1), ("12", 12), ("1.5", 1.5), (float("nan"), -1), ("x", -1), ([], -1)],
)
def test_coerce_number(value: object, expected: float) -> None:
    """coerce_number should accept finite numerics and default the rest."""
    assert coerce_number(value, -1) == expected


def test_huge_integers_fall_back_to_defaults() -> None:
    """Integers too large for a float should not break normalization."""
    huge = int("9" * 400)
    raw = {
        "schemaVersion": 3,
        "products": [{"id": "p1", "weight": huge, "rackU": huge, "updatedAt": huge}],
        "racks": [{"id": "r1", "width": huge, "items": [{"productId": "p1", "qty": huge}]}],
    }

    state = normalize_catalog(raw, _fixed_clock)

    product, rack = state.products[0], state.racks[0]
    assert (product.weight, product.rack_u, product.updated_at, rack.width, rack.items) == (
        0,
        None,
        5_000,
        60,
        (RackItem("p1", 1),),
    )


def test_coerce_number_rejects_huge_integers() -> None:
    """Integers beyond float range should coerce to the default."""
    assert coerce_number(10**400, -1) == -1
