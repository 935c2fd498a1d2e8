"""Category, make, and model taxonomy builder.

This module collects taxonomy edits on mutable working copies and
freezes them back into the tuple/dict shape stored on CatalogState.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Mapping

from core.types import CatalogState, Product


class TaxonomyBuilder:
    """Mutable working copy of a catalog taxonomy."""

    def __init__(
        self,
        categories: Iterable[str] = (),
        makes: Mapping[str, Iterable[str]] | None = None,
        models: Mapping[str, Mapping[str, Iterable[str]]] | None = None,
    ) -> None:
        self._categories: list[str] = []
        self._makes: dict[str, list[str]] = {}
        self._models: dict[str, dict[str, list[str]]] = {}
        for category in categories:
            _append_unique(self._categories, category)
        for category, category_makes in (makes or {}).items():
            bucket = self._makes.setdefault(category, [])
            for make in category_makes:
                _append_unique(bucket, make)
        for category, by_make in (models or {}).items():
            category_models = self._models.setdefault(category, {})
            for make, make_models in by_make.items():
                bucket = category_models.setdefault(make, [])
                for model in make_models:
                    _append_unique(bucket, model)

    @classmethod
    def from_state(cls, state: CatalogState) -> "TaxonomyBuilder":
        return cls(state.categories, state.makes, state.models)

    @property
    def categories(self) -> tuple[str, ...]:
        return tuple(self._categories)

    def makes_of(self, category: str) -> tuple[str, ...]:
        return tuple(self._makes.get(category, ()))

    def models_of(self, category: str, make: str) -> tuple[str, ...]:
        return tuple(self._models.get(category, {}).get(make, ()))

    def has_make_models(self, category: str, make: str) -> bool:
        return make in self._models.get(category, {})

    def add_category(self, category: str) -> None:
        """Register a category with empty make and model maps."""
        _append_unique(self._categories, category)
        self._makes.setdefault(category, [])
        self._models.setdefault(category, {})

    def add_make(self, category: str, make: str) -> None:
        self.add_category(category)
        _append_unique(self._makes[category], make)
        self._models[category].setdefault(make, [])

    def add_model(self, category: str, make: str, model: str) -> None:
        self.add_make(category, make)
        _append_unique(self._models[category][make], model)

    def add_models(self, category: str, make: str, models: Iterable[str]) -> None:
        self.add_make(category, make)
        for model in models:
            _append_unique(self._models[category][make], model)

    def ensure_product(self, product: Product) -> None:
        """Make sure the product's category, make, and model are registered."""
        self.add_model(product.category, product.make, product.model)

    def remove_category(self, category: str) -> bool:
        removed = category in self._categories
        self._categories = [item for item in self._categories if item != category]
        removed = self._makes.pop(category, None) is not None or removed
        removed = self._models.pop(category, None) is not None or removed
        return removed

    def remove_make(self, category: str, make: str) -> bool:
        category_makes = self._makes.get(category, [])
        removed = make in category_makes
        if category in self._makes:
            self._makes[category] = [item for item in category_makes if item != make]
        category_models = self._models.get(category)
        if category_models is not None and make in category_models:
            del category_models[make]
            removed = True
        return removed

    def remove_model(self, category: str, make: str, model: str) -> None:
        make_models = self._models.get(category, {}).get(make)
        if make_models is not None:
            self._models[category][make] = [item for item in make_models if item != model]

    def apply(self, state: CatalogState) -> CatalogState:
        """Return a copy of state carrying this taxonomy."""
        return replace(
            state,
            categories=tuple(self._categories),
            makes={category: tuple(makes) for category, makes in self._makes.items()},
            models={
                category: {make: tuple(models) for make, models in by_make.items()}
                for category, by_make in self._models.items()
            },
        )


def _append_unique(bucket: list[str], value: str) -> None:
    if value not in bucket:
        bucket.append(value)
