"""Python SDK for catalog operations.

This module exposes the read, mutation, and import/export API used by
callers. Every mutation is a read-modify-write of the cache: it returns
once the in-memory catalog is updated, while durability is immediate for
the file backend and debounced for the key-value backend. Imports and
merges start their key-value write without waiting for the delay.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Mapping

from core.config import RackstoreConfig
from core.constants import KV_DATABASE_FILE_NAME, LEGACY_STORAGE_FILE_NAME
from core.errors import RackstoreImportError
from core.logging_config import get_logger
from core.types import CatalogState, Product, Rack, RackItem
from store.backend import CatalogBackend
from store.catalog_cache import CatalogCache, Listener, Unsubscribe
from store.file_backend import FileCatalogBackend, encode_document
from store.kv_backend import LegacyMigratingBackend, SqliteKeyValueBackend
from store.legacy_store import LegacyDocumentStore
from store.picture_index import PictureIndex, build_disk_picture_index, resolve_picture_ref
from transforms import catalog_edits
from transforms.catalog_merge import merge_catalogs
from transforms.catalog_normalization import Clock, current_time_ms, normalize_catalog

_LOGGER = get_logger(__name__)


class CatalogClient:
    """Primary SDK entry point for one product and rack catalog."""

    def __init__(
        self,
        config: RackstoreConfig | None = None,
        backend: CatalogBackend | None = None,
        clock: Clock = current_time_ms,
    ) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
            backend: Explicit backend; built from config when omitted.
            clock: Millisecond clock used for product timestamps.
        """
        self._config = config or RackstoreConfig.from_env()
        self._clock = clock
        self._backend = backend or build_backend(self._config, clock)
        self._cache = CatalogCache(self._backend, self._config.write_delay_seconds, clock)
        self._picture_index: PictureIndex | None = None

    @property
    def config(self) -> RackstoreConfig:
        return self._config

    @property
    def cache(self) -> CatalogCache:
        return self._cache

    def state(self) -> CatalogState:
        return self._cache.read()

    def list_categories(self) -> tuple[str, ...]:
        return self.state().categories

    def list_makes(self, category: str) -> tuple[str, ...]:
        return tuple(self.state().makes.get(category, ()))

    def list_models(self, category: str, make: str) -> tuple[str, ...]:
        return tuple(self.state().models.get(category, {}).get(make, ()))

    def list_products(
        self,
        category: str | None = None,
        make: str | None = None,
        model: str | None = None,
    ) -> tuple[Product, ...]:
        """List products matching every given taxonomy filter."""
        products = self.state().products
        if category:
            products = tuple(product for product in products if product.category == category)
        if make:
            products = tuple(product for product in products if product.make == make)
        if model:
            products = tuple(product for product in products if product.model == model)
        return products

    def list_racks(self) -> tuple[Rack, ...]:
        return self.state().racks

    def get_product(self, product_id: str) -> Product | None:
        for product in self.state().products:
            if product.id == product_id:
                return product
        return None

    def get_rack(self, rack_id: str) -> Rack | None:
        for rack in self.state().racks:
            if rack.id == rack_id:
                return rack
        return None

    def ensure_category(self, category: str) -> tuple[str, ...]:
        """Register a category.

        Returns:
            Categories after the call, unchanged when the name is empty.
        """
        updated = catalog_edits.ensure_category(self.state(), category)
        if updated is None:
            return self.list_categories()
        return self._cache.write(updated).categories

    def ensure_make(self, category: str, make: str) -> tuple[str, ...]:
        """Register a make; returns the category's makes, empty on invalid names."""
        updated = catalog_edits.ensure_make(self.state(), category, make)
        if updated is None:
            return ()
        return tuple(self._cache.write(updated).makes.get(category.strip(), ()))

    def ensure_model(self, category: str, make: str, model: str) -> tuple[str, ...]:
        """Register a model; returns the make's models, empty on invalid names."""
        updated = catalog_edits.ensure_model(self.state(), category, make, model)
        if updated is None:
            return ()
        written = self._cache.write(updated)
        return tuple(written.models.get(category.strip(), {}).get(make.strip(), ()))

    def delete_category(self, category: str, cascade: bool = False) -> bool:
        """Remove a category's taxonomy; ``cascade`` also removes its products."""
        return self._commit(catalog_edits.delete_category(self.state(), category, cascade))

    def delete_make(self, category: str, make: str, cascade: bool = False) -> bool:
        """Remove a make's taxonomy; ``cascade`` also removes its products."""
        return self._commit(catalog_edits.delete_make(self.state(), category, make, cascade))

    def delete_model(self, category: str, make: str, model: str) -> bool:
        """Remove a model together with its products and their rack items."""
        return self._commit(catalog_edits.delete_model(self.state(), category, make, model))

    def upsert_product(self, product: Mapping[str, object] | Product | None) -> Product:
        """Insert or replace a product, stamping ``updatedAt`` with now.

        Args:
            product: Product payload; a missing id is generated.

        Returns:
            Stored product.
        """
        updated, stored = catalog_edits.upsert_product(self.state(), product or {}, self._clock)
        self._cache.write(updated)
        return stored

    def delete_product(self, product_id: str) -> bool:
        return self._commit(catalog_edits.delete_product(self.state(), product_id))

    def upsert_rack(self, rack: Mapping[str, object] | Rack | None) -> Rack:
        updated, stored = catalog_edits.upsert_rack(self.state(), rack or {})
        self._cache.write(updated)
        return stored

    def delete_rack(self, rack_id: str) -> bool:
        return self._commit(catalog_edits.delete_rack(self.state(), rack_id))

    def add_product_to_rack(self, rack_id: str, product_id: str, qty: object = 1) -> bool:
        return self._commit(
            catalog_edits.add_product_to_rack(self.state(), rack_id, product_id, qty)
        )

    def remove_product_from_rack(self, rack_id: str, product_id: str, qty: object = 1) -> bool:
        return self._commit(
            catalog_edits.remove_product_from_rack(self.state(), rack_id, product_id, qty)
        )

    def set_rack_item_qty(self, rack_id: str, product_id: str, qty: object) -> bool:
        return self._commit(
            catalog_edits.set_rack_item_qty(self.state(), rack_id, product_id, qty)
        )

    def set_rack_items(
        self,
        rack_id: str,
        items: Iterable[Mapping[str, object] | RackItem] | None,
    ) -> bool:
        return self._commit(catalog_edits.set_rack_items(self.state(), rack_id, items))

    def move_rack_item(self, rack_id: str, from_index: int, to_index: int) -> bool:
        return self._commit(
            catalog_edits.move_rack_item(self.state(), rack_id, from_index, to_index)
        )

    def export_document(self) -> bytes:
        """Serialize the current catalog as UTF-8 pretty JSON."""
        return encode_document(self.state()).encode("utf-8")

    def import_document(self, data: bytes | str) -> CatalogState:
        """Replace the whole catalog with an external document.

        Args:
            data: JSON document text or bytes of any schema version.

        Returns:
            The adopted catalog.

        Raises:
            RackstoreImportError: If data is not decodable JSON.
        """
        incoming = normalize_catalog(_decode_document(data), self._clock)
        written = self._cache.write(incoming, durable=True)
        _LOGGER.info("catalog_imported", products=len(written.products), racks=len(written.racks))
        return written

    def merge_document(self, data: bytes | str) -> CatalogState:
        """Merge an external document into the current catalog by product id.

        Raises:
            RackstoreImportError: If data is not decodable JSON.
        """
        incoming = normalize_catalog(_decode_document(data), self._clock)
        written = self._cache.write(merge_catalogs(self.state(), incoming), durable=True)
        _LOGGER.info(
            "catalog_merged",
            incoming_products=len(incoming.products),
            products=len(written.products),
        )
        return written

    def export_to_file(self, path: str | Path) -> Path:
        target = Path(path).expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(self.export_document())
        return target

    def import_file(self, path: str | Path) -> CatalogState:
        return self.import_document(_read_document_file(path))

    def merge_file(self, path: str | Path) -> CatalogState:
        return self.merge_document(_read_document_file(path))

    def subscribe(self, listener: Listener) -> Unsubscribe:
        return self._cache.subscribe(listener)

    async def wait_until_hydrated(self) -> None:
        await self._cache.wait_until_hydrated()

    async def flush(self) -> bool | None:
        return await self._cache.flush()

    def picture_index(self, refresh: bool = False) -> PictureIndex:
        """Return the picture index for the configured pictures folder."""
        if self._picture_index is None or refresh:
            root = self._config.pictures_root
            self._picture_index = build_disk_picture_index(root) if root else PictureIndex()
        return self._picture_index

    def resolve_picture(self, ref: str | None) -> str:
        return resolve_picture_ref(ref, self.picture_index(), self._config.media_root)

    def product_image_urls(self, product: Product) -> tuple[str, ...]:
        """Resolve every image of a product, skipping unresolvable refs."""
        urls = (self.resolve_picture(image) for image in product.images)
        return tuple(url for url in urls if url)

    def _commit(self, updated: CatalogState | None) -> bool:
        if updated is None:
            return False
        self._cache.write(updated)
        return True


def build_backend(config: RackstoreConfig, clock: Clock = current_time_ms) -> CatalogBackend:
    """Build the backend named by configuration.

    Args:
        config: Runtime configuration.
        clock: Millisecond clock passed to normalization.

    Returns:
        File backend, or the key-value backend wrapped with legacy migration.
    """
    if config.backend == "kv":
        return LegacyMigratingBackend(
            SqliteKeyValueBackend(config.data_root / KV_DATABASE_FILE_NAME, clock=clock),
            LegacyDocumentStore(config.data_root / LEGACY_STORAGE_FILE_NAME),
            clock,
        )
    return FileCatalogBackend(config.data_root, clock)


def _decode_document(data: bytes | str) -> object:
    try:
        text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else str(data)
        return json.loads(text)
    except (UnicodeDecodeError, ValueError) as error:
        raise RackstoreImportError(
            f"Failed to decode catalog document: {error}. "
            "Provide a JSON export produced by this catalog."
        ) from error


def _read_document_file(path: str | Path) -> bytes:
    source = Path(path).expanduser()
    try:
        return source.read_bytes()
    except OSError as error:
        raise RackstoreImportError(
            f"Failed to read catalog document at {source}: {error}. Check the path and retry."
        ) from error
