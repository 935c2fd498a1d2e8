"""Public SDK surface for rackstore.

This module provides a stable import path for catalog users.
It re-exports the primary client, config, and typed models.
"""

from __future__ import annotations

from core.config import RackstoreConfig
from core.errors import RackstoreError, RackstoreImportError
from core.types import CatalogState, Product, ProductDims, Rack, RackItem, seed_catalog_state
from store.catalog_sdk import CatalogClient, build_backend
from store.file_backend import FileCatalogBackend
from store.kv_backend import LegacyMigratingBackend, SqliteKeyValueBackend
from store.legacy_store import LegacyDocumentStore
from store.picture_index import build_disk_picture_index, resolve_picture_ref
from transforms.catalog_merge import merge_catalogs
from transforms.catalog_normalization import normalize_catalog

__all__ = [
    "CatalogClient",
    "CatalogState",
    "FileCatalogBackend",
    "LegacyDocumentStore",
    "LegacyMigratingBackend",
    "Product",
    "ProductDims",
    "Rack",
    "RackItem",
    "RackstoreConfig",
    "RackstoreError",
    "RackstoreImportError",
    "SqliteKeyValueBackend",
    "build_backend",
    "build_disk_picture_index",
    "merge_catalogs",
    "normalize_catalog",
    "resolve_picture_ref",
    "seed_catalog_state",
]
