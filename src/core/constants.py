"""Core constants used across rackstore modules.

This module centralizes file names, storage keys, and catalog defaults.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_ROOT = Path("data")
DOCUMENT_FILE_NAME = "products.db.json"
KV_DATABASE_FILE_NAME = "products.kv.sqlite3"
LEGACY_STORAGE_FILE_NAME = "legacy_storage.json"
MEDIA_DIR_NAME = "media"

CURRENT_SCHEMA_VERSION = 3
DEFAULT_CATEGORIES = ("AV", "Lighting", "Rigging", "Network")
DEFAULT_PRODUCT_CATEGORY = "AV"
DEFAULT_PRODUCT_MAKE = "Generic"
DEFAULT_PRODUCT_MODEL = "Default"
LEGACY_MAKE_NAME = "Generic"
MIN_RACK_UNITS = 1
MAX_RACK_UNITS = 5

DEFAULT_RACK_NAME = "Rack"
DEFAULT_RACK_WIDTH = 60
DEFAULT_RACK_HEIGHT = 200
DEFAULT_RACK_LENGTH = 80
DEFAULT_RACK_WEIGHT = 0

KV_DATABASE_VERSION = 1
KV_TABLE_NAME = "kv"
KV_DOCUMENT_KEY = "main"
LEGACY_DOCUMENT_KEY = "epic3d.products.v2"
LEGACY_STORAGE_QUOTA_BYTES = 5 * 1024 * 1024

SUPPORTED_BACKENDS = ("file", "kv")
DEFAULT_BACKEND = "file"
DEFAULT_WRITE_DELAY_MS = 250

PICTURE_REF_PREFIX = "@pp/"
MEDIA_REF_PREFIX = "@media/"
PASSTHROUGH_REF_PREFIXES = ("data:", "blob:", "http://", "https://", "file://")
SUPPORTED_PICTURE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp", ".gif")
