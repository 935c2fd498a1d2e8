"""Legacy size-limited document storage.

The legacy store is a flat JSON file of string keys to string values
with a hard size quota. The catalog only ever reads one key from it
(once, for migration) and deletes that key afterwards.
"""

from __future__ import annotations

import json
from pathlib import Path

from core.constants import LEGACY_DOCUMENT_KEY, LEGACY_STORAGE_QUOTA_BYTES
from core.errors import RackstoreQuotaError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)


class LegacyDocumentStore:
    """String key-value file with a byte quota."""

    def __init__(
        self,
        storage_path: Path,
        key: str = LEGACY_DOCUMENT_KEY,
        quota_bytes: int = LEGACY_STORAGE_QUOTA_BYTES,
    ) -> None:
        self._storage_path = storage_path
        self._key = key
        self._quota_bytes = quota_bytes

    @property
    def storage_path(self) -> Path:
        return self._storage_path

    def get_item(self, key: str) -> str | None:
        value = self._read_items().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        """Store a string value.

        Raises:
            RackstoreQuotaError: If the encoded storage would exceed the quota.
        """
        items = self._read_items()
        items[key] = value
        encoded = json.dumps(items, ensure_ascii=False)
        size = len(encoded.encode("utf-8"))
        if size > self._quota_bytes:
            raise RackstoreQuotaError(
                f"Legacy storage quota exceeded: {size} bytes > {self._quota_bytes} bytes. "
                "Store large catalogs in the key-value backend instead."
            )
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        self._storage_path.write_text(encoded, encoding="utf-8")

    def remove_item(self, key: str) -> None:
        """Delete a key; failures are logged and ignored."""
        try:
            items = self._read_items()
            if key not in items:
                return
            del items[key]
            self._storage_path.write_text(json.dumps(items, ensure_ascii=False), encoding="utf-8")
        except OSError as error:
            _LOGGER.warning(
                "legacy_remove_failed",
                path=str(self._storage_path),
                key=key,
                error=str(error),
            )

    def get_document(self) -> str | None:
        return self.get_item(self._key)

    def remove_document(self) -> None:
        self.remove_item(self._key)

    def _read_items(self) -> dict[str, object]:
        if not self._storage_path.exists():
            return {}
        try:
            payload = json.loads(self._storage_path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as error:
            _LOGGER.warning(
                "legacy_storage_unreadable",
                path=str(self._storage_path),
                error=str(error),
            )
            return {}
        return payload if isinstance(payload, dict) else {}
