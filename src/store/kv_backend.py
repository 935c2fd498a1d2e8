"""SQLite key-value catalog backend.

This module stores the catalog as one JSON value under a fixed key in a
versioned SQLite database. Blocking sqlite3 calls run on a worker thread
via ``asyncio.to_thread`` so the event loop is never blocked. Every
failure resolves to ``None``/``False`` instead of raising.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Literal

from core.constants import KV_DATABASE_VERSION, KV_DOCUMENT_KEY, KV_TABLE_NAME
from core.logging_config import get_logger
from core.types import CatalogState
from store.file_backend import encode_document
from store.legacy_store import LegacyDocumentStore
from transforms.catalog_normalization import Clock, current_time_ms, normalize_catalog

_LOGGER = get_logger(__name__)


class SqliteKeyValueBackend:
    """Asynchronous backend over a single-table SQLite key-value store."""

    synchronous: Literal[False] = False

    def __init__(
        self,
        database_path: Path,
        key: str = KV_DOCUMENT_KEY,
        clock: Clock = current_time_ms,
    ) -> None:
        self._database_path = database_path
        self._key = key
        self._clock = clock

    @property
    def database_path(self) -> Path:
        return self._database_path

    async def load(self) -> CatalogState | None:
        """Read and normalize the stored document.

        Returns:
            Stored catalog, or None when absent or unreadable.
        """
        try:
            raw_value = await asyncio.to_thread(self._get_value)
        except (sqlite3.Error, OSError) as error:
            _LOGGER.warning("kv_get_failed", path=str(self._database_path), error=str(error))
            return None
        if raw_value is None:
            return None
        try:
            payload = json.loads(raw_value)
        except ValueError as error:
            _LOGGER.warning("kv_get_failed", path=str(self._database_path), error=str(error))
            return None
        return normalize_catalog(payload, self._clock)

    async def save(self, state: CatalogState) -> bool:
        """Write the document under the fixed key.

        Returns:
            True when the write transaction committed.
        """
        value = encode_document(normalize_catalog(state, self._clock))
        try:
            await asyncio.to_thread(self._put_value, value)
        except (sqlite3.Error, OSError) as error:
            _LOGGER.warning("kv_put_failed", path=str(self._database_path), error=str(error))
            return False
        return True

    def read_legacy(self) -> CatalogState | None:
        return None

    def clear_legacy(self) -> None:
        return None

    def _get_value(self) -> str | None:
        with closing(self._open()) as connection:
            row = connection.execute(
                f"SELECT value FROM {KV_TABLE_NAME} WHERE key = ?",
                (self._key,),
            ).fetchone()
        return str(row[0]) if row is not None else None

    def _put_value(self, value: str) -> None:
        with closing(self._open()) as connection:
            with connection:
                connection.execute(
                    f"INSERT OR REPLACE INTO {KV_TABLE_NAME} (key, value) VALUES (?, ?)",
                    (self._key, value),
                )

    def _open(self) -> sqlite3.Connection:
        """Open the database, upgrading its schema when older than current."""
        self._database_path.parent.mkdir(parents=True, exist_ok=True)
        connection = sqlite3.connect(self._database_path)
        try:
            version = int(connection.execute("PRAGMA user_version").fetchone()[0])
            if version < KV_DATABASE_VERSION:
                with connection:
                    connection.execute(
                        f"CREATE TABLE IF NOT EXISTS {KV_TABLE_NAME} "
                        "(key TEXT PRIMARY KEY, value TEXT NOT NULL)"
                    )
                    connection.execute(f"PRAGMA user_version = {KV_DATABASE_VERSION}")
        except sqlite3.Error:
            connection.close()
            raise
        return connection


class LegacyMigratingBackend:
    """Wrap an async backend with a one-time legacy document source.

    The legacy entry is offered once through ``read_legacy`` and removed
    through ``clear_legacy``. Loads and saves go to the wrapped backend only;
    the legacy entry is never written.
    """

    synchronous: Literal[False] = False

    def __init__(
        self,
        inner: SqliteKeyValueBackend,
        legacy_store: LegacyDocumentStore,
        clock: Clock = current_time_ms,
    ) -> None:
        self._inner = inner
        self._legacy_store = legacy_store
        self._clock = clock

    @property
    def inner(self) -> SqliteKeyValueBackend:
        return self._inner

    async def load(self) -> CatalogState | None:
        return await self._inner.load()

    async def save(self, state: CatalogState) -> bool:
        return await self._inner.save(state)

    def read_legacy(self) -> CatalogState | None:
        """Decode and normalize the legacy document when one is stored."""
        raw_value = self._legacy_store.get_document()
        if not raw_value:
            return None
        try:
            payload = json.loads(raw_value)
        except ValueError as error:
            _LOGGER.warning("legacy_document_unreadable", error=str(error))
            return None
        return normalize_catalog(payload, self._clock)

    def clear_legacy(self) -> None:
        self._legacy_store.remove_document()
