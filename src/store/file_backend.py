"""JSON file catalog backend.

This module persists the catalog as one pretty-printed JSON document.
Reads seed the file when it is missing; any IO or parse failure is
logged and treated as "no data" so callers always receive a catalog.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal

from core.constants import DOCUMENT_FILE_NAME
from core.logging_config import get_logger
from core.types import CatalogState, seed_catalog_state
from transforms.catalog_normalization import Clock, current_time_ms, normalize_catalog

_LOGGER = get_logger(__name__)


class FileCatalogBackend:
    """Synchronous backend storing ``products.db.json`` under a data directory."""

    synchronous: Literal[True] = True

    def __init__(self, data_dir: Path, clock: Clock = current_time_ms) -> None:
        self._data_dir = data_dir
        self._document_path = data_dir / DOCUMENT_FILE_NAME
        self._clock = clock

    @property
    def document_path(self) -> Path:
        return self._document_path

    def load(self) -> CatalogState:
        """Read and normalize the document, writing a seed when absent.

        Returns:
            Stored catalog, or the seed catalog when unreadable.
        """
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            if not self._document_path.exists():
                seed = seed_catalog_state()
                _write_document(self._document_path, seed)
                _LOGGER.info("catalog_seeded", path=str(self._document_path))
                return seed
            text = self._document_path.read_text(encoding="utf-8")
            payload = json.loads(text or "{}")
        except (OSError, ValueError) as error:
            _LOGGER.warning(
                "catalog_read_failed",
                path=str(self._document_path),
                error=str(error),
            )
            return seed_catalog_state()
        state = normalize_catalog(payload, self._clock)
        _LOGGER.info(
            "catalog_loaded",
            path=str(self._document_path),
            products=len(state.products),
            racks=len(state.racks),
        )
        return state

    def save(self, state: CatalogState) -> bool:
        """Normalize and overwrite the document.

        Args:
            state: Catalog to persist.

        Returns:
            True when the file was written.
        """
        normalized = normalize_catalog(state, self._clock)
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            _write_document(self._document_path, normalized)
        except OSError as error:
            _LOGGER.warning(
                "catalog_write_failed",
                path=str(self._document_path),
                error=str(error),
            )
            return False
        return True


def encode_document(state: CatalogState) -> str:
    """Render a catalog as pretty-printed JSON text."""
    return json.dumps(state.to_dict(), indent=2, ensure_ascii=False)


def _write_document(document_path: Path, state: CatalogState) -> None:
    document_path.write_text(encode_document(state), encoding="utf-8")
