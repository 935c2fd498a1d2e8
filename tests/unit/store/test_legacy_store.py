"""Unit tests for legacy size-limited document storage."""

from __future__ import annotations

import pytest

from core.errors import RackstoreQuotaError
from store.legacy_store import LegacyDocumentStore


def test_set_and_get_item_roundtrip(tmp_path) -> None:
    """Stored string values should be readable by key."""
    store = LegacyDocumentStore(tmp_path / "legacy.json")
    store.set_item("k", "v")

    assert store.get_item("k") == "v"


def test_set_item_enforces_quota(tmp_path) -> None:
    """Writes past the quota should raise a quota error."""
    store = LegacyDocumentStore(tmp_path / "legacy.json", quota_bytes=32)

    with pytest.raises(RackstoreQuotaError):
        store.set_item("k", "x" * 64)

    assert not store.storage_path.exists()


def test_remove_document_deletes_only_catalog_key(tmp_path) -> None:
    """Removing the document should keep unrelated keys."""
    store = LegacyDocumentStore(tmp_path / "legacy.json")
    store.set_item("epic3d.products.v2", "{}")
    store.set_item("other", "keep")

    store.remove_document()

    assert (store.get_document(), store.get_item("other")) == (None, "keep")


def test_unreadable_storage_reads_as_empty(tmp_path) -> None:
    """A corrupt storage file should behave as if empty."""
    storage_path = tmp_path / "legacy.json"
    storage_path.write_text("[broken", encoding="utf-8")
    store = LegacyDocumentStore(storage_path)

    assert store.get_document() is None
