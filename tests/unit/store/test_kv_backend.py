"""Unit tests for the SQLite key-value backend and legacy migration wrapper."""

from __future__ import annotations

import json
import sqlite3

import pytest

from core.types import CatalogState, Product
from store.kv_backend import LegacyMigratingBackend, SqliteKeyValueBackend
from store.legacy_store import LegacyDocumentStore


@pytest.mark.asyncio
async def test_load_from_fresh_database_returns_none(tmp_path) -> None:
    """An empty store should report no stored value."""
    backend = SqliteKeyValueBackend(tmp_path / "kv.sqlite3")

    assert await backend.load() is None


@pytest.mark.asyncio
async def test_open_creates_versioned_table(tmp_path) -> None:
    """First open should create the kv table and set the database version."""
    database_path = tmp_path / "kv.sqlite3"
    await SqliteKeyValueBackend(database_path).load()

    with sqlite3.connect(database_path) as connection:
        version = connection.execute("PRAGMA user_version").fetchone()[0]
        tables = connection.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()

    assert (version, tables) == (1, [("kv",)])


@pytest.mark.asyncio
async def test_save_then_load_roundtrip(tmp_path) -> None:
    """A saved catalog should be returned by a later load."""
    backend = SqliteKeyValueBackend(tmp_path / "kv.sqlite3")
    state = CatalogState(products=(Product(id="p1", name="Amp", updated_at=3),))

    saved = await backend.save(state)
    loaded = await backend.load()

    assert saved and loaded == state


@pytest.mark.asyncio
async def test_failures_resolve_softly(tmp_path) -> None:
    """IO errors should surface as None/False, never exceptions."""
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    backend = SqliteKeyValueBackend(blocker / "kv.sqlite3")

    results = (await backend.load(), await backend.save(CatalogState()))

    assert results == (None, False)


def test_legacy_wrapper_reads_and_clears_document(tmp_path) -> None:
    """The wrapper should normalize the legacy entry and delete it on request."""
    legacy_store = LegacyDocumentStore(tmp_path / "legacy.json")
    legacy_store.set_item(
        "epic3d.products.v2",
        json.dumps({"schemaVersion": 2, "products": [{"id": "old", "name": "Legacy"}]}),
    )
    backend = LegacyMigratingBackend(SqliteKeyValueBackend(tmp_path / "kv.sqlite3"), legacy_store)

    legacy = backend.read_legacy()
    backend.clear_legacy()

    assert legacy is not None and legacy.products[0].name == "Legacy"
    assert backend.read_legacy() is None


def test_legacy_wrapper_ignores_unparseable_document(tmp_path) -> None:
    """A corrupt legacy entry should read as absent."""
    legacy_store = LegacyDocumentStore(tmp_path / "legacy.json")
    legacy_store.set_item("epic3d.products.v2", "{oops")
    backend = LegacyMigratingBackend(SqliteKeyValueBackend(tmp_path / "kv.sqlite3"), legacy_store)

    assert backend.read_legacy() is None
