"""Persistence backend capability interfaces.

A catalog store talks to exactly one backend, chosen at construction.
Synchronous backends finish loads and saves before returning; asynchronous
backends expose coroutines and may carry a one-time legacy document.
Both fail soft: errors become ``None``/``False`` rather than exceptions.
"""

from __future__ import annotations

from typing import Literal, Protocol, Union

from core.types import CatalogState


class SyncCatalogBackend(Protocol):
    """Backend whose IO completes before each call returns."""

    synchronous: Literal[True]

    def load(self) -> CatalogState:
        """Return the stored catalog, seeding storage when it is empty."""
        ...

    def save(self, state: CatalogState) -> bool:
        """Overwrite the stored catalog; return False on IO failure."""
        ...


class AsyncCatalogBackend(Protocol):
    """Backend whose IO runs as awaitable operations."""

    synchronous: Literal[False]

    async def load(self) -> CatalogState | None:
        """Return the stored catalog, or None when unavailable."""
        ...

    async def save(self, state: CatalogState) -> bool:
        """Overwrite the stored catalog; return False on failure."""
        ...

    def read_legacy(self) -> CatalogState | None:
        """Return a not-yet-migrated legacy document, if any."""
        ...

    def clear_legacy(self) -> None:
        """Forget the legacy document so it is never read again."""
        ...


CatalogBackend = Union[SyncCatalogBackend, AsyncCatalogBackend]
