"""In-memory catalog cache and change notifier.

This module owns the single canonical CatalogState for a store, serves
synchronous reads, triggers backend persistence on every write, and
broadcasts payload-free change notifications to subscribers.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Coroutine, cast

from core.constants import DEFAULT_WRITE_DELAY_MS
from core.logging_config import get_logger
from core.types import CatalogState, seed_catalog_state
from store.backend import AsyncCatalogBackend, CatalogBackend
from store.write_coalescer import WriteCoalescer
from transforms.catalog_normalization import Clock, current_time_ms, normalize_catalog

_LOGGER = get_logger(__name__)

Listener = Callable[[], None]
Unsubscribe = Callable[[], None]


class CatalogCache:
    """Cache holding at most one catalog, backed by one persistence backend.

    With a synchronous backend the first read loads storage before
    returning. With an asynchronous backend the first read returns the
    seed catalog immediately and hydration replaces it once storage
    answers; readers may observe the seed until then.
    """

    def __init__(
        self,
        backend: CatalogBackend,
        write_delay_seconds: float = DEFAULT_WRITE_DELAY_MS / 1000.0,
        clock: Clock = current_time_ms,
    ) -> None:
        self._backend = backend
        self._clock = clock
        self._state: CatalogState | None = None
        self._listeners: list[Listener] = []
        self._hydration: asyncio.Task[None] | None = None
        self._migrating = False
        self._save_lock = asyncio.Lock()
        self._coalescer: WriteCoalescer | None = None
        if not backend.synchronous:
            self._coalescer = WriteCoalescer(self._save, write_delay_seconds)

    @property
    def backend(self) -> CatalogBackend:
        return self._backend

    @property
    def coalescer(self) -> WriteCoalescer | None:
        return self._coalescer

    def read(self) -> CatalogState:
        """Return the cached catalog, loading or hydrating on first access.

        A legacy document, when present, is adopted before this returns;
        only its migration write happens asynchronously.
        """
        if self._state is not None:
            return self._state
        self._state = seed_catalog_state()
        if self._backend.synchronous:
            self._state = self._backend.load()
            self._notify()
            return self._state
        legacy = self._backend.read_legacy()
        if legacy is None:
            self._start_hydration(self._load_stored(self._backend))
            return self._state
        self._migrating = True
        self._adopt(legacy)
        self._start_hydration(self._migrate_legacy(self._backend, legacy))
        return self._state

    def write(self, state: object, durable: bool = False) -> CatalogState:
        """Normalize and adopt a catalog, persist it, and notify subscribers.

        Args:
            state: CatalogState or raw document payload.
            durable: Start the backend write now instead of after the
                coalescing delay.

        Returns:
            The normalized catalog now held by the cache.
        """
        if self._state is None and not self._backend.synchronous:
            self.read()
        normalized = normalize_catalog(state, self._clock)
        self._state = normalized
        if self._backend.synchronous:
            self._backend.save(normalized)
        else:
            # A pending migration clears the legacy entry once it is saved.
            if not self._migrating:
                self._backend.clear_legacy()
            if self._coalescer is not None:
                self._coalescer.schedule(normalized)
                if durable:
                    self._coalescer.dispatch()
        self._notify()
        return normalized

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Register a change listener.

        Args:
            listener: Zero-argument callable invoked after every change.

        Returns:
            Callable that removes the listener.
        """
        if not callable(listener):
            return lambda: None
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def wait_until_hydrated(self) -> None:
        """Wait for asynchronous hydration started by the first read."""
        self.read()
        if self._hydration is not None:
            await asyncio.shield(self._hydration)

    async def flush(self) -> bool | None:
        """Persist any pending coalesced write immediately.

        Returns:
            Backend result, or None when nothing was pending.
        """
        if self._coalescer is None:
            return None
        return await self._coalescer.flush()

    def _start_hydration(self, hydration: Coroutine[Any, Any, None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(hydration)
            return
        self._hydration = loop.create_task(hydration)
        self._hydration.add_done_callback(_log_hydration_failure)

    async def _migrate_legacy(self, backend: AsyncCatalogBackend, legacy: CatalogState) -> None:
        try:
            saved = await self._save(legacy)
        finally:
            self._migrating = False
        if saved:
            _LOGGER.info("legacy_document_migrated", products=len(legacy.products))
        if saved or self._state is not legacy:
            backend.clear_legacy()

    async def _load_stored(self, backend: AsyncCatalogBackend) -> None:
        stored = await backend.load()
        if stored is None:
            self._notify()
            return
        self._adopt(stored)
        _LOGGER.info(
            "catalog_loaded",
            products=len(stored.products),
            racks=len(stored.racks),
        )

    async def _save(self, state: CatalogState) -> bool:
        backend = cast(AsyncCatalogBackend, self._backend)
        async with self._save_lock:
            return await backend.save(state)

    def _adopt(self, state: CatalogState) -> None:
        # Writes scheduled before hydration were built from the seed catalog.
        if self._coalescer is not None:
            self._coalescer.cancel()
        self._state = state
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as error:
                _LOGGER.warning("catalog_listener_failed", error=repr(error))
        _LOGGER.debug("catalog_changed", listeners=len(self._listeners))


def _log_hydration_failure(task: asyncio.Task[None]) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        _LOGGER.error("catalog_hydration_failed", error=repr(error))
