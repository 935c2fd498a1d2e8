"""Debounced, coalescing catalog writes.

At most one write job is pending at a time. Scheduling a new state
cancels the pending job (its token is marked cancelled) and restarts
the delay, so only the latest state is flushed.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

from core.logging_config import get_logger
from core.types import CatalogState

_LOGGER = get_logger(__name__)

WriteFunction = Callable[[CatalogState], Awaitable[bool]]


@dataclass
class CancellationToken:
    """Handle for one scheduled write job."""

    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class _PendingWrite:
    state: CatalogState
    token: CancellationToken


class WriteCoalescer:
    """Hold at most one pending write and run it after a quiet period."""

    def __init__(self, write: WriteFunction, delay_seconds: float) -> None:
        self._write = write
        self._delay_seconds = delay_seconds
        self._pending: _PendingWrite | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._in_flight: set[asyncio.Task[bool]] = set()

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    @property
    def pending_state(self) -> CatalogState | None:
        return self._pending.state if self._pending is not None else None

    def schedule(self, state: CatalogState) -> CancellationToken:
        """Replace any pending write with one for ``state``.

        Without a running event loop the write runs to completion at once.

        Args:
            state: Catalog to persist.

        Returns:
            Token for the newly scheduled job.
        """
        replaced = self._pending is not None
        self.cancel()
        token = CancellationToken()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self._run(_PendingWrite(state, token)))
            return token
        self._pending = _PendingWrite(state, token)
        self._timer = loop.call_later(self._delay_seconds, self._fire)
        if replaced:
            _LOGGER.debug("catalog_write_coalesced", delay_seconds=self._delay_seconds)
        return token

    def cancel(self) -> None:
        """Drop the pending write, if any, without running it."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._pending is not None:
            self._pending.token.cancel()
            self._pending = None

    def dispatch(self) -> None:
        """Start the pending write now without waiting for it to finish."""
        self._fire()

    async def flush(self) -> bool | None:
        """Run the pending write now and wait for writes already started.

        Returns:
            Result of the pending write, or None when nothing was pending.
        """
        result: bool | None = None
        pending = self._take_pending()
        if pending is not None:
            result = await self._run(pending)
        await self.drain()
        return result

    async def drain(self) -> None:
        """Wait for writes that have already started."""
        if self._in_flight:
            await asyncio.gather(*self._in_flight)

    def _fire(self) -> None:
        pending = self._take_pending()
        if pending is None:
            return
        task = asyncio.get_running_loop().create_task(self._run(pending))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    def _take_pending(self) -> _PendingWrite | None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        pending, self._pending = self._pending, None
        return pending

    async def _run(self, pending: _PendingWrite) -> bool:
        if pending.token.cancelled:
            return False
        saved = await self._write(pending.state)
        if not saved:
            _LOGGER.warning("catalog_write_failed", products=len(pending.state.products))
        return saved
