"""Unit tests for debounced write coalescing."""

from __future__ import annotations

import asyncio

import pytest

from core.types import CatalogState, Product
from store.write_coalescer import WriteCoalescer


class _RecordingWriter:
    def __init__(self, result: bool = True) -> None:
        self.written: list[CatalogState] = []
        self._result = result

    async def __call__(self, state: CatalogState) -> bool:
        self.written.append(state)
        return self._result


def _state(name: str) -> CatalogState:
    return CatalogState(products=(Product(id="p", name=name),))


@pytest.mark.asyncio
async def test_reschedule_cancels_previous_token() -> None:
    """A new schedule should cancel the token of the replaced job."""
    coalescer = WriteCoalescer(_RecordingWriter(), delay_seconds=60)

    first = coalescer.schedule(_state("a"))
    second = coalescer.schedule(_state("b"))

    assert (first.cancelled, second.cancelled, coalescer.pending_state) == (
        True,
        False,
        _state("b"),
    )
    coalescer.cancel()


@pytest.mark.asyncio
async def test_flush_writes_only_latest_state() -> None:
    """Flushing after several schedules should persist the last state once."""
    writer = _RecordingWriter()
    coalescer = WriteCoalescer(writer, delay_seconds=60)
    for name in ("a", "b", "c"):
        coalescer.schedule(_state(name))

    result = await coalescer.flush()

    assert (result, writer.written, coalescer.has_pending) == (True, [_state("c")], False)


@pytest.mark.asyncio
async def test_timer_fires_after_delay() -> None:
    """The pending job should run on its own once the delay elapses."""
    writer = _RecordingWriter()
    coalescer = WriteCoalescer(writer, delay_seconds=0.01)
    coalescer.schedule(_state("a"))
    coalescer.schedule(_state("b"))

    await asyncio.sleep(0.05)
    await coalescer.flush()

    assert writer.written == [_state("b")]


@pytest.mark.asyncio
async def test_cancel_drops_pending_write() -> None:
    """Cancelled jobs should never reach the writer."""
    writer = _RecordingWriter()
    coalescer = WriteCoalescer(writer, delay_seconds=0.01)
    token = coalescer.schedule(_state("a"))

    coalescer.cancel()
    await asyncio.sleep(0.03)

    assert (token.cancelled, writer.written) == (True, [])


@pytest.mark.asyncio
async def test_flush_without_pending_returns_none() -> None:
    """Flushing an idle coalescer should be a no-op."""
    coalescer = WriteCoalescer(_RecordingWriter(), delay_seconds=0.01)

    assert await coalescer.flush() is None


def test_schedule_without_event_loop_writes_immediately() -> None:
    """Outside an event loop the write should run synchronously."""
    writer = _RecordingWriter()
    coalescer = WriteCoalescer(writer, delay_seconds=60)

    coalescer.schedule(_state("a"))

    assert (writer.written, coalescer.has_pending) == ([_state("a")], False)


@pytest.mark.asyncio
async def test_dispatch_starts_pending_write_without_delay() -> None:
    """dispatch should run the pending job now; drain waits for it."""
    writer = _RecordingWriter()
    coalescer = WriteCoalescer(writer, delay_seconds=60)
    coalescer.schedule(_state("a"))

    coalescer.dispatch()
    await coalescer.drain()

    assert (writer.written, coalescer.has_pending) == ([_state("a")], False)
