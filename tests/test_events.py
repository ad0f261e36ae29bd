"""Tests for the event bus."""

import asyncio
import threading

import pytest

from salesmon.monitoring.events import EventBus, MonitorEvent


def test_subscribe_and_emit():
    """Test handlers receive payloads by enum or string name."""
    bus = EventBus()
    received = []
    bus.subscribe(MonitorEvent.METRICS, received.append)
    bus.subscribe("metrics", received.append)

    bus.emit("metrics", {"cpu": 1})
    assert received == [{"cpu": 1}, {"cpu": 1}]
    assert bus.handler_count(MonitorEvent.METRICS) == 2


def test_unsubscribe_callable():
    """Test the returned callable removes the handler."""
    bus = EventBus()
    received = []
    unsubscribe = bus.subscribe(MonitorEvent.ALERT, received.append)
    unsubscribe()
    unsubscribe()

    bus.emit(MonitorEvent.ALERT, "x")
    assert received == []
    assert bus.handler_count(MonitorEvent.ALERT) == 0


def test_failing_handler_is_isolated():
    """Test one failing handler does not block the next."""
    bus = EventBus()
    received = []

    def broken(_payload):
        raise ValueError("bad handler")

    bus.subscribe(MonitorEvent.ERROR, broken)
    bus.subscribe(MonitorEvent.ERROR, received.append)
    bus.emit(MonitorEvent.ERROR, {"message": "boom"})
    assert received == [{"message": "boom"}]


def test_emit_without_subscribers():
    """Test emitting an event nobody listens to is a no-op."""
    EventBus().emit(MonitorEvent.STARTED)


@pytest.mark.asyncio
async def test_coroutine_handler_on_running_loop():
    """Test async handlers are scheduled on the current loop."""
    bus = EventBus()
    received = []

    async def handler(payload):
        received.append(payload)

    bus.subscribe(MonitorEvent.METRICS, handler)
    bus.emit(MonitorEvent.METRICS, 7)
    await asyncio.sleep(0)
    assert received == [7]


@pytest.mark.asyncio
async def test_coroutine_handler_from_worker_thread():
    """Test async handlers emitted off-loop run on the bound loop."""
    bus = EventBus()
    bus.bind_loop(asyncio.get_running_loop())
    done = asyncio.Event()
    received = []

    async def handler(payload):
        received.append(payload)
        done.set()

    bus.subscribe(MonitorEvent.ALERT, handler)
    thread = threading.Thread(target=bus.emit, args=(MonitorEvent.ALERT, "from-thread"))
    thread.start()
    await asyncio.wait_for(done.wait(), timeout=2)
    thread.join()
    assert received == ["from-thread"]


def test_coroutine_handler_without_loop_is_dropped():
    """Test async handlers without any loop are closed, not leaked."""
    bus = EventBus()
    calls = []

    async def handler(payload):
        calls.append(payload)

    bus.subscribe(MonitorEvent.METRICS, handler)
    bus.emit(MonitorEvent.METRICS, 1)
    assert calls == []
