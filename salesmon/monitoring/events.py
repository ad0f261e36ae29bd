"""Publish/subscribe fan-out for monitoring events."""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from enum import Enum
from typing import Any, Callable, Optional


logger = logging.getLogger(__name__)

Handler = Callable[[Any], Any]


class MonitorEvent(str, Enum):
    """Events emitted by the monitoring system."""

    STARTED = "started"
    STOPPED = "stopped"
    METRICS = "metrics"
    ALERT = "alert"
    ALERT_RESOLVED = "alertResolved"
    ERROR = "error"


class EventBus:
    """Dispatches events to subscribed handlers.

    Handlers may be plain callables or coroutine functions. Coroutines are
    scheduled on the running loop, or on the loop bound with ``bind_loop``
    when emitting from a worker thread. A failing handler is logged and does
    not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}
        self._lock = threading.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def bind_loop(self, loop: Optional[asyncio.AbstractEventLoop]) -> None:
        """Loop used for coroutine handlers when emitting off-loop."""
        self._loop = loop

    def subscribe(self, event: str | MonitorEvent, handler: Handler) -> Callable[[], None]:
        """Register a handler; returns a callable that unsubscribes it."""
        name = _event_name(event)
        with self._lock:
            self._handlers.setdefault(name, []).append(handler)

        def _unsubscribe() -> None:
            self.unsubscribe(name, handler)

        return _unsubscribe

    def unsubscribe(self, event: str | MonitorEvent, handler: Handler) -> None:
        name = _event_name(event)
        with self._lock:
            handlers = self._handlers.get(name, [])
            if handler in handlers:
                handlers.remove(handler)

    def handler_count(self, event: str | MonitorEvent) -> int:
        with self._lock:
            return len(self._handlers.get(_event_name(event), []))

    def emit(self, event: str | MonitorEvent, payload: Any = None) -> None:
        """Deliver payload to every handler of event."""
        name = _event_name(event)
        with self._lock:
            handlers = list(self._handlers.get(name, []))

        for handler in handlers:
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    self._schedule(name, result)
            except Exception as e:
                logger.error(f"Event handler for '{name}' failed: {e}")

    def _schedule(self, name: str, awaitable: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            task = asyncio.ensure_future(awaitable)
            task.add_done_callback(lambda t, n=name: _log_task_failure(n, t))
            return

        if self._loop is not None and self._loop.is_running() and inspect.iscoroutine(awaitable):
            future = asyncio.run_coroutine_threadsafe(awaitable, self._loop)
            future.add_done_callback(lambda f, n=name: _log_task_failure(n, f))
            return

        logger.warning(f"No running event loop for async handler of '{name}', dropping event")
        if inspect.iscoroutine(awaitable):
            awaitable.close()


def _event_name(event: str | MonitorEvent) -> str:
    return event.value if isinstance(event, MonitorEvent) else str(event)


def _log_task_failure(name: str, future: Any) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error(f"Async event handler for '{name}' failed: {exc}")
