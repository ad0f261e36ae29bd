"""Per-interval application counters.

Tracking calls arrive from request handlers on the event loop and from worker
threads, so every mutation goes through a lock. ``drain`` hands the
interval's values to the collector and resets them in one step.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Optional

from salesmon.core.models import AiMetrics, ApplicationMetrics, TimingStats


@dataclass(frozen=True)
class CounterSnapshot:
    """Values accumulated during one interval."""

    message_count: int = 0
    error_count: int = 0
    ai_request_count: int = 0
    token_count: int = 0
    response_times: tuple[float, ...] = field(default_factory=tuple)
    ai_processing_times: tuple[float, ...] = field(default_factory=tuple)
    queue_size: int = 0
    active_chats: int = 0

    @property
    def error_rate(self) -> float:
        """Errors per message as a percentage, 0 when no messages were handled."""
        if self.message_count == 0:
            return 0.0
        return self.error_count / self.message_count * 100

    def application_metrics(self) -> ApplicationMetrics:
        return ApplicationMetrics(
            message_count=self.message_count,
            response_time=TimingStats.from_samples(self.response_times),
            error_count=self.error_count,
            error_rate=self.error_rate,
            queue_size=self.queue_size,
            active_chats=self.active_chats,
        )

    def ai_metrics(self) -> AiMetrics:
        return AiMetrics(
            request_count=self.ai_request_count,
            token_count=self.token_count,
            processing_time=TimingStats.from_samples(self.ai_processing_times),
        )


class CounterAccumulator:
    """Thread-safe counters scoped to the current collection interval."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._message_count = 0
        self._error_count = 0
        self._ai_request_count = 0
        self._token_count = 0
        self._response_times: list[float] = []
        self._ai_processing_times: list[float] = []
        # Gauges: last writer wins, carried across intervals
        self._queue_size = 0
        self._active_chats = 0

    def record_message(
        self,
        response_time: Optional[float] = None,
        queue_size: Optional[int] = None,
        active_chats: Optional[int] = None,
    ) -> None:
        with self._lock:
            self._message_count += 1
            if queue_size is not None:
                self._queue_size = int(queue_size)
            if active_chats is not None:
                self._active_chats = int(active_chats)
            if response_time is not None:
                self._response_times.append(float(response_time))

    def record_error(self) -> None:
        with self._lock:
            self._error_count += 1

    def record_ai_request(
        self,
        token_count: Optional[int] = None,
        processing_time: Optional[float] = None,
    ) -> None:
        with self._lock:
            self._ai_request_count += 1
            if token_count:
                self._token_count += int(token_count)
            if processing_time is not None:
                self._ai_processing_times.append(float(processing_time))

    def peek(self) -> CounterSnapshot:
        """Current values without resetting them."""
        with self._lock:
            return self._snapshot_locked()

    def drain(self) -> CounterSnapshot:
        """Return the interval's values and reset counts and samples."""
        with self._lock:
            snapshot = self._snapshot_locked()
            self._reset_locked()
            return snapshot

    def reset(self) -> None:
        with self._lock:
            self._reset_locked()

    def _snapshot_locked(self) -> CounterSnapshot:
        return CounterSnapshot(
            message_count=self._message_count,
            error_count=self._error_count,
            ai_request_count=self._ai_request_count,
            token_count=self._token_count,
            response_times=tuple(self._response_times),
            ai_processing_times=tuple(self._ai_processing_times),
            queue_size=self._queue_size,
            active_chats=self._active_chats,
        )

    def _reset_locked(self) -> None:
        self._message_count = 0
        self._error_count = 0
        self._ai_request_count = 0
        self._token_count = 0
        self._response_times = []
        self._ai_processing_times = []
