"""Monitoring system runtime.

Ties together the collector, the threshold alerting engine and the snapshot
store. The host application owns one ``MonitoringSystem`` and hands it to the
components that report activity (``track_*``) or read metrics.

Cycle order: stamp time -> sample CPU -> memory -> uptime -> drain counters
-> evaluate thresholds -> persist -> broadcast ``metrics``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

from salesmon.core.config import MonitoringSettings
from salesmon.core.exceptions import CollectionError
from salesmon.core.constants import DEFAULT_HISTORY_LIMIT
from salesmon.core.models import Alert, MetricsSnapshot, SystemMetrics, now_ms
from salesmon.monitoring.alerts import ThresholdAlertEngine
from salesmon.monitoring.collector import CpuSampler, build_snapshot, collect_system_metrics
from salesmon.monitoring.counters import CounterAccumulator
from salesmon.monitoring.events import EventBus, MonitorEvent
from salesmon.monitoring.store import SnapshotStore


logger = logging.getLogger(__name__)


class MonitoringSystem:
    """Metrics collector, alerting engine and snapshot store in one runtime."""

    def __init__(
        self,
        settings: Optional[MonitoringSettings] = None,
        *,
        store: Optional[SnapshotStore] = None,
        cpu_sampler: Optional[CpuSampler] = None,
        system_collector: Optional[Callable[..., Any]] = None,
        clock: Callable[[], int] = now_ms,
    ):
        """Initialize monitoring system.

        Args:
            settings: Monitoring settings (loaded from env if omitted)
            store: Snapshot store (built from settings if omitted)
            cpu_sampler: CPU sampler (built from settings if omitted)
            system_collector: Coroutine function returning SystemMetrics,
                called with the CPU sampler
            clock: Epoch-ms clock
        """
        self.settings = settings or MonitoringSettings.from_env()
        self.clock = clock
        self.events = EventBus()
        self.counters = CounterAccumulator()
        self.store = store or SnapshotStore(self.settings.metrics_dir, self.settings.max_metrics_files)
        self.cpu_sampler = cpu_sampler or CpuSampler(window=self.settings.cpu_sample_window)
        self.alert_engine = ThresholdAlertEngine(self.settings.thresholds, self.events, clock)
        self._system_collector = system_collector or collect_system_metrics

        self._metrics = MetricsSnapshot.empty(clock())
        self._last_collected_at: Optional[int] = None
        self._cycle_lock: Optional[asyncio.Lock] = None
        self._start_lock: Optional[asyncio.Lock] = None
        self._loop_task: Optional[asyncio.Task] = None
        self.running = False

    # Lifecycle

    @property
    def is_running(self) -> bool:
        return self.running

    async def start(self) -> bool:
        """Start periodic collection.

        Creates the metrics directory (when persistence is enabled), runs one
        collection immediately and schedules the rest on a fixed delay.

        Returns:
            True if started (or already running), False on failure
        """
        if self._start_lock is None:
            self._start_lock = asyncio.Lock()

        # Overlapping calls wait here and then see running=True
        async with self._start_lock:
            if self.running:
                return True

            logger.info("Starting monitoring system...")
            try:
                self.events.bind_loop(asyncio.get_running_loop())
                if self.settings.enable_metrics_logging:
                    await asyncio.to_thread(self.store.ensure_directory)

                await self.collect_metrics()

                self.running = True
                self._loop_task = asyncio.create_task(self._collection_loop())
                logger.info("Monitoring system started")
                self.events.emit(MonitorEvent.STARTED)
                return True
            except Exception as e:
                logger.error(f"Error starting monitoring system: {e}")
                return False

    def stop(self) -> bool:
        """Cancel future collections; an in-flight cycle is not awaited.

        Returns:
            True if the monitor was running
        """
        if not self.running:
            return False

        logger.info("Stopping monitoring system...")
        self.running = False
        if self._loop_task is not None:
            self._loop_task.cancel()
            self._loop_task = None

        logger.info("Monitoring system stopped")
        self.events.emit(MonitorEvent.STOPPED)
        return True

    async def _collection_loop(self) -> None:
        """Fixed-delay loop: the next cycle is scheduled after the previous one ends."""
        interval = self.settings.metrics_interval_seconds
        while self.running:
            try:
                await asyncio.sleep(interval)
                if not self.running:
                    break
                await self.collect_metrics()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error collecting metrics: {e}")

    # Collection

    async def collect_metrics(self) -> MetricsSnapshot:
        """Run one collection cycle.

        At most one cycle runs at a time; a concurrent call waits for the
        current one to finish.

        Returns:
            The new snapshot

        Raises:
            CollectionError: If sampling or snapshot assembly fails
        """
        if self._cycle_lock is None:
            self._cycle_lock = asyncio.Lock()

        async with self._cycle_lock:
            try:
                timestamp = self.clock()
                system = await self._system_collector(self.cpu_sampler)
                drained = self.counters.drain()
                snapshot = build_snapshot(timestamp, system, drained)
            except Exception as e:
                logger.error(f"Error collecting metrics: {e}")
                raise CollectionError(f"Metrics collection failed: {e}") from e

            if self.settings.enable_alerts:
                try:
                    self.alert_engine.evaluate(snapshot, response_samples=len(drained.response_times))
                except Exception as e:
                    logger.error(f"Error evaluating thresholds: {e}")
                    raise CollectionError(f"Threshold evaluation failed: {e}") from e

            if self.settings.enable_metrics_logging:
                await asyncio.to_thread(self.store.save, snapshot)

            self._metrics = snapshot
            self._last_collected_at = timestamp
            self.events.emit(MonitorEvent.METRICS, snapshot)

            logger.debug(
                f"Metrics collected: cpu={snapshot.system.cpu:.1f}% "
                f"mem={snapshot.system.memory.percentage:.1f}% "
                f"messages={snapshot.application.message_count} "
                f"errors={snapshot.application.error_count}"
            )
            return snapshot

    async def collect_system_metrics(self) -> SystemMetrics:
        """Sample CPU, memory and uptime without touching the counters."""
        return await self._system_collector(self.cpu_sampler)

    # Tracking

    def track_message(
        self,
        response_time: Optional[float] = None,
        queue_size: Optional[int] = None,
        active_chats: Optional[int] = None,
    ) -> None:
        """Record a handled message.

        Args:
            response_time: Response time in ms
            queue_size: Current message queue size (overwrites the last value)
            active_chats: Current number of active chats (overwrites the last value)
        """
        self.counters.record_message(response_time, queue_size, active_chats)

    def track_error(self, details: Optional[dict[str, Any]] = None, **extra: Any) -> None:
        """Record an error and emit an ``error`` event immediately."""
        self.counters.record_error()
        payload: dict[str, Any] = {"timestamp": self.clock()}
        payload.update(details or {})
        payload.update(extra)
        self.events.emit(MonitorEvent.ERROR, payload)

    def track_ai_request(
        self,
        token_count: Optional[int] = None,
        processing_time: Optional[float] = None,
        **context: Any,
    ) -> None:
        """Record an AI backend request.

        Args:
            token_count: Tokens consumed by the request
            processing_time: Processing time in ms
            **context: Extra request context (cache_hit, error), not counted
        """
        self.counters.record_ai_request(token_count, processing_time)

    # Reads

    def get_metrics(self) -> MetricsSnapshot:
        """Last collected snapshot (all zeros before the first cycle)."""
        return self._metrics

    def get_active_alerts(self) -> list[Alert]:
        return self.alert_engine.get_active_alerts()

    async def get_metrics_history(
        self,
        limit: int = DEFAULT_HISTORY_LIMIT,
        start_time: int = 0,
        end_time: Optional[int] = None,
    ) -> list[MetricsSnapshot]:
        """Persisted snapshots within [start_time, end_time], most recent first."""
        return await asyncio.to_thread(self.store.history, limit, start_time, end_time)

    def on(self, event: str | MonitorEvent, handler: Callable[[Any], Any]) -> Callable[[], None]:
        """Subscribe to an event; returns an unsubscribe callable."""
        return self.events.subscribe(event, handler)

    def status(self) -> dict[str, Any]:
        """Runtime status summary."""
        return {
            "running": self.running,
            "interval_ms": self.settings.metrics_interval,
            "metrics_dir": str(self.store.metrics_dir),
            "active_alerts": len(self.get_active_alerts()),
            "last_collected_at": self._last_collected_at,
        }
