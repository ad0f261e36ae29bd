"""Threshold alerting.

This module evaluates snapshots against configured thresholds and manages the
alert lifecycle:
- open once when a metric reaches its threshold
- stay open silently while the breach persists
- resolve on the first snapshot where the metric drops below the threshold
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from salesmon.core.config import AlertThresholds
from salesmon.core.constants import THRESHOLD_METRICS
from salesmon.core.models import Alert, AlertType, MetricsSnapshot, now_ms
from salesmon.monitoring.events import EventBus, MonitorEvent


logger = logging.getLogger(__name__)


class ThresholdAlertEngine:
    """Evaluates snapshots and keeps at most one open alert per metric."""

    def __init__(
        self,
        thresholds: Optional[AlertThresholds] = None,
        events: Optional[EventBus] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.thresholds = thresholds or AlertThresholds()
        self.events = events or EventBus()
        self.clock = clock
        self._active: dict[str, Alert] = {}
        # Readers may be worker threads (HTTP handlers)
        self._lock = threading.Lock()

    def evaluate(self, snapshot: MetricsSnapshot, response_samples: Optional[int] = None) -> list[Alert]:
        """Evaluate a snapshot and return the alerts opened by it.

        Args:
            snapshot: Freshly collected snapshot
            response_samples: Number of response-time samples in the interval;
                when omitted, a zero average counts as "no samples"

        Returns:
            Alerts opened during this evaluation
        """
        opened: list[Alert] = []
        readings = _readings(snapshot)

        # Only an observed response time can breach
        app = snapshot.application
        has_samples = response_samples > 0 if response_samples is not None else app.response_time.avg > 0
        if not has_samples:
            readings.pop("responseTime")

        for metric in THRESHOLD_METRICS:
            if metric not in readings:
                continue
            value, message = readings[metric]
            alert = self.check_threshold(metric, value, self.thresholds.for_metric(metric), message)
            if alert is not None:
                opened.append(alert)
        return opened

    def check_threshold(self, metric: str, value: float, threshold: float, message: str) -> Optional[Alert]:
        """Apply the open/resolve transition for one metric.

        Returns:
            The alert if one was opened, otherwise None
        """
        alert_id = Alert.id_for(metric)

        if value >= threshold:
            with self._lock:
                if alert_id in self._active:
                    return None
                alert = Alert(
                    id=alert_id,
                    type=AlertType.THRESHOLD,
                    metric=metric,
                    value=value,
                    threshold=threshold,
                    message=message,
                    timestamp=self.clock(),
                )
                self._active[alert_id] = alert
            self.events.emit(MonitorEvent.ALERT, alert)
            logger.warning(f"Alert: {message}")
            return alert

        with self._lock:
            alert = self._active.pop(alert_id, None)
        if alert is not None:
            alert.resolve(self.clock())
            self.events.emit(MonitorEvent.ALERT_RESOLVED, alert)
            logger.info(f"Alert resolved: {metric} is back to normal levels")
        return None

    def get_active_alerts(self) -> list[Alert]:
        """Open alerts, in the order they were opened."""
        with self._lock:
            return list(self._active.values())

    def is_active(self, metric: str) -> bool:
        with self._lock:
            return Alert.id_for(metric) in self._active

    def clear(self) -> None:
        """Drop all open alerts without emitting resolution events."""
        with self._lock:
            self._active.clear()


def _readings(snapshot: MetricsSnapshot) -> dict[str, tuple[float, str]]:
    """Value and alert message for each thresholded metric."""
    system = snapshot.system
    app = snapshot.application
    return {
        "cpu": (system.cpu, f"High CPU usage: {system.cpu:.1f}%"),
        "memory": (system.memory.percentage, f"High memory usage: {system.memory.percentage:.1f}%"),
        "responseTime": (app.response_time.avg, f"High response time: {app.response_time.avg:.0f}ms"),
        "errorRate": (app.error_rate, f"High error rate: {app.error_rate:.1f}%"),
        "queueSize": (app.queue_size, f"Large message queue: {app.queue_size} messages"),
    }
