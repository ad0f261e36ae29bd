"""Monitoring module for metrics, alerts and snapshot history."""

from salesmon.monitoring.alerts import ThresholdAlertEngine
from salesmon.monitoring.collector import CpuSampler, collect_system_metrics
from salesmon.monitoring.counters import CounterAccumulator, CounterSnapshot
from salesmon.monitoring.events import EventBus, MonitorEvent
from salesmon.monitoring.store import SnapshotStore
from salesmon.monitoring.system import MonitoringSystem

__all__ = [
    "ThresholdAlertEngine",
    "CpuSampler",
    "collect_system_metrics",
    "CounterAccumulator",
    "CounterSnapshot",
    "EventBus",
    "MonitorEvent",
    "SnapshotStore",
    "MonitoringSystem",
]
