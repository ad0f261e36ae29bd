"""Core module for the monitoring subsystem.

This module contains domain models, configuration, and constants.
"""

from salesmon.core.config import AlertThresholds, MonitoringSettings
from salesmon.core.models import (
    AiMetrics,
    Alert,
    AlertType,
    ApplicationMetrics,
    MemoryStats,
    MetricsSnapshot,
    SystemMetrics,
    TimingStats,
)
from salesmon.core.constants import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_MAX_METRICS_FILES,
    DEFAULT_METRICS_INTERVAL_MS,
)

__all__ = [
    "AlertThresholds",
    "MonitoringSettings",
    "AiMetrics",
    "Alert",
    "AlertType",
    "ApplicationMetrics",
    "MemoryStats",
    "MetricsSnapshot",
    "SystemMetrics",
    "TimingStats",
    "DEFAULT_HISTORY_LIMIT",
    "DEFAULT_MAX_METRICS_FILES",
    "DEFAULT_METRICS_INTERVAL_MS",
]
