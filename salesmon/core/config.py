"""Configuration management using Pydantic Settings.

This module handles loading monitoring configuration from environment
variables (``MONITORING_*``) and provides type-safe configuration objects.
"""

from pathlib import Path
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from salesmon.core.constants import (
    DEFAULT_CPU_SAMPLE_WINDOW_S,
    DEFAULT_MAX_METRICS_FILES,
    DEFAULT_METRICS_DIR,
    DEFAULT_METRICS_INTERVAL_MS,
    DEFAULT_THRESHOLD_CPU,
    DEFAULT_THRESHOLD_ERROR_RATE,
    DEFAULT_THRESHOLD_MEMORY,
    DEFAULT_THRESHOLD_QUEUE_SIZE,
    DEFAULT_THRESHOLD_RESPONSE_TIME,
)


class AlertThresholds(BaseModel):
    """Alert thresholds; a metric at or above its threshold opens an alert."""

    cpu: float = Field(DEFAULT_THRESHOLD_CPU, description="CPU usage %")
    memory: float = Field(DEFAULT_THRESHOLD_MEMORY, description="Memory usage %")
    response_time: float = Field(
        DEFAULT_THRESHOLD_RESPONSE_TIME, alias="responseTime", description="Average response time (ms)"
    )
    error_rate: float = Field(DEFAULT_THRESHOLD_ERROR_RATE, alias="errorRate", description="Error rate %")
    queue_size: float = Field(DEFAULT_THRESHOLD_QUEUE_SIZE, alias="queueSize", description="Queued messages")

    model_config = ConfigDict(populate_by_name=True)

    def for_metric(self, metric: str) -> float:
        """Threshold for a metric name as used in alert ids (camelCase)."""
        mapping = {
            "cpu": self.cpu,
            "memory": self.memory,
            "responseTime": self.response_time,
            "errorRate": self.error_rate,
            "queueSize": self.queue_size,
        }
        return mapping[metric]


class MonitoringSettings(BaseSettings):
    """Monitoring settings."""

    model_config = SettingsConfigDict(
        env_prefix="MONITORING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Collection
    metrics_interval: int = Field(
        DEFAULT_METRICS_INTERVAL_MS, gt=0, description="Collection interval in milliseconds"
    )
    cpu_sample_window: float = Field(
        DEFAULT_CPU_SAMPLE_WINDOW_S, ge=0.0, description="CPU sampling window in seconds"
    )

    # Persistence
    metrics_dir: Path = Field(Path(DEFAULT_METRICS_DIR), description="Directory for snapshot files")
    max_metrics_files: int = Field(
        DEFAULT_MAX_METRICS_FILES, ge=1, description="Maximum snapshot files kept on disk"
    )
    enable_metrics_logging: bool = Field(True, description="Persist snapshots to metrics_dir")

    # Alerting
    enable_alerts: bool = Field(True, description="Evaluate thresholds and emit alerts")
    threshold_cpu: float = Field(DEFAULT_THRESHOLD_CPU, description="CPU usage % (MONITORING_THRESHOLD_CPU)")
    threshold_memory: float = Field(
        DEFAULT_THRESHOLD_MEMORY, description="Memory usage % (MONITORING_THRESHOLD_MEMORY)"
    )
    threshold_response_time: float = Field(
        DEFAULT_THRESHOLD_RESPONSE_TIME, description="Average response time ms (MONITORING_THRESHOLD_RESPONSE_TIME)"
    )
    threshold_error_rate: float = Field(
        DEFAULT_THRESHOLD_ERROR_RATE, description="Error rate % (MONITORING_THRESHOLD_ERROR_RATE)"
    )
    threshold_queue_size: float = Field(
        DEFAULT_THRESHOLD_QUEUE_SIZE, description="Queued messages (MONITORING_THRESHOLD_QUEUE_SIZE)"
    )

    # Logging
    log_level: str = Field("INFO", description="Logging level")
    log_file: Optional[str] = Field(None, description="Log file path")

    # Dashboard
    dashboard_host: str = Field("127.0.0.1", description="Metrics API host")
    dashboard_port: int = Field(8000, description="Metrics API port")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Upper-case the log level name."""
        if isinstance(v, str):
            return v.strip().upper() or "INFO"
        return v

    @property
    def thresholds(self) -> AlertThresholds:
        """Get alert thresholds."""
        return AlertThresholds(
            cpu=self.threshold_cpu,
            memory=self.threshold_memory,
            response_time=self.threshold_response_time,
            error_rate=self.threshold_error_rate,
            queue_size=self.threshold_queue_size,
        )

    @property
    def metrics_interval_seconds(self) -> float:
        """Collection interval in seconds."""
        return self.metrics_interval / 1000.0

    @classmethod
    def from_env(cls) -> "MonitoringSettings":
        """Load settings from environment variables."""
        return cls()
