"""Domain models for the monitoring subsystem.

Snapshots and alerts are Pydantic models. Python attributes are snake_case;
the persisted/served JSON uses the camelCase aliases consumed by the admin
panel and the desktop dashboard.
"""

import time
from enum import Enum
from typing import Any, Iterable, Optional
from pydantic import BaseModel, ConfigDict, Field


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


class WireModel(BaseModel):
    """Base model that accepts both field names and camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON shape."""
        return self.model_dump(mode="json", by_alias=True)


class TimingStats(WireModel):
    """Average/min/max of the timing samples seen during one interval."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    avg: float = Field(0.0, description="Arithmetic mean (ms)")
    min: float = Field(0.0, description="Smallest sample (ms)")
    max: float = Field(0.0, description="Largest sample (ms)")

    @classmethod
    def from_samples(cls, samples: Iterable[float]) -> "TimingStats":
        """Aggregate raw samples; zero-valued when there are none."""
        values = list(samples)
        if not values:
            return cls()
        return cls(avg=sum(values) / len(values), min=min(values), max=max(values))


class MemoryStats(WireModel):
    """System memory usage."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    total: int = Field(0, description="Total memory in bytes")
    used: int = Field(0, description="Used memory in bytes")
    percentage: float = Field(0.0, description="Used memory as % of total")


class SystemMetrics(WireModel):
    """OS-level measurements."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    cpu: float = Field(0.0, ge=0.0, le=100.0, description="CPU usage % over the sample window")
    memory: MemoryStats = Field(default_factory=MemoryStats, description="Memory usage")
    uptime: float = Field(0.0, description="OS uptime in seconds")


class ApplicationMetrics(WireModel):
    """Message handling counters for one interval."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    message_count: int = Field(0, alias="messageCount", description="Messages handled")
    response_time: TimingStats = Field(
        default_factory=TimingStats, alias="responseTime", description="Response time stats (ms)"
    )
    error_count: int = Field(0, alias="errorCount", description="Errors tracked")
    error_rate: float = Field(0.0, alias="errorRate", description="errorCount / messageCount * 100")
    queue_size: int = Field(0, alias="queueSize", description="Last reported queue size")
    active_chats: int = Field(0, alias="activeChats", description="Last reported active chats")


class AiMetrics(WireModel):
    """LLM backend usage for one interval."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    request_count: int = Field(0, alias="requestCount", description="AI requests issued")
    token_count: int = Field(0, alias="tokenCount", description="Tokens consumed")
    processing_time: TimingStats = Field(
        default_factory=TimingStats, alias="processingTime", description="Processing time stats (ms)"
    )


class MetricsSnapshot(WireModel):
    """Immutable point-in-time measurement produced once per interval."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    timestamp: int = Field(..., description="Snapshot time (epoch ms)")
    system: SystemMetrics = Field(default_factory=SystemMetrics)
    application: ApplicationMetrics = Field(default_factory=ApplicationMetrics)
    ai: AiMetrics = Field(default_factory=AiMetrics)

    @classmethod
    def empty(cls, timestamp: Optional[int] = None) -> "MetricsSnapshot":
        """All-zero snapshot used before the first collection cycle."""
        return cls(timestamp=timestamp if timestamp is not None else now_ms())

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "MetricsSnapshot":
        """Parse the camelCase JSON shape."""
        return cls.model_validate(data)


class AlertType(str, Enum):
    """Alert type enumeration."""

    THRESHOLD = "threshold"


class Alert(WireModel):
    """A threshold breach, open until the metric recovers."""

    id: str = Field(..., description="Deterministic id, e.g. threshold_cpu")
    type: AlertType = Field(AlertType.THRESHOLD, description="Alert type")
    metric: str = Field(..., description="Metric name")
    value: float = Field(..., description="Value that opened the alert")
    threshold: float = Field(..., description="Configured threshold")
    message: str = Field(..., description="Human-readable message")
    timestamp: int = Field(default_factory=now_ms, description="Opened at (epoch ms)")
    resolved: bool = Field(False, description="Whether the alert has been resolved")
    resolved_at: Optional[int] = Field(None, alias="resolvedAt", description="Resolved at (epoch ms)")

    @staticmethod
    def id_for(metric: str) -> str:
        """Alert id for a metric name."""
        return f"threshold_{metric}"

    def resolve(self, at: Optional[int] = None) -> None:
        """Mark the alert resolved."""
        self.resolved = True
        self.resolved_at = at if at is not None else now_ms()
