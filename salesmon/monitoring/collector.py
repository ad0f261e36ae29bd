"""System metrics collection and snapshot assembly.

CPU usage is measured as a delta of cumulative busy/idle CPU time over a
fixed window (one second by default) rather than from an instantaneous read,
which is meaningless over arbitrarily short spans.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import psutil

from salesmon.core.constants import DEFAULT_CPU_SAMPLE_WINDOW_S
from salesmon.core.models import MemoryStats, MetricsSnapshot, SystemMetrics
from salesmon.monitoring.counters import CounterSnapshot


logger = logging.getLogger(__name__)

# Already counted inside user/nice on Linux
_EXCLUDED_CPU_FIELDS = ("guest", "guest_nice")
_IDLE_CPU_FIELDS = ("idle", "iowait")


@dataclass(frozen=True)
class CpuTimes:
    """Cumulative idle and total CPU time (seconds, summed over all CPUs)."""

    idle: float
    total: float


def read_cpu_times(raw: Optional[Any] = None) -> CpuTimes:
    """Read cumulative CPU times from psutil (or reduce a given psutil record)."""
    times = raw if raw is not None else psutil.cpu_times()
    fields = times._asdict()
    total = sum(v for k, v in fields.items() if k not in _EXCLUDED_CPU_FIELDS)
    idle = sum(fields.get(k, 0.0) for k in _IDLE_CPU_FIELDS)
    return CpuTimes(idle=idle, total=total)


def cpu_usage_between(start: CpuTimes, end: CpuTimes) -> float:
    """CPU usage % between two readings, clamped to [0, 100].

    A non-positive total delta (counter wraparound, identical readings)
    yields 0.
    """
    idle_delta = end.idle - start.idle
    total_delta = end.total - start.total
    if total_delta <= 0:
        return 0.0
    usage = 100.0 - (100.0 * idle_delta / total_delta)
    return max(0.0, min(100.0, usage))


class CpuSampler:
    """Samples CPU usage over a fixed window without blocking the loop."""

    def __init__(
        self,
        window: float = DEFAULT_CPU_SAMPLE_WINDOW_S,
        reader: Callable[[], CpuTimes] = read_cpu_times,
    ):
        """Initialize CPU sampler.

        Args:
            window: Sampling window in seconds
            reader: Callable returning cumulative CPU times
        """
        self.window = window
        self.reader = reader

    async def sample(self) -> float:
        """Return CPU usage % over the sampling window."""
        start = self.reader()
        await asyncio.sleep(self.window)
        end = self.reader()
        return cpu_usage_between(start, end)


def read_memory() -> MemoryStats:
    """Read system memory usage."""
    mem = psutil.virtual_memory()
    total = int(mem.total)
    used = total - int(mem.available)
    percentage = (used / total * 100) if total > 0 else 0.0
    return MemoryStats(total=total, used=used, percentage=percentage)


def read_uptime() -> float:
    """OS uptime in seconds."""
    return max(0.0, time.time() - psutil.boot_time())


async def collect_system_metrics(
    cpu_sampler: Optional[CpuSampler] = None,
    memory_reader: Callable[[], MemoryStats] = read_memory,
    uptime_reader: Callable[[], float] = read_uptime,
) -> SystemMetrics:
    """Collect CPU, memory and uptime.

    Args:
        cpu_sampler: CPU sampler (a default one-second sampler if omitted)
        memory_reader: Callable returning memory usage
        uptime_reader: Callable returning uptime in seconds

    Returns:
        System metrics
    """
    sampler = cpu_sampler or CpuSampler()
    cpu = await sampler.sample()
    memory = memory_reader()
    uptime = uptime_reader()
    return SystemMetrics(cpu=cpu, memory=memory, uptime=uptime)


def build_snapshot(timestamp: int, system: SystemMetrics, counters: CounterSnapshot) -> MetricsSnapshot:
    """Combine system metrics and drained counters into a snapshot."""
    return MetricsSnapshot(
        timestamp=timestamp,
        system=system,
        application=counters.application_metrics(),
        ai=counters.ai_metrics(),
    )
