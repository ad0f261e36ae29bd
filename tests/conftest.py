"""Shared fixtures for monitoring tests."""

import pytest

from salesmon.core.config import MonitoringSettings
from salesmon.core.models import MemoryStats, SystemMetrics
from salesmon.monitoring.system import MonitoringSystem


class FakeSystem:
    """Deterministic stand-in for OS sampling."""

    def __init__(self, cpu: float = 10.0, memory_pct: float = 40.0):
        self.cpu = cpu
        self.memory_pct = memory_pct
        self.calls = 0

    async def __call__(self, cpu_sampler=None) -> SystemMetrics:
        self.calls += 1
        total = 8 * 1024 ** 3
        used = int(total * self.memory_pct / 100)
        return SystemMetrics(
            cpu=self.cpu,
            memory=MemoryStats(total=total, used=used, percentage=self.memory_pct),
            uptime=3600.0,
        )


class FakeClock:
    """Epoch-ms clock advanced manually."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def settings(tmp_path):
    """Create monitoring settings pointing at a temp directory."""
    return MonitoringSettings(
        metrics_interval=60000,
        metrics_dir=tmp_path / "metrics",
        max_metrics_files=5,
        cpu_sample_window=0.0,
    )


@pytest.fixture
def fake_system():
    return FakeSystem()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def monitor(settings, fake_system, clock):
    """Create a monitoring system with fake OS sampling."""
    return MonitoringSystem(settings, system_collector=fake_system, clock=clock)


@pytest.fixture
def make_system():
    """Factory for fake OS sampling with custom readings."""
    return FakeSystem
