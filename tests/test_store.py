"""Tests for snapshot persistence and history."""

import json
import re
from datetime import datetime, timedelta, timezone

import pytest

from salesmon.core.exceptions import StorageError
from salesmon.core.models import ApplicationMetrics, MetricsSnapshot
from salesmon.monitoring.store import SnapshotStore, snapshot_filename


BASE = datetime(2025, 4, 6, 2, 2, 22, 928000, tzinfo=timezone.utc)


def snapshot_at(ts: int, messages: int = 0) -> MetricsSnapshot:
    return MetricsSnapshot(timestamp=ts, application=ApplicationMetrics(message_count=messages))


@pytest.fixture
def store(tmp_path):
    store = SnapshotStore(tmp_path / "metrics", max_files=5)
    store.ensure_directory()
    return store


def test_snapshot_filename_is_filesystem_safe():
    """Test ':' and '.' are replaced and the name sorts chronologically."""
    name = snapshot_filename(BASE)
    assert name == "metrics-2025-04-06T02-02-22-928Z.json"
    assert ":" not in name

    later = snapshot_filename(BASE + timedelta(milliseconds=1))
    assert sorted([later, name]) == [name, later]


def test_snapshot_filename_treats_naive_as_utc():
    """Test naive datetimes are taken as UTC."""
    assert snapshot_filename(BASE.replace(tzinfo=None)) == snapshot_filename(BASE)


def test_save_writes_wire_json(store):
    """Test saved file contains the camelCase snapshot."""
    path = store.save(snapshot_at(1000, messages=3), now=BASE)
    assert path is not None
    assert re.match(r"^metrics-.*\.json$", path.name)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["timestamp"] == 1000
    assert data["application"]["messageCount"] == 3
    assert set(data) == {"timestamp", "system", "application", "ai"}


@pytest.mark.parametrize("extra", [1, 3, 7])
def test_retention_keeps_most_recent(store, extra):
    """Test writing max_files + K snapshots keeps only the newest max_files."""
    total = store.max_files + extra
    names = []
    for i in range(total):
        path = store.save(snapshot_at(i), now=BASE + timedelta(minutes=i))
        names.append(path.name)

    kept = store.list_files()
    assert len(kept) == store.max_files
    assert kept == sorted(names)[-store.max_files:]


def test_prune_ignores_unrelated_files(store):
    """Test only metrics-*.json files count toward retention."""
    (store.metrics_dir / "notes.txt").write_text("keep me")
    (store.metrics_dir / "metrics-summary.csv").write_text("keep me too")
    for i in range(store.max_files + 2):
        store.save(snapshot_at(i), now=BASE + timedelta(seconds=i))

    assert len(store.list_files()) == store.max_files
    assert (store.metrics_dir / "notes.txt").exists()
    assert (store.metrics_dir / "metrics-summary.csv").exists()


def test_prune_failure_is_swallowed(tmp_path):
    """Test pruning a missing directory logs and returns 0."""
    store = SnapshotStore(tmp_path / "missing", max_files=1)
    assert store.prune() == 0


def test_save_failure_is_swallowed(tmp_path):
    """Test a write error does not raise."""
    store = SnapshotStore(tmp_path / "missing", max_files=1)
    assert store.save(snapshot_at(1), now=BASE) is None


def test_ensure_directory_failure_raises(tmp_path):
    """Test directory creation errors surface as StorageError."""
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    store = SnapshotStore(blocker / "metrics")
    with pytest.raises(StorageError):
        store.ensure_directory()


def test_history_range_filter(store):
    """Test [start, end] is inclusive and excludes earlier snapshots."""
    t1, t2, t3 = 1_000, 2_000, 3_000
    for i, ts in enumerate((t1, t2, t3)):
        store.save(snapshot_at(ts), now=BASE + timedelta(minutes=i))

    result = store.history(start_time=t2, end_time=t3)
    assert [s.timestamp for s in result] == [t3, t2]


def test_history_most_recent_first_and_limit(store):
    """Test history order and limit."""
    for i in range(4):
        store.save(snapshot_at(1000 + i), now=BASE + timedelta(minutes=i))

    result = store.history(limit=2, start_time=0, end_time=10_000)
    assert [s.timestamp for s in result] == [1003, 1002]


def test_history_filters_before_limiting(tmp_path):
    """Test limit counts matching snapshots, not scanned files."""
    store = SnapshotStore(tmp_path, max_files=100)
    for i in range(10):
        store.save(snapshot_at(1000 + i), now=BASE + timedelta(minutes=i))

    # The 5 newest files fall outside the range; the limit still fills up
    result = store.history(limit=3, start_time=1000, end_time=1004)
    assert [s.timestamp for s in result] == [1004, 1003, 1002]


def test_history_skips_corrupted_files(store):
    """Test unparsable files are skipped, not fatal."""
    store.save(snapshot_at(1000), now=BASE)
    (store.metrics_dir / snapshot_filename(BASE + timedelta(minutes=1))).write_text("{not json")
    (store.metrics_dir / snapshot_filename(BASE + timedelta(minutes=2))).write_text('{"timestamp": "soon"}')
    store.save(snapshot_at(3000), now=BASE + timedelta(minutes=3))

    result = store.history(start_time=0, end_time=10_000)
    assert [s.timestamp for s in result] == [3000, 1000]


def test_history_missing_directory(tmp_path):
    """Test history on a missing directory is empty."""
    assert SnapshotStore(tmp_path / "nope").history() == []
