"""Snapshot persistence with count-based retention.

One JSON file per snapshot, named ``metrics-<UTC ISO-8601>.json`` with ``:``
and ``.`` replaced by ``-`` so that sorting filenames sorts them
chronologically.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from salesmon.core.constants import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_MAX_METRICS_FILES,
    METRICS_FILE_PREFIX,
    METRICS_FILE_SUFFIX,
)
from salesmon.core.exceptions import StorageError
from salesmon.core.models import MetricsSnapshot, now_ms


logger = logging.getLogger(__name__)


def snapshot_filename(now: Optional[datetime] = None) -> str:
    """Filesystem-safe snapshot filename for a wall-clock instant."""
    ts = now or datetime.now(timezone.utc)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    ts = ts.astimezone(timezone.utc)
    stamp = f"{ts:%Y-%m-%dT%H-%M-%S}-{ts.microsecond // 1000:03d}Z"
    return f"{METRICS_FILE_PREFIX}{stamp}{METRICS_FILE_SUFFIX}"


def is_snapshot_file(name: str) -> bool:
    return name.startswith(METRICS_FILE_PREFIX) and name.endswith(METRICS_FILE_SUFFIX)


class SnapshotStore:
    """Persists snapshots to a directory and answers history queries."""

    def __init__(self, metrics_dir: Path | str, max_files: int = DEFAULT_MAX_METRICS_FILES) -> None:
        """Initialize snapshot store.

        Args:
            metrics_dir: Directory holding snapshot files
            max_files: Retention cap (oldest files are deleted beyond it)
        """
        self.metrics_dir = Path(metrics_dir)
        self.max_files = max_files

    def ensure_directory(self) -> None:
        """Create the metrics directory if it does not exist."""
        try:
            self.metrics_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Error creating metrics directory {self.metrics_dir}: {e}")
            raise StorageError(f"Cannot create metrics directory: {e}", {"path": str(self.metrics_dir)}) from e

    def list_files(self) -> list[str]:
        """Snapshot filenames, oldest first."""
        return sorted(p.name for p in self.metrics_dir.iterdir() if p.is_file() and is_snapshot_file(p.name))

    def save(self, snapshot: MetricsSnapshot, now: Optional[datetime] = None) -> Optional[Path]:
        """Write a snapshot file, then apply retention.

        Write failures are logged and swallowed; persistence is best-effort.

        Returns:
            Path of the written file, or None if the write failed
        """
        path = self.metrics_dir / snapshot_filename(now)
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(snapshot.to_wire(), f, indent=2)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error saving metrics to {path.name}: {e}")
            return None

        self.prune()
        return path

    def prune(self) -> int:
        """Delete the oldest snapshot files beyond the retention cap.

        Returns:
            Number of files deleted
        """
        try:
            files = self.list_files()
            surplus = len(files) - self.max_files
            if surplus <= 0:
                return 0
            for name in files[:surplus]:
                (self.metrics_dir / name).unlink()
            logger.debug(f"Pruned {surplus} old metrics files")
            return surplus
        except OSError as e:
            logger.error(f"Error cleaning up old metrics files: {e}")
            return 0

    def history(
        self,
        limit: int = DEFAULT_HISTORY_LIMIT,
        start_time: int = 0,
        end_time: Optional[int] = None,
    ) -> list[MetricsSnapshot]:
        """Persisted snapshots within [start_time, end_time], most recent first.

        Files are scanned newest-first and filtered by their ``timestamp``
        field; scanning stops once ``limit`` matching snapshots are found.
        Unreadable files are logged and skipped.

        Args:
            limit: Maximum number of snapshots to return
            start_time: Inclusive lower bound (epoch ms)
            end_time: Inclusive upper bound (epoch ms), defaults to now

        Returns:
            Matching snapshots
        """
        upper = end_time if end_time is not None else now_ms()
        if limit <= 0:
            return []

        try:
            files = self.list_files()
        except OSError as e:
            logger.error(f"Error reading metrics history: {e}")
            return []

        results: list[MetricsSnapshot] = []
        for name in reversed(files):
            snapshot = self._read(name)
            if snapshot is None:
                continue
            if start_time <= snapshot.timestamp <= upper:
                results.append(snapshot)
                if len(results) >= limit:
                    break
        return results

    def _read(self, name: str) -> Optional[MetricsSnapshot]:
        try:
            with open(self.metrics_dir / name, "r", encoding="utf-8") as f:
                return MetricsSnapshot.from_wire(json.load(f))
        except (OSError, ValueError, ValidationError) as e:
            logger.error(f"Error reading metrics file {name}: {e}")
            return None
