"""Exceptions raised by the monitoring subsystem."""


class MonitoringError(Exception):
    """Base exception for the monitoring subsystem."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class CollectionError(MonitoringError):
    """A collection cycle failed (OS sampling or snapshot assembly)."""


class StorageError(MonitoringError):
    """The snapshot directory could not be prepared."""
