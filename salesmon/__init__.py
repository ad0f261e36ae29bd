"""Monitoring subsystem for the WhatsApp sales assistant."""

__version__ = "0.1.0"
