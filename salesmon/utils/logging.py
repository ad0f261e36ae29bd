import logging
from typing import Optional

from rich.logging import RichHandler


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(component)s | %(name)s | %(message)s"
DATE_FMT = "%Y-%m-%d %H:%M:%S"


class ComponentFilter(logging.Filter):
    """Fill in %(component)s from the logger name when a record does not carry one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "component"):
            # salesmon.monitoring.store -> store
            record.component = record.name.rsplit(".", 1)[-1] if record.name else "-"
        return True


def setup_logging(
    level: int | str = logging.INFO,
    rich_tracebacks: bool = True,
    log_file: Optional[str] = None,
) -> None:
    """Configure root logging: rich console output plus an optional plain log file."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    handler = RichHandler(rich_tracebacks=rich_tracebacks, markup=False)
    handler.addFilter(ComponentFilter())
    handlers: list[logging.Handler] = [handler]

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FMT))
        file_handler.addFilter(ComponentFilter())
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FMT,
        handlers=handlers,
        force=True,
    )
