# src/fkb/core/logging/builder.py
"""
Apply the package's logging configuration.

`setup_logging(settings)` installs a dictConfig built from Settings. With
LOG_USE_QUEUE the real handlers are moved behind a QueueListener thread, so code
running on the event loop only enqueues records and never waits on file or
console IO. `stop_queue_logging()` drains the queue at shutdown.

Settings read here:
  LOG_LEVEL, LOG_FORMAT, LOG_TO_STDOUT, LOG_DIR, ENABLE_SQL_LOGGING, ENV,
  LOG_USE_QUEUE, LOG_QUEUE_MAX_SIZE (0 = unbounded), LOG_QUEUE_BLOCKING,
  LOG_QUEUE_DROP_WARNING_THRESHOLD
"""

from __future__ import annotations

import logging
import logging.config
import queue
import sys
import threading
from dataclasses import dataclass, field
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path

from fkb.config.settings import Settings
from fkb.utils.project_metadata import get_project_name

from .filters import CorrelationIdFilter, RedactFilter
from .formatters import ColorFormatter, JsonFormatter
from .handlers import (
    get_console_handler,
    get_error_console_handler,
    get_error_file_handler,
    get_file_handler,
)

# library loggers that get their own level and never reach the root handlers
LIBRARY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


@dataclass
class _QueueState:
    listener: QueueListener | None = None
    queue: queue.Queue | None = None
    dropped: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock)


_state = _QueueState()


class NonBlockingQueueHandler(QueueHandler):
    """
    QueueHandler for a bounded queue that drops records instead of blocking the
    producer. Every `warn_every` drops a note goes to stderr; the running total
    is available from get_queue_stats().
    """

    def __init__(self, log_queue: queue.Queue, warn_every: int = 0):
        super().__init__(log_queue)
        self.warn_every = warn_every

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(self.prepare(record))
        except queue.Full:
            with _state.lock:
                _state.dropped += 1
                dropped = _state.dropped
            if self.warn_every and dropped % self.warn_every == 0:
                sys.stderr.write(f"logging.queue.dropped dropped_logs={dropped}\n")


def get_queue_stats() -> dict:
    with _state.lock:
        return {"dropped_logs": _state.dropped, "queue_present": _state.queue is not None}


def _writes_files(settings: Settings) -> bool:
    return bool(not settings.LOG_TO_STDOUT and settings.LOG_DIR)


def make_dict_config(settings: Settings) -> dict:
    """
    dictConfig mapping for `settings`.

    Handlers: "console" always; "file" + "error_file" when writing to LOG_DIR,
    otherwise "error_console". SQLAlchemy loggers print bound parameters, so they
    stay at WARNING unless ENABLE_SQL_LOGGING is on.
    """
    if _writes_files(settings):
        handlers = {
            "console": get_console_handler(settings),
            "file": get_file_handler(settings),
            "error_file": get_error_file_handler(settings),
        }
    else:
        handlers = {
            "console": get_console_handler(settings),
            "error_console": get_error_console_handler(settings),
        }

    library_level = "DEBUG" if settings.ENABLE_SQL_LOGGING else "WARNING"
    loggers = {
        "": {"handlers": list(handlers), "level": settings.LOG_LEVEL, "propagate": True},
        "fkb": {"level": settings.LOG_LEVEL, "propagate": True},
    }
    for name in LIBRARY_LOGGERS:
        loggers[name] = {"level": library_level, "handlers": ["console"], "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "()": ColorFormatter if settings.LOG_FORMAT == "text" else logging.Formatter,
                "format": "%(asctime)s | %(levelname)s | %(name)s | %(correlation_id)s | %(message)s",
            },
            "json": {"()": JsonFormatter, "env": settings.ENV, "service": get_project_name()},
        },
        "filters": {
            "correlation_id": {"()": CorrelationIdFilter},
            "redact": {"()": RedactFilter},
        },
        "handlers": handlers,
        "loggers": loggers,
    }


def _detach(handlers: list[logging.Handler]) -> None:
    """Remove the given handler instances from the root and every named logger."""
    targets = [logging.getLogger()] + [
        lg for lg in logging.Logger.manager.loggerDict.values() if isinstance(lg, logging.Logger)
    ]
    for lg in targets:
        for handler in list(lg.handlers):
            if handler in handlers:
                lg.removeHandler(handler)


def _start_queue(settings: Settings) -> None:
    root = logging.getLogger()
    handlers = list(root.handlers)
    if not handlers:
        return
    _detach(handlers)

    max_size = settings.LOG_QUEUE_MAX_SIZE or 0
    log_queue: queue.Queue = queue.Queue(max_size) if max_size > 0 else queue.Queue()

    if max_size > 0 and not settings.LOG_QUEUE_BLOCKING:
        producer = NonBlockingQueueHandler(log_queue, warn_every=settings.LOG_QUEUE_DROP_WARNING_THRESHOLD)
    else:
        producer = QueueHandler(log_queue)
    # correlation id and redaction must run on the producer side, where the contextvar is set
    producer.addFilter(CorrelationIdFilter())
    producer.addFilter(RedactFilter())

    listener = QueueListener(log_queue, *handlers, respect_handler_level=True)
    listener.start()
    root.addHandler(producer)

    _state.listener, _state.queue = listener, log_queue


def setup_logging(settings: Settings) -> None:
    """
    Configure logging from settings: create LOG_DIR if needed, apply the
    dictConfig, and switch to queue-backed output when LOG_USE_QUEUE is set.
    """
    if _writes_files(settings):
        Path(settings.LOG_DIR).mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(make_dict_config(settings))
    # records logged straight on the root logger still get a correlation id
    logging.getLogger().addFilter(CorrelationIdFilter())

    if settings.LOG_USE_QUEUE:
        _start_queue(settings)


def stop_queue_logging() -> None:
    """Drain and stop the queue listener, if one is running."""
    listener = _state.listener
    if listener is None:
        return
    try:
        listener.stop()
    finally:
        _state.listener = None
        _state.queue = None
