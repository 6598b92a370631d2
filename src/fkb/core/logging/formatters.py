# src/fkb/core/logging/formatters.py
"""
Custom logging formatters.

  - JsonFormatter: one JSON object per record, for log collectors. Carries the
    observability fields (service, env, version, correlation_id) and every
    `extra={...}` key the call site attached (model, operation, duration_ms, ...).

  - ColorFormatter: compact ANSI-colored lines for a developer console.

builder.py registers both and picks one per handler from settings.LOG_FORMAT.

Formatters print whatever reaches them; sensitive keys are scrubbed earlier by
RedactFilter.
"""

import json
import logging
from typing import Any
from logging import LogRecord
from fkb.utils.project_metadata import DEFAULT_PROJECT_NAME, get_project_version

PROJECT_VERSION = get_project_version()

# attributes every LogRecord has; anything else on the record came from extra=
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """
    Structured JSON formatter.

    Construction:
      - env: environment name (e.g., "development" | "production"); optional.
      - service: logical service name to include in logs.
      - datefmt: optional date format passed to logging.Formatter (used by formatTime).

    Non-JSON-serializable extras (UUIDs, datetimes, Decimals) are emitted as str().
    """

    def __init__(self, *, env: str | None = None, service: str = DEFAULT_PROJECT_NAME, datefmt: str | None = None):
        super().__init__(datefmt=datefmt)
        self.env = env
        self.service = service

    def format(self, record: LogRecord) -> str:
        log_record: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "pathname": record.pathname,
            "lineno": record.lineno,
            "correlation_id": getattr(record, "correlation_id", "-"),
            "service": self.service,
            "env": self.env,
            "version": PROJECT_VERSION,
        }

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_record["stack_info"] = self.formatStack(record.stack_info)

        for k, v in record.__dict__.items():
            if k in log_record or k in _RESERVED_ATTRS or k.startswith("_"):
                continue
            try:
                json.dumps(v)
                log_record[k] = v
            except (TypeError, ValueError):
                log_record[k] = str(v)

        return json.dumps(log_record, ensure_ascii=False, default=str)


class ColorFormatter(logging.Formatter):
    """
    Development-friendly colored formatter:

        TIMESTAMP | LEVEL | LOGGER_NAME | CORRELATION_ID | MESSAGE [k=v ...]

    Only the level name is colored. Extras are appended as k=v pairs so the
    structured events stay readable in a terminal.
    """

    COLOR_CODES = {
        "DEBUG": "\033[1;36;47m",   # bold cyan on white
        "INFO": "\033[32m",         # green
        "WARNING": "\033[33m",      # yellow
        "ERROR": "\033[31m",        # red
        "CRITICAL": "\033[1;41m",   # bold on red background
        "RESET": "\033[0m",
    }

    def __init__(self, fmt: str | None = None, datefmt: str | None = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)

    def format(self, record: LogRecord) -> str:
        color = self.COLOR_CODES.get(record.levelname, "")
        # reset right after the level so the color does not spill into the line
        reset = self.COLOR_CODES["RESET"]
        timestamp = self.formatTime(record, self.datefmt)

        base = (
            f"{timestamp} | {color}{record.levelname:<10}{reset} | "
            f"{record.name:<30} | "
            f"{getattr(record, 'correlation_id', '-'):<12} | "
            f"{record.getMessage()}"
        )

        extras = [
            f"{k}={v}"
            for k, v in record.__dict__.items()
            if k not in _RESERVED_ATTRS and k != "correlation_id" and not k.startswith("_")
        ]
        if extras:
            base = base + " " + " ".join(extras)

        if record.exc_info:
            base = base + "\n" + self.formatException(record.exc_info)

        return base
