# src/fkb/core/logging/handlers.py
"""
Handler factories for logging.dictConfig.

Each function returns a handler configuration dict; builder.py decides which
ones are active. Every handler carries the "correlation_id" and "redact" filters
declared in the builder's "filters" section.
"""

from fkb.config.settings import Settings
from pathlib import Path

_FILTERS = ["correlation_id", "redact"]


def _formatter_name(settings: Settings) -> str:
    # the builder's "formatters" mapping defines both names
    return "json" if settings.LOG_FORMAT == "json" else "standard"


def get_console_handler(settings: Settings) -> dict:
    """
    Console/stream handler (stderr by default) at settings.LOG_LEVEL.
    """
    return {
        "class": "logging.StreamHandler",
        "formatter": _formatter_name(settings),
        "level": settings.LOG_LEVEL,
        "filters": list(_FILTERS),
    }


def get_file_handler(settings: Settings) -> dict:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": _formatter_name(settings),
        "level": settings.LOG_LEVEL,
        "filename": str(Path(settings.LOG_DIR) / "fkb.log"),
        "maxBytes": settings.LOG_MAX_BYTES,
        "backupCount": settings.LOG_BACKUP_COUNT,
        "encoding": "utf-8",
        "filters": list(_FILTERS),
    }


# Error-specific rotating file, always JSON
def get_error_file_handler(settings: Settings) -> dict:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": "json",
        "level": "ERROR",
        "filename": str(Path(settings.LOG_DIR) / "errors.log"),
        "maxBytes": settings.LOG_MAX_BYTES,
        "backupCount": settings.LOG_BACKUP_COUNT,
        "encoding": "utf-8",
        "filters": list(_FILTERS),
    }


def get_error_console_handler(settings: Settings) -> dict:
    return {
        "class": "logging.StreamHandler",
        "formatter": "json",
        "level": "ERROR",
        "filters": list(_FILTERS),
    }


r"""
-------------------------------------------------
Which handlers are active?
-------------------------------------------------
| `LOG_TO_STDOUT` | `LOG_DIR` Set  | Active Handlers                       |
| --------------- | -------------- | ------------------------------------- |
| `true`          | doesn't matter | `console` + `error_console`           |
| `false`         | not set        | `console` + `error_console`           |
| `false`         | set            | `console` + `file` + `error_file`     |

| Handler         | Triggers On             | Output                  |
| --------------- | ----------------------- | ----------------------- |
| `console`       | All logs `>= LOG_LEVEL` | stderr                  |
| `file`          | All logs `>= LOG_LEVEL` | `<LOG_DIR>/fkb.log`     |
| `error_file`    | Only logs `>= ERROR`    | `<LOG_DIR>/errors.log`  |
| `error_console` | Only logs `>= ERROR`    | stderr (JSON)           |
"""
