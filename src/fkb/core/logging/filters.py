# src/fkb/core/logging/filters.py
"""
Logging filters

Correlation ID filter and helpers for logging.

A correlation id ties together every log line emitted by one unit of work: one
`RepositoryContext.run_in_transaction()` call, or whatever the caller wraps with
`set_correlation_id()` (a request, a job, a CLI command).

How it is intended to be used
------------------------------
1. The dictConfig built by builder.py installs `CorrelationIdFilter` on every
   handler, so formatters can reference `%(correlation_id)s` safely.

2. Whoever starts a unit of work sets the id:

     token = set_correlation_id("job-42")
     try:
         ...
     finally:
         reset_correlation_id(token)

   `run_in_transaction()` does this itself when no id is set yet, so repository
   logs are always correlated per transaction.

3. The id lives in a `contextvars.ContextVar`, so it follows the logical flow
   across `await` and into tasks created from it, never across unrelated tasks.

Records with no id get the sentinel "-".
"""

import logging
from logging import LogRecord
import contextvars

# Default is None to indicate "no correlation id set".
_correlation_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


def set_correlation_id(correlation_id: str | None):
    """
    Set the correlation id in the current context and return the token to allow reset.

    Returns:
        token: contextvar.Token which can be passed to reset_correlation_id(token)
    """
    return _correlation_id_ctx.set(correlation_id)


def reset_correlation_id(token):
    """
    Reset the contextvar to the previously saved token returned by set_correlation_id().
    """
    _correlation_id_ctx.reset(token)


def get_correlation_id() -> str | None:
    """
    Retrieve the current context's correlation id, or None if none has been set.
    """
    return _correlation_id_ctx.get()


class CorrelationIdFilter(logging.Filter):
    """
    Logging filter that guarantees every LogRecord has a `correlation_id` attribute.

    Precedence:
      - record.correlation_id, if the call site passed it via extra
      - the contextvar value
      - the sentinel "-"

    Always returns True; it only annotates.
    """

    def filter(self, record: LogRecord) -> bool:
        record.correlation_id = (
            getattr(record, "correlation_id", None) or get_correlation_id() or "-"
        )
        return True


# Redact sensitive information
class RedactFilter(logging.Filter):
    SENSITIVE = {
        "password", "password_hash", "secret", "token", "access_token",
        "refresh_token", "ssn", "authorization",
    }

    def filter(self, record: LogRecord) -> bool:
        # mask attributes on record that match SENSITIVE (extra= keys land here)
        for key in list(record.__dict__.keys()):
            if key.lower() in self.SENSITIVE:
                record.__dict__[key] = "***REDACTED***"
        return True


r"""
-------------------------------------------------
Filters vs Formatters vs Handlers
-------------------------------------------------
| Component     | Responsibility                                        |
| ------------- | ----------------------------------------------------- |
| **Filter**    | Add/remove/modify log records before formatting       |
| **Formatter** | Define how the final string is built from the record  |
| **Handler**   | Sends the formatted log (e.g., to console, file, etc) |

-------------------------------------------------
Where does a correlation id come from?
-------------------------------------------------
| Where you're logging                          | Will it have `correlation_id`? | Why?                                                      |
| --------------------------------------------- | ------------------------------ | --------------------------------------------------------- |
| Repository call inside run_in_transaction()   | Yes                            | The context sets a fresh id when none is set.             |
| Repository call on a session you manage       | Only if you set one            | Nothing sets it for you.                                  |
| Startup / schema creation                     | No (shows "-")                 | Not part of a unit of work.                               |

A caller that already has an id (e.g. an upstream request id) sets it before
calling `run_in_transaction()`; the context keeps it instead of generating one.
"""
