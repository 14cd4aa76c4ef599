"""
JSON log lines for the API and the shared store.

Each line carries the request's correlation id and route, so one Clay callback
can be followed from the webhook handler through the lock file to the store
write. Whatever a call passes via extra= (company_name, collection, backend,
session_id...) lands on the line as top-level keys.
"""
import json
import logging
import re
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
_route: ContextVar[Optional[str]] = ContextVar("route", default=None)

# Caller-supplied ids are echoed back in a header, so only short tokens are kept
_CORRELATION_ID_RE = re.compile(r"[A-Za-z0-9._:-]{1,64}")

# Attributes every LogRecord carries; anything else arrived through extra=
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message", "asctime", "color_message",
}

NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx")


def bind_request_context(header_value: Optional[str], route: Optional[str] = None) -> str:
    """
    Start the log context for one request and return its correlation id.
    An incoming X-Correlation-ID is reused when it is a short token.
    """
    if header_value and _CORRELATION_ID_RE.fullmatch(header_value):
        cid = header_value
    else:
        cid = uuid.uuid4().hex
    _correlation_id.set(cid)
    _route.set(route)
    return cid


def current_correlation_id() -> Optional[str]:
    return _correlation_id.get()


class StructuredJsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, correlation_id, route, module, message, extras."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).strftime(
                "%Y-%m-%dT%H:%M:%S.%fZ"
            ),
            "level": record.levelname,
            "correlation_id": _correlation_id.get(),
            "route": _route.get(),
            "module": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key.startswith("_") or value is None:
                continue
            entry.setdefault(key, value)

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def configure_logging(log_level: str = "INFO") -> None:
    """Install the JSON handler on the root logger. Call once from the app factory."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredJsonFormatter())
    root.handlers[:] = [handler]

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def init_error_reporting(dsn: str, environment: str) -> bool:
    """
    Send unhandled errors to Sentry when a DSN is configured.
    sentry-sdk is an optional extra; a missing or failing SDK only logs.
    """
    if not dsn:
        return False
    try:
        import sentry_sdk
        sentry_sdk.init(dsn=dsn, traces_sample_rate=0.1, environment=environment)
    except Exception as e:
        logging.getLogger(__name__).warning("Sentry initialization failed: %s", str(e))
        return False
    logging.getLogger(__name__).info("Sentry initialized")
    return True
