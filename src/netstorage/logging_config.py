"""Logging setup for the netstorage client and CLI."""

import json
import logging
import sys
from datetime import datetime, timezone

# Extras attached by the connection's request and response hooks.
REQUEST_FIELDS = ("method", "path", "action", "status", "duration_ms")

# Transport libraries that log every request on their own at INFO.
_TRANSPORT_LOGGERS = ("httpx", "httpcore")


class JSONFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, request fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in REQUEST_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Replace the root handlers with one stderr handler.

    stdout is left to the CLI's JSON output. The httpx and httpcore loggers
    are held at WARNING unless ``level`` is DEBUG, since the connection
    already logs every ACS request with its action.

    Args:
        level: Log level name; unknown names fall back to INFO.
        fmt: ``"json"`` for :class:`JSONFormatter`, anything else for text.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(numeric_level)
    for existing in root.handlers[:]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)

    transport_level = logging.NOTSET if numeric_level <= logging.DEBUG else logging.WARNING
    for name in _TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)
