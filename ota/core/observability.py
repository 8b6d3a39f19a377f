"""Logging setup for the client.

Modules log through `logging.getLogger(__name__)`; nothing is configured
until `setup_logging` runs once at CLI start-up. Operator-facing messages go
through the console abstraction instead, so the default level is WARNING.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

__all__ = ["JSONFormatter", "setup_logging", "LOG_EXTRA_FIELDS"]

# Extra attributes passed via `logger.info(..., extra={...})` that the JSON
# formatter surfaces.
LOG_EXTRA_FIELDS = ("kind", "entity_id", "status", "method", "path")

_handler: logging.Handler | None = None


class JSONFormatter(logging.Formatter):
    """Format records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log: dict[str, object] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in LOG_EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


def setup_logging(level: str = "WARNING", fmt: str = "text") -> None:
    """Attach a stderr handler to the `ota` logger.

    Calling it again replaces the previous handler rather than stacking one.
    """
    global _handler
    logger = logging.getLogger("ota")
    if _handler is not None:
        logger.removeHandler(_handler)

    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    _handler = handler
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
