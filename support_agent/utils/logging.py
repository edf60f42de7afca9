"""Logging setup with structured JSON output.

Every module logs through `get_logger(__name__)` and passes structured fields
as `extra={"context": {...}}`, which lets one graph run be followed node by
node (thread id, intent, decode tier) in any log tool.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from support_agent.config import settings

SERVICE_NAME = "support-agent"


class JsonFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if isinstance(context, dict):
            payload["context"] = context

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=True, default=str)


def configure_logging(debug: bool | None = None) -> None:
    """Install a single JSON stream handler on the root logger.

    Parameters
    ----------
    debug:
        Optional explicit override. If `None`, use `settings.debug`.

    Calling this more than once replaces the previous handler instead of
    stacking duplicates.
    """

    effective_debug = settings.debug if debug is None else debug
    level = logging.DEBUG if effective_debug else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(JsonFormatter())
    root_logger.addHandler(stream_handler)

    # Provider SDKs are chatty at DEBUG.
    for noisy in ("httpx", "httpcore", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a module-specific logger."""

    return logging.getLogger(name)
