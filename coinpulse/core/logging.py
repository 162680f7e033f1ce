"""Structured JSON logging; stdout stays free for the poller's data lines."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

_RESERVED = set(logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys())


class JsonFormatter(logging.Formatter):
    """Serialize log records as compact JSON lines tagged with the emitting service."""

    def __init__(self, service: str | None = None) -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.service:
            payload["service"] = self.service

        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED and not key.startswith("_")
        }
        if extras:
            payload["context"] = extras

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=True, separators=(",", ":"), default=str)


def configure_logging(level: str = "INFO", service: str | None = None, stream: TextIO | None = None) -> None:
    """Configure process-wide JSON logging once; later calls are no-ops."""

    root = logging.getLogger()
    if getattr(root, "_coinpulse_configured", False):
        return

    root.handlers.clear()
    handler = logging.StreamHandler(stream=stream or sys.stderr)
    handler.setFormatter(JsonFormatter(service=service))

    root.addHandler(handler)
    root.setLevel(level.upper())
    setattr(root, "_coinpulse_configured", True)
