"""
Structured JSON Logging
=======================
Every portal Lambda writes one JSON object per log line so CloudWatch Logs
Insights can filter on fields directly:

    fields @timestamp, level, message, industry_id
    | filter service = "industry_service.handler" and level = "WARNING"
    | sort @timestamp desc

Usage:
  from portal_shared.logger import get_logger
  logger = get_logger(__name__)
  logger.info("Industry created", extra={"industry_id": "abc", "version": 0})

Output:
  {"timestamp":"2024-01-01T00:00:00Z","level":"INFO","service":"industry_service.handler",
   "message":"Industry created","industry_id":"abc","version":0}

`request_context()` attaches the API Gateway request id and caller to every
record emitted while a request is being handled.
"""
from __future__ import annotations

import json
import logging
import os
import time
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator

# LogRecord attributes that are plumbing, not payload
_RESERVED = {
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
    "created", "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "message", "taskName",
}

_configured = False
_request_fields: ContextVar[dict[str, Any]] = ContextVar("request_fields", default={})


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created)),
            "level": record.levelname,
            "service": record.name,
            "message": record.getMessage(),
            **_request_fields.get(),
        }
        payload.update(
            {k: v for k, v in record.__dict__.items() if k not in _RESERVED}
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def get_logger(name: str) -> logging.Logger:
    """Return a logger whose root emits JSON lines; configures the root once."""
    global _configured
    if not _configured:
        root = logging.getLogger()
        formatter = _JsonFormatter()
        if root.handlers:
            # Lambda's runtime pre-installs a handler; reuse it
            for existing in root.handlers:
                existing.setFormatter(formatter)
        else:
            stream = logging.StreamHandler()
            stream.setFormatter(formatter)
            root.addHandler(stream)
        level = os.environ.get("LOG_LEVEL", "INFO").upper()
        root.setLevel(getattr(logging, level, logging.INFO))
        _configured = True
    return logging.getLogger(name)


@contextmanager
def request_context(**fields: Any) -> Iterator[None]:
    """Add `fields` to every record logged inside the block."""
    current = {**_request_fields.get(), **{k: v for k, v in fields.items() if v is not None}}
    token = _request_fields.set(current)
    try:
        yield
    finally:
        _request_fields.reset(token)
