"""
Structured logging for iamboot.

Records are single-line JSON on stderr, so manifests printed on stdout stay
clean. Each render binds its own context (component, operation and a
request id) with :func:`bind`; individual records add the ``resource`` and
``kind`` they concern.

Example::

    log = bind("template", "render")
    log.debug("Added Role 'AWSIAMRoleNodes'", resource="AWSIAMRoleNodes", kind="Role")
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from typing import Any, MutableMapping

LOGGER_NAME = "iamboot"

# Record attributes copied into the JSON payload when present
CONTEXT_FIELDS = ("request_id", "component", "operation", "resource", "kind")


class StructuredFormatter(logging.Formatter):
    """Emit log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = str(record.exc_info[1])
        return json.dumps(log_entry)


class StderrHandler(logging.StreamHandler):
    """Stream handler that writes to the current ``sys.stderr``.

    The stream is looked up on every emit, so redirecting ``sys.stderr``
    after import still takes effect.
    """

    def __init__(self, level: int = logging.NOTSET) -> None:
        logging.Handler.__init__(self, level)

    @property
    def stream(self):  # type: ignore[override]
        return sys.stderr


class RenderContext(logging.LoggerAdapter):
    """Logger adapter carrying the context of one operation.

    ``resource`` and ``kind`` may be passed as keyword arguments to any
    logging call and are merged with the bound context.
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(self.extra or {})
        for key in ("resource", "kind"):
            if key in kwargs:
                extra[key] = kwargs.pop(key)
        extra.update(kwargs.pop("extra", None) or {})
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Return the named logger, installing the JSON stderr handler once."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = StderrHandler()
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.setLevel(logging.WARNING)
    return logger


def bind(
    component: str,
    operation: str,
    request_id: str | None = None,
    *,
    name: str = LOGGER_NAME,
) -> RenderContext:
    """Bind a component and operation to a fresh logging context.

    Args:
        component: Emitting component (e.g. 'template', 'cli').
        operation: Operation name (e.g. 'render').
        request_id: Correlation ID; a short random one is generated if omitted.
        name: Logger to emit through.
    """
    return RenderContext(get_logger(name), {
        "component": component,
        "operation": operation,
        "request_id": request_id or uuid.uuid4().hex[:12],
    })


def set_level(level: int, name: str = LOGGER_NAME) -> None:
    get_logger(name).setLevel(level)
