"""Structured logging and metric hooks for store adapters.

Adapters log through ``get_logger`` and report every backend call as a
``kvell.<backend>.<operation>`` timer. Calls that fail unexpectedly also bump
``kvell.<backend>.errors``. Wrap a unit of work in ``RequestContext`` to tag
both logs and metrics with a request id.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Callable

request_id_var: ContextVar[str | None] = ContextVar("kvell_request_id", default=None)


class StructuredFormatter(logging.Formatter):
    """Renders each record as a single JSON object.

    The record's ``context`` dict and the active request id are merged under
    ``"context"``. Records logged with an error carry its type and message
    under ``"error"``, plus the wrapped SDK exception when there is one.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = dict(getattr(record, "context", None) or {})
        request_id = request_id_var.get()
        if request_id:
            context.setdefault("request_id", request_id)
        if context:
            payload["context"] = context

        exc = record.exc_info[1] if record.exc_info else None
        if exc is not None:
            payload["error"] = {"type": type(exc).__name__, "message": str(exc)}
            cause = getattr(exc, "cause", None)
            if cause is not None:
                payload["error"]["cause"] = type(cause).__name__

        return json.dumps(payload, default=str)


class StructuredLogger(logging.LoggerAdapter):
    """Logger accepting ``context=`` and ``error=`` keywords.

    Example:
        logger = get_logger(__name__)
        logger.info("Creating DynamoDB table", context={"table": "sessions"})
        logger.error("Redis command failed", context={"command": "GET"}, error=e)
    """

    def __init__(self, name: str) -> None:
        super().__init__(logging.getLogger(name), {})

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        extra = dict(kwargs.pop("extra", None) or {})
        context = kwargs.pop("context", None)
        if context:
            extra["context"] = context
        error = kwargs.pop("error", None)
        if error is not None:
            kwargs["exc_info"] = (type(error), error, error.__traceback__)
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: str) -> StructuredLogger:
    """Return the structured logger for a module (pass ``__name__``)."""
    return StructuredLogger(name)


def configure_logging(level: str | int = "INFO", format: str = "json") -> None:
    """Send ``kvell`` logs to stdout, as JSON or as plain text.

    Replaces any handlers previously installed on the ``kvell`` logger, so
    calling it twice does not duplicate output.
    """
    package_logger = logging.getLogger("kvell")
    package_logger.setLevel(level.upper() if isinstance(level, str) else level)
    package_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if format == "json":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    package_logger.addHandler(handler)


class RequestContext:
    """Binds a request id for the duration of a ``with`` block.

    Example:
        async with RequestContext("req-123"):
            await store.set("key", value)
    """

    def __init__(self, request_id: str | None = None) -> None:
        self.request_id = request_id or uuid.uuid4().hex
        self._token: Any = None

    def __enter__(self) -> "RequestContext":
        self._token = request_id_var.set(self.request_id)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        request_id_var.reset(self._token)

    async def __aenter__(self) -> "RequestContext":
        return self.__enter__()

    async def __aexit__(self, *exc_info: Any) -> None:
        self.__exit__(*exc_info)


class Timer:
    """Stopwatch; ``duration_ms`` is set when the block exits, even on error."""

    def __init__(self) -> None:
        self._started = 0.0
        self.duration_ms = 0.0

    def __enter__(self) -> "Timer":
        self._started = time.perf_counter()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.duration_ms = (time.perf_counter() - self._started) * 1000


MetricCallback = Callable[[str, float, dict[str, Any]], None]

_metric_callbacks: list[MetricCallback] = []
_logger = logging.getLogger(__name__)


def register_metric_callback(callback: MetricCallback) -> None:
    """Subscribe ``callback(name, value, labels)`` to every emitted metric."""
    _metric_callbacks.append(callback)


def unregister_metric_callback(callback: MetricCallback) -> None:
    if callback in _metric_callbacks:
        _metric_callbacks.remove(callback)


def emit_metric(name: str, value: float, labels: dict[str, Any] | None = None) -> None:
    """Deliver a metric to every subscriber.

    Each subscriber gets its own copy of the labels. A subscriber that raises
    is logged at DEBUG and skipped.
    """
    merged = dict(labels or {})
    request_id = request_id_var.get()
    if request_id:
        merged.setdefault("request_id", request_id)

    for callback in list(_metric_callbacks):
        try:
            callback(name, value, dict(merged))
        except Exception:
            _logger.debug("Metric callback %r failed for %s", callback, name, exc_info=True)


def emit_counter(name: str, labels: dict[str, Any] | None = None) -> None:
    emit_metric(name, 1.0, labels)


def emit_timer(name: str, duration_ms: float, labels: dict[str, Any] | None = None) -> None:
    emit_metric(name, duration_ms, labels)
