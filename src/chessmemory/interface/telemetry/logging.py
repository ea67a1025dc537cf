from __future__ import annotations

from typing import Any, Callable, MutableMapping
import logging
import sys
import structlog

SERVICE_NAME = "chessmemory"

EventDict = MutableMapping[str, Any]


def stamp_service(service: str) -> Callable[[Any, str, EventDict], EventDict]:
    """Return a processor that tags every event with the emitting service."""

    def processor(_logger: Any, _method: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service)
        return event_dict

    return processor


def setup_logging(level: int | str = "INFO", *, service: str = SERVICE_NAME) -> None:
    """Configure structlog for JSON lines carrying service, logger name and trace ids."""
    logging.basicConfig(
        format="%(message)s",
        level=level,
        stream=sys.stdout,
    )

    if isinstance(level, str):
        min_level = logging.getLevelName(level.upper())
        if not isinstance(min_level, int):
            min_level = logging.INFO
    else:
        min_level = level

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            stamp_service(service),
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None):
    """Return a logger named under the service namespace."""
    if not name:
        name = SERVICE_NAME
    elif not name.startswith(SERVICE_NAME):
        name = f"{SERVICE_NAME}.{name}"
    return structlog.get_logger(name)


def bind_trace(logger: Any, trace_id: str | None = None, **kwargs) -> Any:
    """Attach the request trace id and any session fields to a logger."""
    context = {"trace_id": trace_id} if trace_id else {}
    context.update(kwargs)
    return logger.bind(**context)


__all__ = ["SERVICE_NAME", "bind_trace", "get_logger", "setup_logging", "stamp_service"]
