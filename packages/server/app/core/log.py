"""structlog configuration for the API process and its background tasks."""

from __future__ import annotations

import structlog
from structlog.typing import EventDict, WrappedLogger

SERVICE = "notifyhub"


def _add_service(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", SERVICE)
    return event_dict


def configure_logging(level: str = "info", fmt: str = "json") -> None:
    """Route every ``structlog.get_logger()`` call through one pipeline.

    ``fmt`` is ``json`` for log shippers, anything else renders for a console.
    Request-scoped values bound by the request middleware are merged in.
    """
    processors = [
        structlog.contextvars.merge_contextvars,
        _add_service,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if fmt == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
