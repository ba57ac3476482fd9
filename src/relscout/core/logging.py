"""structlog setup shared by every relscout module.

Modules call ``get_logger(__name__)`` and emit snake_case events with
key/value fields. ``log_context`` binds identifiers such as project_id for a
scope; the binding is a ContextVar, so worker threads start without it.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from contextvars import ContextVar, Token
from typing import TYPE_CHECKING, Any, cast

import structlog
from structlog.typing import FilteringBoundLogger

if TYPE_CHECKING:
    from relscout.core.config import Settings

_run_context: ContextVar[dict[str, Any] | None] = ContextVar("run_context", default=None)


def _merge_run_context(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    # Explicit event fields win over scoped ones
    for key, value in (_run_context.get() or {}).items():
        event_dict.setdefault(key, value)
    return event_dict


def configure_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Install processors and renderer.

    ``log_format`` is "json" for deployed runs and anything else for the
    human-readable console renderer. Library loggers (SQLAlchemy, httpx,
    anthropic) go through stdlib logging at the same level.
    """
    level = getattr(logging, log_level.upper())
    processors: list[structlog.types.Processor] = [
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.contextvars.merge_contextvars,
        _merge_run_context,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if log_format == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(exception_formatter=structlog.dev.plain_traceback)
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(
        format="%(message)s",
        level=level,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def configure_from_settings(settings: Settings | None = None) -> None:
    """Apply ``log_level`` and ``log_format`` from Settings (cached ones by default)."""
    if settings is None:
        from relscout.core.config import get_settings

        settings = get_settings()
    configure_logging(log_level=settings.log_level, log_format=settings.log_format)


def get_logger(name: str | None = None) -> FilteringBoundLogger:
    return cast(FilteringBoundLogger, structlog.get_logger(name))


class LogContext:
    """Scoped log fields. Nested scopes merge, inner values shadow outer ones."""

    def __init__(self, **context: Any):
        self.context = context
        self._token: Token[dict[str, Any] | None] | None = None

    def __enter__(self) -> LogContext:
        merged = {**(_run_context.get() or {}), **self.context}
        self._token = _run_context.set(merged)
        return self

    def __exit__(self, *args: Any) -> None:
        if self._token is not None:
            _run_context.reset(self._token)
            self._token = None


def log_context(**context: Any) -> LogContext:
    """Bind fields to every event logged inside the ``with`` block."""
    return LogContext(**context)


configure_logging()
