"""
Structured logging configuration for the additive scraping engine.
Uses structlog for structured JSON logs in production and more readable logs in development.
"""

import contextvars
import logging
import sys
import time
import traceback
from typing import Any, Dict, Optional

import structlog

import config

# Configure standard logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(message)s",
    stream=sys.stdout,
)

# Determine if we should use JSON format (in production) or pretty console output (in development)
USE_JSON_LOGS = config.LOG_FORMAT.lower() in ("json", "structured") or config.ENVIRONMENT == "production"

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        # Use JSON in production, pretty console output in development
        structlog.processors.JSONRenderer() if USE_JSON_LOGS else structlog.dev.ConsoleRenderer(colors=True),
    ],
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

# Session ID context var, bound into every structlog event of a run
session_id_contextvar = contextvars.ContextVar("session_id", default=None)

def get_session_id() -> Optional[str]:
    """Get the current session ID from context."""
    return session_id_contextvar.get()

def bind_session(session_id: str) -> None:
    """Bind the session ID to the logging context."""
    session_id_contextvar.set(session_id)
    structlog.contextvars.bind_contextvars(session_id=session_id)

def clear_session() -> None:
    """Clear the session ID from the logging context."""
    session_id_contextvar.set(None)
    structlog.contextvars.unbind_contextvars("session_id")

# Get a configured logger
def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """Get a pre-configured structlog logger."""
    return structlog.get_logger(name)


class TimerHandle:
    """Running timer returned by Tracer.timing()."""

    def __init__(self, tracer: "Tracer", name: str, fields: Dict[str, Any]):
        self._tracer = tracer
        self._name = name
        self._fields = fields
        self._start = time.perf_counter()
        self.elapsed_ms: Optional[float] = None

    def stop(self) -> float:
        """
        Stop the timer and emit a timing event.

        Returns:
            Elapsed time in milliseconds
        """
        if self.elapsed_ms is None:
            self.elapsed_ms = (time.perf_counter() - self._start) * 1000
            self._tracer.log.debug(
                "timing",
                timer=self._name,
                duration_ms=round(self.elapsed_ms, 2),
                **self._fields,
            )
        return self.elapsed_ms


class Tracer:
    """
    Structured tracer used by the session engine, collectors and pipeline.

    Wraps a structlog logger and adds breadcrumbs (low level trail events),
    timers and error capture. The most recent breadcrumbs and captured errors
    are also kept in memory so a failing run can be inspected after the fact.
    """

    def __init__(self, name: str = "additive", max_breadcrumbs: int = 200, max_errors: int = 100,
                 **context: Any):
        self.log = get_logger(name).bind(**context)
        self.max_breadcrumbs = max_breadcrumbs
        self.max_errors = max_errors
        self.breadcrumbs = []
        self.errors = []

    def bind(self, **context: Any) -> "Tracer":
        """Return a tracer with extra context bound to every event."""
        child = Tracer.__new__(Tracer)
        child.log = self.log.bind(**context)
        child.max_breadcrumbs = self.max_breadcrumbs
        child.max_errors = self.max_errors
        child.breadcrumbs = self.breadcrumbs
        child.errors = self.errors
        return child

    def info(self, event: str, **fields: Any) -> None:
        self.log.info(event, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self.log.warning(event, **fields)

    def breadcrumb(self, category: str, message: str, **data: Any) -> None:
        """Record a breadcrumb and emit it at debug level."""
        self.breadcrumbs.append({
            "category": category,
            "message": message,
            "data": data,
            "timestamp": time.time(),
        })
        if len(self.breadcrumbs) > self.max_breadcrumbs:
            del self.breadcrumbs[0]
        self.log.debug(message, category=category, **data)

    def timing(self, name: str, **fields: Any) -> TimerHandle:
        return TimerHandle(self, name, fields)

    def capture_error(self, error: BaseException, **context: Any) -> None:
        """Log an error with its traceback and keep it for inspection."""
        self.errors.append({
            "type": type(error).__name__,
            "message": str(error),
            "context": context,
            "timestamp": time.time(),
        })
        if len(self.errors) > self.max_errors:
            del self.errors[0]
        self.log.error(
            "error_captured",
            error_type=type(error).__name__,
            error=str(error),
            traceback="".join(traceback.format_exception(type(error), error, error.__traceback__)),
            **context,
        )
