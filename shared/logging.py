"""
Structured logging for the site capture engine.

Everything logs through structlog into the standard logging handlers set up
here. Events are JSON lines by default; LOG_FORMAT=console switches to
structlog's coloured dev renderer for interactive runs.

Crawl context (worker, route, viewport, domain) lives in contextvars. Each
asyncio worker task starts from a copy of the parent context, so a binding
made inside one worker is never seen by its siblings.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Literal, Mapping, Optional, Union

import structlog

LogFormat = Literal["json", "console"]

# Libraries that log chatty DEBUG/INFO lines of their own
_QUIET_LOGGERS = ("asyncio", "PIL")

_PLAIN = logging.Formatter("%(message)s")


def _renderer(log_format: LogFormat) -> structlog.types.Processor:
    if log_format == "console":
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    return structlog.processors.JSONRenderer()


def _processors(log_format: LogFormat) -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        # Console output keeps the "event" key the dev renderer expects
        *([structlog.processors.EventRenamer("message")] if log_format == "json" else []),
        _renderer(log_format),
    ]


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def _handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(_PLAIN)
    return handler


def configure_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    log_stdout: bool = True,
    log_format: LogFormat = "json",
) -> None:
    """
    Route structlog events to stdout and/or a log file.

    Call once at process start; calling again replaces the root handlers.
    When neither stdout nor a file is requested, stdout is used anyway so
    events are never dropped.
    """
    numeric_level = _resolve_level(level)

    handlers: list[logging.Handler] = []
    if log_stdout:
        handlers.append(_handler(logging.StreamHandler(sys.stdout), numeric_level))
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(_handler(logging.FileHandler(log_file, encoding="utf-8"), numeric_level))
    if not handlers:
        handlers.append(_handler(logging.StreamHandler(sys.stdout), numeric_level))

    root = logging.getLogger()
    root.setLevel(numeric_level)
    root.handlers[:] = handlers
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    structlog.configure(
        processors=_processors(log_format),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """
    Module logger; configures JSON-to-stdout defaults on first use if needed.

        logger = get_logger(__name__)
        logger.info("route_capture_started", url=url)
    """
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(name) if name else structlog.get_logger()


def bind_request_context(
    *,
    worker: Optional[int] = None,
    route: Optional[str] = None,
    viewport: Optional[str] = None,
    domain: Optional[str] = None,
    **extra: Any,
) -> Mapping[str, Any]:
    """
    Bind crawl context for every subsequent event in the current task.

    None values are skipped so a partial bind never erases an existing field.
    Returns what was bound.
    """
    fields = {
        "worker": worker,
        "route": route,
        "viewport": viewport,
        "domain": domain,
        **extra,
    }
    bound = {key: value for key, value in fields.items() if value is not None}
    structlog.contextvars.bind_contextvars(**bound)
    return bound


def unbind_request_context(*keys: str) -> None:
    """Drop context fields once the scope they describe has ended."""
    structlog.contextvars.unbind_contextvars(*keys)
