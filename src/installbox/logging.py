"""
Structured logging for InstallBox using structlog.

Records go to stderr at the requested level. A log file, when given,
receives every record down to DEBUG as one JSON object per line.
"""

import logging
import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional

import structlog

SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def _handler(handler: logging.Handler, renderer, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=SHARED_PROCESSORS)
    )
    return handler


def configure_logging(
    level: str = "WARNING",
    json_output: bool = False,
    log_file: Optional[Path] = None,
) -> None:
    """
    Configure structured logging for InstallBox.

    Args:
        level: stderr log level (DEBUG, INFO, WARNING, ERROR)
        json_output: If True, render stderr records as JSON
        log_file: Optional file receiving all records as JSON lines
    """
    console_level = getattr(logging, level.upper())

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )

    structlog.configure(
        processors=SHARED_PROCESSORS + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers = [_handler(logging.StreamHandler(sys.stderr), renderer, console_level)]
    if log_file:
        handlers.append(
            _handler(logging.FileHandler(log_file), structlog.processors.JSONRenderer(), logging.DEBUG)
        )

    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if log_file else console_level,
        handlers=handlers,
        force=True,
    )


def get_logger(name: str = "installbox") -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


@contextmanager
def log_operation(logger: structlog.stdlib.BoundLogger, operation: str, **kwargs):
    """
    Log ``<operation>.started`` and then ``.completed`` or ``.failed``.

    Usage:
        with log_operation(log, "create_vm", vm_name="my-vm", vbox_operation="createvm"):
            client.run("createvm", [...])
    """
    log = logger.bind(operation=operation, **kwargs)
    start_time = datetime.now()
    log.info(f"{operation}.started")

    try:
        yield log
    except Exception as e:
        log.error(
            f"{operation}.failed",
            error=str(e),
            error_type=type(e).__name__,
            duration_ms=_elapsed_ms(start_time),
        )
        raise
    log.info(f"{operation}.completed", duration_ms=_elapsed_ms(start_time))


def _elapsed_ms(start_time: datetime) -> float:
    return round((datetime.now() - start_time).total_seconds() * 1000, 2)
