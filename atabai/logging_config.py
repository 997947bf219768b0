"""
Structured logging setup.

Configures structlog on top of the standard library logger factory. Each
report generation binds a ``report_id`` context variable so that every event
emitted while building one statement can be correlated.
"""
import logging
import sys
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional

import structlog


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configure structlog and the root stdlib logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ...).
        json_logs: Render events as JSON instead of the console format.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@contextmanager
def report_context(statement: str, report_id: Optional[str] = None) -> Iterator[str]:
    """
    Bind a report id and statement type to all log events in the block.

    Usage:
        with report_context("cash_flow") as report_id:
            ...
    """
    rid = report_id or str(uuid.uuid4())
    with structlog.contextvars.bound_contextvars(report_id=rid, statement=statement):
        yield rid
