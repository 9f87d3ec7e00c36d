"""
structlog setup for the dispatch engine.

Every event carries the ``trace_id`` / ``envelope_id`` bound for the
envelope being processed, so log lines from concurrent dispatch workers
can be told apart. Rendering is JSON when ``LOG_JSON`` is set and a
colored console otherwise.

Recipients may be logged; message bodies are only ever logged by length.
"""

import logging
import os
import sys
import time
from contextlib import contextmanager
from typing import Any, Iterator

import structlog
from structlog.types import Processor

from .config import get_settings


def _processors(json_output: bool) -> list[Processor]:
    chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        chain += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=True))
    return chain


def configure_logging(
    json_output: bool | None = None,
    log_level: str | None = None,
) -> None:
    """
    Point structlog (and stdlib logging, used by httpx) at stdout.

    Arguments left as None are taken from ``LOG_JSON`` / ``LOG_LEVEL``.
    """
    if json_output is None or log_level is None:
        settings = get_settings()
        json_output = settings.LOG_JSON if json_output is None else json_output
        log_level = log_level or settings.LOG_LEVEL

    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(format='%(message)s', stream=sys.stdout, level=level)
    structlog.configure(
        processors=_processors(json_output),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def logging_context(
    trace_id: str | None = None,
    envelope_id: str | None = None,
) -> Iterator[None]:
    """
    Bind correlation ids for every event logged inside the block.

    Ids passed as None leave any outer binding in place. Bindings live in
    context variables, so each worker thread binds its own envelope.

    Usage:
        with logging_context(trace_id=message_id, envelope_id=raw.get('id')):
            dispatcher.dispatch(envelope)
    """
    bindings = {
        key: value
        for key, value in (('trace_id', trace_id), ('envelope_id', envelope_id))
        if value is not None
    }
    with structlog.contextvars.bound_contextvars(**bindings):
        yield


class DispatchTimer:
    """Wall-clock milliseconds spent in each processing stage of one envelope."""

    def __init__(self):
        self.stages: dict[str, float] = {}
        self._started = time.perf_counter()

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        began = time.perf_counter()
        try:
            yield
        finally:
            self.stages[name] = (time.perf_counter() - began) * 1000

    @property
    def total_ms(self) -> float:
        return (time.perf_counter() - self._started) * 1000

    def summary(self) -> dict[str, Any]:
        """Rounded timings, shaped for a log event."""
        return {
            'total_ms': round(self.total_ms, 2),
            'stages': {name: round(ms, 2) for name, ms in self.stages.items()},
        }


# Console output until a host calls configure_logging() with its settings
configure_logging(json_output=False, log_level=os.getenv('LOG_LEVEL', 'INFO'))
