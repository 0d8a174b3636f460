"""
Structured logging for the DealsList import pipeline.

Every event carries the import run and the Gmail message being worked on
when they are known, so one run can be followed through polling, model
calls and saves:

    with logging_context(run_id=run_id):
        with logging_context(message_id=email.id):
            logger.info('deal_extraction.start')

Output is JSON when LOG_JSON is set (production) and coloured console
lines otherwise.
"""

import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Generator

import structlog
from structlog.types import Processor

from .config import config

_run_id: ContextVar[str | None] = ContextVar('run_id', default=None)
_message_id: ContextVar[str | None] = ContextVar('message_id', default=None)

# Event key -> context variable, in the order they are added to events
_CONTEXT_FIELDS: dict[str, ContextVar[str | None]] = {
    'run_id': _run_id,
    'message_id': _message_id,
}


def get_run_id() -> str | None:
    return _run_id.get()


def get_message_id() -> str | None:
    return _message_id.get()


def add_context_info(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Processor that stamps run_id / message_id onto the event."""
    for key, var in _CONTEXT_FIELDS.items():
        value = var.get()
        if value:
            event_dict[key] = value
    return event_dict


def configure_logging(
    json_output: bool | None = None,
    log_level: str | None = None,
) -> None:
    """
    Configure structlog for the application.

    Args:
        json_output: JSON lines when True, console output when False.
            Defaults to config.LOG_JSON.
        log_level: Override log level (defaults to config.LOG_LEVEL)
    """
    if json_output is None:
        json_output = config.LOG_JSON
    level_num = getattr(logging, (log_level or config.LOG_LEVEL).upper(), logging.INFO)

    # googleapiclient, sqlalchemy and httpx log through the standard library
    logging.basicConfig(format='%(message)s', stream=sys.stdout, level=level_num)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_context_info,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger (typically get_logger(__name__))."""
    return structlog.get_logger(name)


@contextmanager
def logging_context(
    run_id: str | None = None,
    message_id: str | None = None,
) -> Generator[None, None, None]:
    """
    Bind run_id and/or message_id for the duration of the block.

    Fields left as None keep their outer value; every field is restored on
    exit, including when the block raises.
    """
    values = {'run_id': run_id, 'message_id': message_id}
    tokens = [
        (var, var.set(values[key]))
        for key, var in _CONTEXT_FIELDS.items()
        if values[key] is not None
    ]
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


class PipelineTimer:
    """
    Wall-clock durations of the stages of one import run, in milliseconds.

        timer = PipelineTimer()
        with timer.stage('poll'):
            emails = await pipeline.poll_inbox()
        timer.summary()  # {'total_ms': ..., 'stages': {'poll': ...}}

    A stage that raises is still recorded.
    """

    def __init__(self):
        self.stages: dict[str, float] = {}
        self.start_time: float = time.perf_counter()

    @contextmanager
    def stage(self, name: str) -> Generator[None, None, None]:
        started = time.perf_counter()
        try:
            yield
        finally:
            self.record(name, (time.perf_counter() - started) * 1000)

    def record(self, name: str, duration_ms: float) -> None:
        self.stages[name] = duration_ms

    @property
    def total_ms(self) -> float:
        return (time.perf_counter() - self.start_time) * 1000

    def summary(self) -> dict[str, Any]:
        return {
            'total_ms': round(self.total_ms, 2),
            'stages': {name: round(ms, 2) for name, ms in self.stages.items()},
        }


# Console output until configure_logging() is called again (e.g. with json_output=True)
configure_logging()
