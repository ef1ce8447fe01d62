"""Structured logging for reelforge.

structlog renders both structlog loggers (the job tracker) and stdlib loggers
(everything using logging.getLogger(__name__)). Log lines emitted while a job
or scene is being processed carry its job_id and scene_id.

Scene context is set inside per-scene asyncio tasks, so concurrent scenes of
one job each log their own scene_id.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Optional

import structlog

current_job_id: ContextVar[Optional[str]] = ContextVar("current_job_id", default=None)
current_scene_id: ContextVar[Optional[str]] = ContextVar("current_scene_id", default=None)

# Libraries that log every request or decoded chunk at INFO/DEBUG
QUIET_LOGGERS = ("aiohttp.access", "aiohttp.client", "PIL", "asyncio", "urllib3.connectionpool")

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def add_correlation_ids(_logger, _method_name, event_dict):
    """Processor adding job_id and scene_id unless the call passed its own."""
    for key, var in (("job_id", current_job_id), ("scene_id", current_scene_id)):
        value = var.get()
        if value and key not in event_dict:
            event_dict[key] = value
    return event_dict


def setup_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Route stdlib and structlog output through one stderr handler.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR; anything else means INFO
        json_output: JSON lines instead of the console renderer
    """
    level_name = log_level.upper() if log_level and log_level.upper() in LEVELS else "INFO"

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_correlation_ids,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        # Colors only when stderr is a terminal; tqdm shares it
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """structlog logger for modules that log key/value events."""
    return structlog.get_logger(name)


def set_job_context(job_id: str) -> None:
    current_job_id.set(job_id)


def clear_job_context() -> None:
    current_job_id.set(None)
    current_scene_id.set(None)


def set_scene_context(scene_id: Optional[str]) -> None:
    """Tag log lines from the current task with scene_id."""
    current_scene_id.set(scene_id)
