"""Logging configuration for the face index sync service.

Every record goes through structlog and is rendered by a single stdlib handler.
Lines written while a job holds the run guard carry a ``job`` key (see
``bind_job``), so a reconciliation run can be followed across the fetcher, the
registry and the repositories.
"""
import logging
import sys
from contextlib import contextmanager
from typing import Iterator, List, Optional

import structlog
from structlog.stdlib import ProcessorFormatter

from app.core.config import settings

# Client libraries that log every request at INFO/DEBUG
QUIET_LOGGERS = ("aioboto3", "aiobotocore", "botocore", "urllib3", "aiomysql", "asyncio")


def add_service_context(
    logger: logging.Logger, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Stamp each event with the service name and environment."""
    event_dict.setdefault("service", settings.PROJECT_NAME)
    event_dict.setdefault("environment", settings.ENVIRONMENT)
    return event_dict


def _renderer(json_logs: bool) -> structlog.types.Processor:
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging(level: Optional[str] = None) -> None:
    """Configure structured logging for the API, the scheduler and the CLI.

    Args:
        level: Log level name, defaults to ``settings.LOG_LEVEL``
    """
    json_logs = settings.ENVIRONMENT != "development"

    processors: List[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_logs:
        processors.append(add_service_context)
        processors.append(structlog.processors.format_exc_info)
    processors.append(ProcessorFormatter.wrap_for_formatter)

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ProcessorFormatter(processor=_renderer(json_logs)))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    level_name = (level or settings.LOG_LEVEL).upper()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))

    logging.getLogger("uvicorn.error").propagate = False
    logging.getLogger("uvicorn.access").disabled = True
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    get_logger(__name__).info(
        "Logging configured",
        level=level_name,
        renderer="json" if json_logs else "console",
    )


@contextmanager
def bind_job(job_name: str) -> Iterator[None]:
    """Attach ``job=<job_name>`` to every log line emitted inside the block."""
    with structlog.contextvars.bound_contextvars(job=job_name):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance compatible with standard logging.

    Args:
        name: Name for the logger, typically __name__

    Returns:
        structlog.stdlib.BoundLogger: Configured logger instance
    """
    return structlog.get_logger(name)
