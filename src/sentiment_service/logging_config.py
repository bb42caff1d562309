"""Structured logging configuration using structlog.

Every event goes through one processor chain, whether it comes from a
structlog logger or from a stdlib logger (uvicorn, celery, httpx):
contextvars (request id) -> level/logger name -> UTC timestamp -> service
tags -> input scrubbing -> renderer. Production renders one JSON object
per line; other profiles render for a terminal.

Texts submitted for analysis can carry personal data, so they never reach
the logs: ``text``, ``prompt`` and ``raw_content`` fields are replaced by
their length.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

SERVICE_NAME = "sentiment-analysis-service"

SCRUBBED_FIELDS = ("text", "prompt", "raw_content")

THIRD_PARTY_LEVELS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "asyncio": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "celery": logging.INFO,
}


def scrub_input_text(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Replace analysed text fields with ``<field>_length``."""
    for field in SCRUBBED_FIELDS:
        if field in event_dict:
            value = event_dict.pop(field)
            event_dict[f"{field}_length"] = len(value) if isinstance(value, str) else None
    return event_dict


def service_tagger(version: Optional[str]) -> Processor:
    def add_service(
        logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict["app"] = SERVICE_NAME
        if version:
            event_dict["version"] = version
        return event_dict

    return add_service


def configure_logging(
    log_level: str = "INFO",
    environment: str = "development",
    version: Optional[str] = None,
) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        environment: Active profile; "production" switches to JSON rendering
        version: Service version attached to every event
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    json_output = environment.lower() == "production"

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        service_tagger(version),
        scrub_input_text,
    ]
    if json_output:
        pre_chain.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain)
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)
    for name, library_level in THIRD_PARTY_LEVELS.items():
        logging.getLogger(name).setLevel(library_level)

    structlog.get_logger(__name__).info(
        "Logging configured",
        log_level=logging.getLevelName(level),
        environment=environment,
        renderer="json" if json_output else "console",
    )
