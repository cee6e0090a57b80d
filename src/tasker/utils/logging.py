"""
Tasker Structured Logging

structlog configured from the ``log`` config section. Transcripts are user
speech, so any field that can carry one is cut down to a short preview
before it is rendered.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

if TYPE_CHECKING:
    from tasker.config import LogConfig

APP_NAME = "tasker"

# Event fields that may hold raw user speech
TRANSCRIPT_FIELDS = ("text", "transcript", "answer", "merged")

# Third-party loggers that log every HTTP request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "anthropic")

PREVIEW_CHARS = 40


def preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    """First ``limit`` characters of ``text`` on one line."""
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def add_app_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict["app"] = APP_NAME
    return event_dict


def truncate_transcripts(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Replace transcript-bearing string fields with a preview."""
    for key in TRANSCRIPT_FIELDS:
        value = event_dict.get(key)
        if isinstance(value, str):
            event_dict[key] = preview(value)
    return event_dict


def build_processors(format: str) -> list[Processor]:
    """Processor chain for ``json`` or ``console`` rendering."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
        truncate_transcripts,
    ]
    if format == "console":
        processors.append(
            structlog.dev.ConsoleRenderer(exception_formatter=structlog.dev.plain_traceback)
        )
    else:
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return processors


def setup_logging(config: LogConfig | None = None, **overrides: Any) -> None:
    """
    Configure logging for the process.

    Args:
        config: The ``log`` section; defaults apply when omitted
        **overrides: Field overrides, e.g. ``level="DEBUG"``
    """
    from tasker.config import LogConfig

    if config is None:
        config = LogConfig(**overrides)
    elif overrides:
        config = LogConfig(**{**config.model_dump(), **overrides})

    log_level = getattr(logging, config.level)

    structlog.configure(
        processors=build_processors(config.format),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Provider SDKs log through the stdlib
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    if config.file is not None:
        config.file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        logging.getLogger().addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
