"""Logging setup shared by the API and the CLI.

Records under the ``catalog_sync`` logger always land in a JSON-lines file in
``settings.log_dir`` at DEBUG. The API also echoes them to stderr at
``settings.log_level``; the CLI leaves the terminal to its own rich output.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import structlog
from structlog.processors import CallsiteParameter, CallsiteParameterAdder
from structlog.typing import Processor

from catalog_sync.config import AppSettings

LOG_FILE_NAME = "catalog-sync.log"
ROOT_LOGGER_NAME = "catalog_sync"

# Runs for stdlib records and structlog events alike.
_PRE_CHAIN: tuple[Processor, ...] = (
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
    CallsiteParameterAdder(
        {CallsiteParameter.MODULE, CallsiteParameter.FUNC_NAME, CallsiteParameter.LINENO}
    ),
)


def configure_application_logging(settings: AppSettings, *, console: bool = True) -> Path:
    settings.log_dir.mkdir(parents=True, exist_ok=True)
    log_file = settings.log_dir / LOG_FILE_NAME

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_PRE_CHAIN,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(
        _rendering_handler(
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.DEBUG,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        )
    )
    console_level = log_level_for(settings.log_level)
    if console:
        logger.addHandler(
            _rendering_handler(
                logging.StreamHandler(sys.stderr),
                console_level,
                structlog.dev.ConsoleRenderer(colors=False),
            )
        )

    logger.info(
        "logging configured log_file=%s console_level=%s",
        log_file,
        logging.getLevelName(console_level) if console else "OFF",
    )
    return log_file


def log_level_for(name: str) -> int:
    """Map a level name such as ``"warning"`` to its number, INFO when unknown."""
    return logging.getLevelNamesMapping().get(name.strip().upper(), logging.INFO)


def _rendering_handler(
    handler: logging.Handler,
    level: int,
    *renderers: Processor,
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=list(_PRE_CHAIN),
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
        )
    )
    return handler
