"""
Logging Configuration

Centralized logging configuration for the orbital tracker.
All modules should use this logger for consistent output. Records go through
structlog and end up in the standard library handlers configured here.

Usage:
    from logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("Satellites propagated", count=1500)
    logger.warning("TLE data is outdated")
    logger.error("CelesTrak fetch failed")
"""

import logging
import os
import sys
from typing import Optional

import structlog

# Default logging format
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: int = logging.INFO, log_file: Optional[str] = None,
                      json_logs: bool = False) -> None:
    """
    Route stdlib and structlog records to stdout (and optionally a file).

    Parameters
    ----------
    level : int
        Threshold for both stdlib and structlog loggers
    log_file : str, optional
        Also append records to this file when given
    json_logs : bool
        Render structlog events as JSON instead of key/value console output.
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
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
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Structlog logger bound to a module name.

    Parameters
    ----------
    name : str
        Module name, normally __name__

    Returns
    -------
    structlog.stdlib.BoundLogger
        Logger accepting key/value context with each event
    """
    return structlog.get_logger(name)


# Applied once on import; LOG_LEVEL and LOG_JSON tune it
configure_logging(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    json_logs=os.getenv("LOG_JSON", "").lower() in ("1", "true", "yes"),
)
