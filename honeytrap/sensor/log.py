"""Logging configuration using loguru.

loguru is the only sink.  Records are split into two channels:

- **service**: loguru calls made by the sensor and observer, plus stdlib
  records bridged from uvicorn, httpx and the capture pipeline's own
  diagnostics.
- **hit**: one line per captured decoy hit, written through the stdlib logger
  returned by ``hit_logger()``.  Scanners produce hits in bursts, so hit
  lines use a compact format and their own level; they can be silenced
  without hiding service warnings.
"""

from __future__ import annotations

import inspect
import logging
import sys
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from loguru import Record

HIT_LOGGER_NAME = "honeytrap.hits"

# Access lines duplicate the hit channel; client libraries are chatty at INFO.
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore")

SERVICE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
HIT_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <red>HIT     </red> | {message}"


def hit_logger() -> logging.Logger:
    """Stdlib logger for per-hit lines."""
    return logging.getLogger(HIT_LOGGER_NAME)


def _is_hit(record: Record) -> bool:
    return record["extra"].get("channel") == "hit"


def _is_service(record: Record) -> bool:
    return not _is_hit(record)


class _LoguruBridge(logging.Handler):
    """Forward stdlib records to loguru, tagging each with its channel."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so loguru reports the real call-site.
        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        channel = "hit" if record.name == HIT_LOGGER_NAME else "service"
        logger.bind(channel=channel).opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", *, hit_level: str = "INFO") -> None:
    """Install the service and hit sinks and bridge stdlib logging.

    Call once at process startup.  Safe to call again; sinks are replaced.
    """
    level = level.upper()
    hit_level = hit_level.upper()

    logger.remove()
    logger.add(sys.stderr, level=level, format=SERVICE_FORMAT, filter=_is_service)
    logger.add(sys.stderr, level=hit_level, format=HIT_FORMAT, filter=_is_hit)

    logging.basicConfig(handlers=[_LoguruBridge()], level=0, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info("Logging initialised (service={}, hits={})", level, hit_level)
