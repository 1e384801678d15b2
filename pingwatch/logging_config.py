"""Logging configuration for PingWatch."""

import logging
import os
import sys

# Probe results are logged from pool threads, so the thread name is kept
LOG_FORMAT = "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s"


def _parse_level(value: str) -> int | None:
    if value.isdigit():
        return int(value)
    level = logging.getLevelName(value.upper())
    return level if isinstance(level, int) else None


def configure_logging(level: str | None = None) -> int:
    """Configure root logging for a PingWatch process.

    Environment Variables:
        PINGWATCH_LOG_LEVEL: A level name (``debug``, ``warning``...) or number.
                             Default is INFO. Unknown values fall back to INFO.

    Args:
        level: Explicit level, overriding the environment

    Returns:
        The effective log level

    At DEBUG every probe logs its resolution, payload size and RTT; at INFO
    only host list changes, prober selection and monitoring start/stop show up.
    """
    requested = (level or os.environ.get("PINGWATCH_LOG_LEVEL") or "INFO").strip()
    log_level = _parse_level(requested)
    unknown = log_level is None
    if unknown:
        log_level = logging.INFO

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )

    logger = logging.getLogger(__name__)
    if unknown:
        logger.warning("Unknown PINGWATCH_LOG_LEVEL %r, using INFO", requested)
    logger.info("Logging configured: level=%s", logging.getLevelName(log_level))
    return log_level
