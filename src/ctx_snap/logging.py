from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pathlib import Path

LOGGER_NAME = "ctx_snap"

_LOGGING_CONFIGURED = False
_FILE_HANDLER: logging.FileHandler | None = None


def setup_logging(filename: str | Path | None = None) -> structlog.BoundLogger:
    """Set up structured logging for the ctx_snap package.

    Args:
        filename: Optional path to a log file. If None, logs are written to stderr.
            Each call replaces the file handler of the previous one, so only the
            latest file receives records.

    Returns:
        A structlog logger instance configured for the ctx_snap package.
    """
    global _LOGGING_CONFIGURED, _FILE_HANDLER  # noqa: PLW0603
    if not _LOGGING_CONFIGURED:
        logging.basicConfig(
            level=logging.INFO,
            handlers=[logging.StreamHandler(sys.stderr)],
            format="%(message)s",
        )
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_CONFIGURED = True

    std_logger = logging.getLogger(LOGGER_NAME)
    if _FILE_HANDLER is not None:
        std_logger.removeHandler(_FILE_HANDLER)
        _FILE_HANDLER.close()
        _FILE_HANDLER = None

    if filename:
        _FILE_HANDLER = logging.FileHandler(str(filename), encoding="utf-8")
        _FILE_HANDLER.setFormatter(logging.Formatter("%(message)s"))
        std_logger.addHandler(_FILE_HANDLER)
    std_logger.propagate = _FILE_HANDLER is None

    return structlog.get_logger(LOGGER_NAME)


def set_quiet(quiet: bool) -> None:  # noqa: FBT001
    """Drop per-file diagnostics below ERROR when `quiet` is set, otherwise keep INFO and up."""
    logging.getLogger(LOGGER_NAME).setLevel(logging.ERROR if quiet else logging.INFO)


logger = setup_logging()
