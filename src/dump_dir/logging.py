from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pathlib import Path

LOGGER_NAME = "dump_dir"

_LOGGING_CONFIGURED = False
_HANDLER: logging.Handler | None = None


def setup_logging(filename: str | Path | None = None) -> structlog.BoundLogger:
    """Set up structured logging for the dump_dir module.

    Calling it again replaces the previous destination, so `--log-file` can
    redirect the module-level logger created at import time.

    Args:
        filename: Optional path to a log file. If None, logs are written to stderr.

    Returns:
        A structlog logger instance configured for the dump_dir module.
    """
    global _LOGGING_CONFIGURED, _HANDLER  # noqa: PLW0603
    handler: logging.Handler = (
        logging.FileHandler(str(filename), encoding="utf-8") if filename else logging.StreamHandler(sys.stderr)
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    std_logger = logging.getLogger(LOGGER_NAME)
    if _HANDLER is not None:
        std_logger.removeHandler(_HANDLER)
        _HANDLER.close()
    std_logger.addHandler(handler)
    std_logger.setLevel(logging.INFO)
    std_logger.propagate = False
    _HANDLER = handler

    if not _LOGGING_CONFIGURED:
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

    return structlog.get_logger(LOGGER_NAME)


logger = setup_logging()
