"""
Logging configuration.

One human-readable stream handler on the root logger; modules log through
``logging.getLogger(__name__)``.
"""

import logging
import sys

from app.core.config import settings


class DevelopmentFormatter(logging.Formatter):
    """
    Human-readable formatter: time, level, logger name, message.
    """

    def __init__(self):
        super().__init__(
            fmt="[%(asctime)s] %(levelname)-8s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )


def configure_logging() -> logging.Logger:
    """
    Configures application-wide logging at settings.log_level.
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    if settings.debug:
        log_level = logging.DEBUG

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(DevelopmentFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # Third-party loggers are noisy at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logger = logging.getLogger("app")
    logger.info(f"Logging configured: level={logging.getLevelName(log_level)}, debug={settings.debug}")
    return logger
