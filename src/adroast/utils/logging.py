"""Logging setup for adroast.

Everything the package logs goes through the ``adroast`` logger. The HTTP
and provider SDK loggers are held at WARNING unless debugging, so a
watch session is not buried under one request line per tick.
"""

from __future__ import annotations

import logging
import sys

from adroast.config.settings import LoggingConfig

# Loggers that emit a line per analyzer or proxy request at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "anthropic", "uvicorn.access")

_HANDLER_MARK = "_adroast_handler"


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure the ``adroast`` logger from the logging settings.

    Safe to call more than once: handlers installed by an earlier call
    are replaced rather than stacked.
    """
    if config is None:
        config = LoggingConfig()

    level = getattr(logging, config.level.upper(), logging.INFO)
    app_logger = logging.getLogger("adroast")
    app_logger.setLevel(level)

    for handler in list(app_logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            app_logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(config.format)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.file:
        handlers.append(logging.FileHandler(config.file))
    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_MARK, True)
        app_logger.addHandler(handler)

    third_party_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    app_logger.debug("Logging initialized at %s level", logging.getLevelName(level))
