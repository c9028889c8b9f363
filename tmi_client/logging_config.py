"""
Logging setup for the chat client: colored console output through colorlog
and a one-line structured format for errors.
"""

import logging
import os
import sys
from typing import Any

import colorlog

LOG_FORMAT = "%(asctime)s %(log_color)s%(levelname)-8s%(reset)s %(message_log_color)s%(message)s"
LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "magenta",
}
# Third-party loggers that are noisy at DEBUG.
QUIET_LOGGERS = ("aiohttp", "asyncio")

error_logger = logging.getLogger("tmi_client.errors")


def log_level_from_env() -> int:
    """DEBUG=true/1/yes selects DEBUG, anything else INFO."""
    debug_env = os.environ.get("DEBUG", "").lower()
    return logging.DEBUG if debug_env in ("true", "1", "yes") else logging.INFO


def format_structured_error(
    error_type: str,
    message: str,
    exception: BaseException | None = None,
    context: dict[str, Any] | None = None,
) -> str:
    text = f"[{error_type.upper()}] {message}"
    if exception is not None:
        text += f" | Exception: {type(exception).__name__}: {exception}"
    if context:
        text += " | Context: " + " | ".join(f"{k}={v}" for k, v in context.items())
    return text


def log_structured_error(
    error_type: str,
    message: str,
    exception: BaseException | None = None,
    context: dict[str, Any] | None = None,
    level: int = logging.ERROR,
) -> None:
    """Log an error as ``[CATEGORY] message | Exception: ... | Context: k=v``.

    Args:
        error_type: Category of the error (e.g. 'network', 'auth', 'handshake')
        message: Descriptive error message
        exception: The exception that occurred (optional)
        context: Additional key/value pairs for debugging
        level: Logging level (default: ERROR)
    """
    error_logger.log(level, format_structured_error(error_type, message, exception, context))


class LoggerConfigurator:
    """Installs a colorlog handler on the root logger.

    Calling :meth:`configure` again replaces the handler it installed before
    instead of stacking a second one.
    """

    def __init__(self, stream=None):
        self.stream = stream or sys.stderr
        self.handler: logging.Handler | None = None

    def configure(self, level: int | None = None) -> colorlog.ColoredFormatter:
        """Configure the root logger; ``level`` defaults to the DEBUG env switch."""
        log_level = log_level_from_env() if level is None else level

        formatter = colorlog.ColoredFormatter(
            LOG_FORMAT,
            datefmt="%Y-%m-%d %H:%M:%S",
            log_colors=LOG_COLORS,
            secondary_log_colors={"message": {"ERROR": "red", "CRITICAL": "magenta"}},
            reset=True,
        )
        handler = colorlog.StreamHandler(self.stream)
        handler.setFormatter(formatter)

        root_logger = logging.getLogger()
        if self.handler is not None:
            root_logger.removeHandler(self.handler)
        root_logger.addHandler(handler)
        root_logger.setLevel(log_level)
        self.handler = handler

        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
        return formatter
