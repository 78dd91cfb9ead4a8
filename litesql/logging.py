"""
Logging configuration for litesql.

All loggers live under the ``litesql`` namespace. Nothing is configured on
import; applications (or ``python -m litesql``) call :func:`setup_logging`.
"""

import logging
import sys
from types import TracebackType
from typing import Optional

ROOT_LOGGER_NAME = "litesql"


# ANSI color codes for terminal output
class Colors:
    """ANSI color codes for colored terminal output."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"

    BG_RED = "\033[41m"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name of each record."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.DIM + Colors.CYAN,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.BG_RED + Colors.WHITE,
    }

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None, use_colors: bool = True):
        """
        Initialize colored formatter.

        Args:
            fmt: Log message format
            datefmt: Date format
            use_colors: Whether to use ANSI colors (disable for file output)
        """
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if self.use_colors and record.levelno in self.LEVEL_COLORS:
            level_color = self.LEVEL_COLORS[record.levelno]
            record.levelname = f"{level_color}{record.levelname}{Colors.RESET}"

        return super().format(record)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None, stream=None) -> None:
    """
    Configure the ``litesql`` logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output
        stream: Console stream (defaults to stderr)

    Example:
        >>> setup_logging(level="DEBUG")
        >>> logger = get_logger(__name__)
        >>> logger.debug("Opened connection")
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(numeric_level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setLevel(numeric_level)

    # SQL traces are only readable with timestamps at DEBUG
    if numeric_level <= logging.DEBUG:
        console_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        console_formatter = ColoredFormatter(console_format, datefmt="%H:%M:%S")
    else:
        console_format = "[%(levelname)s] %(message)s"
        console_formatter = ColoredFormatter(console_format)

    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(numeric_level)
        file_format = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s"
        file_handler.setFormatter(ColoredFormatter(file_format, use_colors=False))
        root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the ``litesql`` namespace.

    Args:
        name: Logger name (typically __name__)
    """
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    return logging.getLogger(name)


def format_exception_summary(
    error: BaseException,
    *,
    max_length: int = 180,
) -> str:
    """
    Build a concise one-line exception summary for user-facing error messages.

    Args:
        error: Exception instance.
        max_length: Maximum output length.

    Returns:
        Single-line summary (trimmed when needed).
    """
    exception_name = error.__class__.__name__
    detail = " ".join(str(error or "").split())
    summary = exception_name if not detail else f"{exception_name}: {detail}"
    if max_length > 3 and len(summary) > max_length:
        return summary[: max_length - 3].rstrip() + "..."
    return summary


def exception_exc_info(
    error: BaseException,
) -> tuple[type[BaseException], BaseException, TracebackType | None]:
    """Build an ``exc_info`` tuple suitable for logger calls."""
    return (type(error), error, error.__traceback__)


def configure_logging_from_args(verbose: bool = False, log_level: Optional[str] = None,
                                log_file: Optional[str] = None) -> None:
    """
    Configure logging based on CLI arguments.

    Args:
        verbose: If True, set level to DEBUG
        log_level: Explicit log level (overrides verbose)
        log_file: Optional file for log output
    """
    if log_level:
        level = log_level.upper()
    elif verbose:
        level = "DEBUG"
    else:
        level = "WARNING"

    setup_logging(level=level, log_file=log_file)
