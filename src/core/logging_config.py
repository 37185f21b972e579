"""
Logging configuration for the damage roll toolkit.

Damage and roll code log through module loggers below ``src.modules``.
setup_logging() gives that branch its own console (and optional file) output
and leaves the host application's root logger untouched. Hosts that already
configure logging can skip it; records still propagate to the root logger
unless a dedicated channel was set up.
"""

import logging
import sys
from typing import Optional

from colorama import Fore, Back, Style, init

from .config import Config, get_config

init(autoreset=True)

PACKAGE_LOGGER = 'src.modules'
DEFAULT_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'


class ColoredFormatter(logging.Formatter):
    """
    Formatter that colours the level name of each record.

    Discarded damage and feature terms are logged as warnings and show up
    yellow; formulas and fired features are logged at DEBUG and show up cyan.
    """

    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Back.WHITE + Style.BRIGHT,
    }

    ICONS = {
        'DEBUG': '🎲',
        'INFO': 'ℹ️ ',
        'WARNING': '⚠️ ',
        'ERROR': '❌',
        'CRITICAL': '🚨',
    }

    def format(self, record):
        color = self.COLORS.get(record.levelname, '')
        icon = self.ICONS.get(record.levelname, '')

        original_levelname = record.levelname
        record.levelname = f"{color}{icon} {record.levelname}{Style.RESET_ALL}"
        try:
            return super().format(record)
        finally:
            # Other handlers share the record
            record.levelname = original_levelname


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(
    level: str = 'INFO',
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    use_colors: bool = True
) -> logging.Logger:
    """
    Give the damage and roll loggers a dedicated output channel.

    Calling it again replaces the handlers from the previous call.

    Args:
        level: Logging level name; unknown names fall back to INFO
        log_file: Optional file that receives every record, uncoloured
        format_string: Optional custom format string
        use_colors: Whether console output is coloured

    Returns:
        The ``src.modules`` logger

    Example:
        setup_logging(level='DEBUG')
        DamageRoll.parse("20W12")  # yellow warning about the discarded string
    """
    format_string = format_string or DEFAULT_FORMAT
    numeric_level = _level(level)

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(min(numeric_level, logging.DEBUG) if log_file else numeric_level)
    logger.propagate = False

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(
        ColoredFormatter(format_string) if use_colors else logging.Formatter(format_string)
    )
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(format_string))
        logger.addHandler(file_handler)

    return logger


def setup_logging_from_config(config: Optional[Config] = None) -> logging.Logger:
    """Configure logging from LOG_LEVEL, LOG_FILE and LOG_COLORS."""
    config = config or get_config()
    return setup_logging(
        level=config.log_level,
        log_file=config.log_file,
        use_colors=config.log_colors
    )


def reset_logging() -> None:
    """Remove the dedicated channel so records propagate to the root logger again."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


__all__ = [
    'ColoredFormatter', 'PACKAGE_LOGGER', 'setup_logging',
    'setup_logging_from_config', 'reset_logging'
]
