"""
Logging configuration for termtunes.
"""
import logging
import sys
from pathlib import Path
from typing import Optional


class ColoredFormatter(logging.Formatter):
    """Colored log formatter for terminal output."""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'        # Reset
    }

    def format(self, record):
        color = self.COLORS.get(record.levelname, '')
        reset = self.COLORS['RESET']
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{reset}"
        return super().format(record)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    console: bool = True,
) -> logging.Logger:
    """Setup logging configuration for termtunes.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        console: Attach the colored stdout handler. The interactive UI owns
            stdout, so it runs with this off and logs to ``log_file`` only.

    Returns:
        The package root logger
    """
    logger = logging.getLogger('termtunes')
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Clear existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
        console_formatter = ColoredFormatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%H:%M:%S'
        )
        console_handler.setFormatter(console_formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    # Keep records out of the root logger's stderr handler while the UI is up
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a specific module.

    Args:
        name: Module name

    Returns:
        Logger instance
    """
    return logging.getLogger(f'termtunes.{name}')


# Custom exceptions for better error handling
class TermTunesError(Exception):
    """Base exception for termtunes."""
    pass


class AudioPlayerError(TermTunesError):
    """Audio playback related errors."""
    pass


class DecodeError(AudioPlayerError):
    """A track could not be decoded or no output voice could be allocated."""
    pass


class SeekError(AudioPlayerError):
    """The output adapter refused a seek."""
    pass


class VolumeError(AudioPlayerError):
    """The output adapter refused a volume change."""
    pass


class ExhaustedError(TermTunesError):
    """Every track failed to open during one advance pass."""
    pass


class FilesystemError(TermTunesError):
    """Filesystem operation errors."""
    pass


class ConfigurationError(TermTunesError):
    """Configuration related errors."""
    pass
