"""
Logging configuration for htakiosk
"""

import logging
import sys
from pathlib import Path
from typing import Optional

# Custom level below DEBUG for state machine tracing
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LOG_LEVELS = {
    "NONE": logging.CRITICAL + 10,
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "TRACE": TRACE,
}


class _BelowErrorFilter(logging.Filter):
    """Keep ERROR and above off stdout; they go to stderr"""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.ERROR


def parse_log_level(log_level: str) -> int:
    """Translate a level name into a logging level number"""
    try:
        return LOG_LEVELS[log_level.upper()]
    except KeyError:
        raise ValueError(f"Unknown log level: {log_level}") from None


def setup_logging(log_level: str = "NONE", log_file: Optional[str] = None) -> None:
    """Set up logging configuration"""

    level = parse_log_level(log_level)

    # Configure logging format
    log_format = "%(asctime)s - [%(process)d] %(name)s - %(levelname)s - %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.addFilter(_BelowErrorFilter())
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.ERROR)
    handlers = [stdout_handler, stderr_handler]

    # Create log directory if using file logging
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, mode='a'))

    # Set up root logger
    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=handlers,
        force=True
    )

    logger = logging.getLogger(__name__)
    logger.debug(f"Logging initialized at {log_level.upper()}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance"""
    return logging.getLogger(name)
