import logging
import sys
from pathlib import Path

from .config import LogConfig

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(threadName)s - %(message)s"

# Chatty third-party loggers that drown panfs' own DEBUG output.
NOISY_LOGGERS = ("httpx", "httpcore")


def _file_handler(log_file: str) -> logging.Handler:
    log_path = Path(log_file)
    # Create log directory if it doesn't exist
    if log_path.parent and not log_path.parent.exists():
        log_path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(log_path, mode="a", encoding="utf-8")


def setup_logging(config: LogConfig) -> None:
    """
    Configure the global logging configuration for panfs.

    Args:
        config: LogConfig object containing settings.

    Note:
        - A FileHandler is added if config.file is set.
        - A StreamHandler (stderr) is added if config.console is True.
        - The level applies to panfs; httpx/httpcore never go below WARNING,
          so per-request traces come from panfs.api instead.
    """
    # Unknown level names fall back to INFO
    level = getattr(logging, config.level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear any existing handlers to avoid duplicates
    root_logger.handlers.clear()

    handlers = []
    if config.file:
        handlers.append(_file_handler(config.file))
    if config.console:
        handlers.append(logging.StreamHandler(sys.stderr))

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
