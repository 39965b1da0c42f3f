"""Root logger configuration for the metwall CLI and proxy.

Log records go to stderr so command output on stdout stays clean; a log
file can be added from the `logging.file` setting.
"""

import logging
import sys
from typing import Optional

DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Per-request chatter from the HTTP stack, kept at WARNING unless running at DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")

def setup_logging(
    log_level: int = logging.WARNING,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = None,
) -> None:
    """Replaces the root handlers with a stderr handler and an optional file handler."""
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(log_format)
    handlers: list = [logging.StreamHandler(sys.stderr)]
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file, encoding='utf-8'))
        except OSError as e:
            logging.error(f"Failed to set up file logging to {log_file}: {e}")
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(log_level if log_level <= logging.DEBUG else max(log_level, logging.WARNING))
