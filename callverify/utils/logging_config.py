"""Logging setup for test runs and helpers."""
import logging
from typing import Optional

from .config import LoggingConfig, get_config


def setup_logging(config: Optional[LoggingConfig] = None, log_file: Optional[str] = None):
    """Configure root logging from the logging section of the app config."""
    config = config or get_config().logging
    log_level = getattr(logging, config.level.upper(), logging.INFO)

    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format=config.format,
        handlers=handlers,
        force=True
    )

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))
    logging.getLogger(__name__).debug(f"Logging configured at {logging.getLevelName(log_level)}")
