import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional


def setup_logging(log_config: Optional[Dict[str, Any]] = None, log_level=None):
    """Configure logging for the application."""
    log_config = log_config or {}

    # Set log level from argument, config or environment
    if log_level is None:
        log_level = log_config.get("level") or os.getenv("LOG_LEVEL", "INFO")

    formatter = logging.Formatter(
        log_config.get(
            "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    )

    handlers = [logging.StreamHandler(sys.stdout)]

    log_file = log_config.get("file")
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=log_config.get("max_size", 10485760),
                backupCount=log_config.get("backup_count", 5),
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, str(log_level).upper()),
        handlers=handlers,
        force=True,
    )

    logger = logging.getLogger("cleansweep")
    if log_file:
        logger.info(f"Logging initialized. Log file: {log_file}")

    return logger
