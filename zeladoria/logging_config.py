"""Centralized logging configuration."""
from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
HANDLER_PREFIX = "zeladoria."


def setup_logging(level: str = "INFO", log_file: Path | None = None) -> logging.Logger:
    """Configure the root logger with console output and optional file rotation.

    Only handlers installed by an earlier call are replaced. When the host
    process already attached its own root handlers, no console handler is
    added next to them.
    """

    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in list(root_logger.handlers):
        if (handler.get_name() or "").startswith(HANDLER_PREFIX):
            root_logger.removeHandler(handler)
            handler.close()

    if not root_logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.set_name(f"{HANDLER_PREFIX}console")
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
        )
        file_handler.set_name(f"{HANDLER_PREFIX}file")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    root_logger.info("logging initialized at %s level", logging.getLevelName(log_level))
    return root_logger
