import logging
import os
from logging.handlers import RotatingFileHandler

from tripsync.core.config import LOG_FILE, LOG_LEVEL

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(log_path: str | None = None, level: str | None = None) -> logging.Logger:
    """Configure and return the application-wide ``tripsync`` logger.

    Always logs to stderr. When ``log_path`` (or ``LOG_FILE``) is set, also
    writes to a rotating file next to it (5 MB, 5 backups).
    """
    logger = logging.getLogger("tripsync")
    logger.setLevel(level or LOG_LEVEL)

    # avoid adding multiple handlers if called multiple times
    if logger.handlers:
        return logger

    formatter = logging.Formatter(_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)

    log_path = log_path or LOG_FILE
    if log_path:
        logs_dir = os.path.dirname(os.path.abspath(log_path))
        os.makedirs(logs_dir, exist_ok=True)
        handler = RotatingFileHandler(
            log_path, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
