# services/logger_config.py
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 5


def _file_handler(log_file_path: str, formatter: logging.Formatter) -> Optional[logging.Handler]:
    """Rotating file handler, or None when the log location is not writable."""
    try:
        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handler = RotatingFileHandler(
            log_file_path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding="utf-8"
        )
    except OSError as e:
        print(f"File logging disabled ({log_file_path}): {e}")
        return None

    handler.setFormatter(formatter)
    return handler


def setup_logging(level: Optional[str] = None, log_file_path: Optional[str] = None) -> logging.Logger:
    """
    Configure the service logger: rotating file plus console.

    Safe to call more than once (each app lifespan calls it); previous handlers
    are closed and replaced.
    """
    logger = logging.getLogger(settings.LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel((level or settings.LOG_LEVEL).upper())
    formatter = logging.Formatter(LOG_FORMAT)

    file_handler = _file_handler(log_file_path or settings.LOG_FILE_PATH, formatter)
    if file_handler:
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    logger.info(f"Logging configured (level={logging.getLevelName(logger.level)})")
    return logger
