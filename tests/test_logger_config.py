import logging

from config import settings
from services.logger_config import setup_logging


def test_setup_logging_writes_to_file(tmp_path):
    log_file = tmp_path / "logs" / "docqa.log"

    logger = setup_logging(level="debug", log_file_path=str(log_file))
    logger.debug("chunk scored")
    for handler in logger.handlers:
        handler.flush()

    assert logger.name == settings.LOGGER_NAME
    assert logger.level == logging.DEBUG
    assert "chunk scored" in log_file.read_text(encoding="utf-8")


def test_setup_logging_is_idempotent(tmp_path):
    log_file = str(tmp_path / "docqa.log")

    setup_logging(log_file_path=log_file)
    logger = setup_logging(log_file_path=log_file)

    assert len(logger.handlers) == 2
