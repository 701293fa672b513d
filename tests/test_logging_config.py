import logging

import pytest

from finance_tracker.logging_config import setup_logging, get_logger


@pytest.fixture
def app_logger():
    logger = logging.getLogger("finance_tracker")
    saved = (logger.level, list(logger.handlers), logger.propagate)
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.setLevel(saved[0])
    logger.handlers[:] = saved[1]
    logger.propagate = saved[2]


def test_setup_logging_configures_app_logger_in_place(app_logger, tmp_path):
    log_file = tmp_path / "logs" / "app.log"

    assert setup_logging(app_log_level="debug", log_file=str(log_file)) is None

    assert app_logger.level == logging.DEBUG
    assert app_logger.propagate is False
    assert len(app_logger.handlers) == 2

    get_logger("crud").debug("written to file")
    for handler in app_logger.handlers:
        handler.flush()
    assert "finance_tracker.crud - DEBUG - written to file" in log_file.read_text()


def test_setup_logging_does_not_stack_handlers(app_logger, monkeypatch):
    monkeypatch.delenv("LOG_FILE", raising=False)
    setup_logging()
    setup_logging()

    assert len(app_logger.handlers) == 1
