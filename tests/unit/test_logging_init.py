from __future__ import annotations

import logging
from io import StringIO

from group_ingest.logging.init import (
    APP_LOGGER_NAME,
    SUMMARY_LEVEL,
    LabeledFormatter,
    get_logger,
    log_summary,
    setup_logging,
)


def test_setup_logging_configures_app_logger():
    logger = setup_logging()
    assert logger.name == APP_LOGGER_NAME == "group_ingest"
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, LabeledFormatter)
    assert logger.propagate is False


def test_setup_logging_idempotent_and_debug_toggle():
    first = setup_logging()
    second = setup_logging(debug=True)
    assert first is second
    assert len(second.handlers) == 1
    assert second.level == logging.DEBUG
    assert get_logger() is first


def test_labels():
    fmt = LabeledFormatter()

    def render(level: int, msg: str) -> str:
        return fmt.format(logging.LogRecord("x", level, __file__, 1, msg, None, None))

    assert render(logging.INFO, "hello") == "INFO hello"
    assert render(logging.WARNING, "careful") == "WARN careful"
    assert render(logging.ERROR, "bad") == "ERROR bad"
    assert render(SUMMARY_LEVEL, "sources=1/1") == "SUMMARY sources=1/1"


def test_module_loggers_propagate_to_app_handler(capsys):
    setup_logging()
    logging.getLogger("group_ingest.services.orchestrator").warning("source unavailable: X")
    log_summary("sources=0/1")
    out = capsys.readouterr().out
    assert "WARN source unavailable: X" in out
    assert "SUMMARY sources=0/1" in out


def test_debug_hidden_by_default():
    logger = setup_logging()
    stream = StringIO()
    logger.handlers[0].setStream(stream)
    logging.getLogger("group_ingest.services.dedup").debug("noise")
    logger.info("kept")
    assert stream.getvalue() == "INFO kept\n"
