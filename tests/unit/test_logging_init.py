from __future__ import annotations

import logging

from arbolado.logging.init import (
    LOGGER_NAME,
    SUMMARY_LEVEL,
    LabeledFormatter,
    get_logger,
    log_summary,
    set_debug,
    setup_logging,
)


def _record(level: int, msg: str) -> logging.LogRecord:
    return logging.LogRecord("x", level, __file__, 1, msg, None, None)


def test_formatter_labels():
    fmt = LabeledFormatter()
    assert fmt.format(_record(logging.INFO, "hello")) == "INFO hello"
    assert fmt.format(_record(logging.WARNING, "careful")) == "WARN careful"
    assert fmt.format(_record(logging.ERROR, "bad")) == "ERROR bad"
    assert fmt.format(_record(SUMMARY_LEVEL, "mode=excel")) == "SUMMARY mode=excel"


def test_setup_logging_is_idempotent():
    first = setup_logging()
    second = setup_logging()
    assert first is second
    assert first.name == LOGGER_NAME
    assert len(first.handlers) == 1
    assert first.propagate is False


def test_package_logger_shares_handler():
    app_logger = setup_logging()
    pkg_logger = logging.getLogger("arbolado")
    assert pkg_logger.handlers == app_logger.handlers


def test_log_summary_prints_labeled_line(capsys):
    setup_logging()
    log_summary("mode=excel rows=3")
    assert "SUMMARY mode=excel rows=3" in capsys.readouterr().out


def test_module_loggers_use_labels(capsys):
    setup_logging()
    logging.getLogger("arbolado.services.importer").warning("2 rows missing key fields")
    assert "WARN 2 rows missing key fields" in capsys.readouterr().out


def test_set_debug_lowers_levels(capsys):
    logger = get_logger()
    logger.debug("hidden")
    set_debug(logger)
    logger.debug("shown")
    out = capsys.readouterr().out
    assert "hidden" not in out
    assert "DEBUG shown" in out
