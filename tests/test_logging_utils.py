"""Tests for the reusable logging helpers."""

from __future__ import annotations

import logging

import pytest

from munge_vcf import logging_utils as mod


@pytest.fixture(autouse=True)
def restore_default_logging():
    yield
    mod.configure_logging()


# ------------------------
# Tests for error handlers
# ------------------------

def test_handle_non_critical_error_logs_warning(caplog):
    message = "recoverable condition"

    with caplog.at_level(logging.DEBUG, logger=mod.logger.name):
        mod.handle_non_critical_error(message)

    warnings = [rec for rec in caplog.records if rec.levelno == logging.WARNING]
    assert warnings, "Expected a warning log entry"
    assert any(rec.message == message for rec in warnings)


def test_handle_critical_error_logs_error_and_critical(caplog):
    message = "fatal condition detected"
    root_exc = ValueError("boom")

    with caplog.at_level(logging.DEBUG, logger=mod.logger.name):
        with pytest.raises(mod.MungeVCFError) as excinfo:
            mod.handle_critical_error(message, exc_info=root_exc)

    assert excinfo.value.__cause__ is root_exc

    error_levels = [
        rec.levelno
        for rec in caplog.records
        if rec.message == message and rec.levelno in {logging.ERROR, logging.CRITICAL}
    ]
    assert error_levels.count(logging.ERROR) == 1
    assert error_levels.count(logging.CRITICAL) == 1


def test_handle_critical_error_raises_requested_class():
    with pytest.raises(mod.UnsortedInputError, match="not sorted"):
        mod.handle_critical_error("input.vcf is not sorted", exc_cls=mod.UnsortedInputError)


def test_error_types_share_base_class():
    for exc_cls in (
        mod.MissingDictionaryError,
        mod.IncompatibleContigsError,
        mod.UnreadableInputError,
        mod.UnwritableOutputError,
        mod.UnsortedInputError,
        mod.HeaderConflictError,
    ):
        assert issubclass(exc_cls, mod.MungeVCFError)


def test_log_message_echoes_when_verbose(capsys):
    mod.configure_logging(enable_console=False)

    mod.log_message("quiet message")
    mod.log_message("loud message", verbose=True)

    out = capsys.readouterr().out
    assert "quiet message" not in out
    assert "loud message" in out


# ------------------------
# Tests for configuration
# ------------------------

def test_configure_logging_custom_file(tmp_path):
    log_path = tmp_path / "nested" / "custom.log"

    mod.configure_logging(log_level="WARNING", log_file=log_path)
    mod.logger.warning("custom destination works")
    mod.logger.info("below the threshold")

    contents = log_path.read_text(encoding="utf-8")
    assert "custom destination works" in contents
    assert "below the threshold" not in contents


def test_configure_logging_replaces_handlers(tmp_path):
    log_file = tmp_path / "handlers.log"

    mod.configure_logging(log_file=log_file)
    mod.configure_logging(log_file=log_file)

    file_handlers = [h for h in mod.logger.handlers if isinstance(h, logging.FileHandler)]
    stream_handlers = [
        h
        for h in mod.logger.handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]
    assert len(file_handlers) == 1
    assert len(stream_handlers) == 1


def test_configure_logging_disable_file_then_enable(tmp_path):
    mod.configure_logging(log_level=logging.ERROR, enable_file_logging=False, log_file=tmp_path / "x.log")

    assert not any(isinstance(h, logging.FileHandler) for h in mod.logger.handlers)
    assert not (tmp_path / "x.log").exists()

    custom_path = tmp_path / "final.log"
    mod.configure_logging(log_level="INFO", log_file=custom_path)
    mod.logger.info("reconfigured logging writes to file")

    assert "reconfigured logging writes to file" in custom_path.read_text(encoding="utf-8")


def test_configure_logging_rejects_unknown_level():
    with pytest.raises(ValueError, match="Unknown log level"):
        mod.configure_logging(log_level="chatty")


# ------------------------
# Tests for progress reporting
# ------------------------

def test_progress_logger_reports_every_interval(caplog):
    progress = mod.ProgressLogger(interval=2)

    with caplog.at_level(logging.INFO, logger=mod.logger.name):
        logged = [progress.record("chr1", pos) for pos in (10, 20, 30, 40, 50)]

    assert logged == [False, True, False, True, False]
    assert progress.count == 5
    assert progress.last_locus == "chr1:50"
    messages = [rec.message for rec in caplog.records if rec.message.startswith("Merged")]
    assert len(messages) == 2
    assert "Last position: chr1:40" in messages[-1]


def test_progress_logger_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        mod.ProgressLogger(interval=0)
