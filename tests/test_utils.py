# Project: weather-history
# Owner: GreenUnicorn
"""Tests for utils.py — retry logic, date helpers, logging setup."""

import logging
from contextlib import contextmanager
import pytest
from datetime import date
from unittest.mock import patch, MagicMock

from weather_history.utils import configure_logging, parse_iso_date, with_retry


# ---------------------------------------------------------------------------
# with_retry
# ---------------------------------------------------------------------------

def test_retry_succeeds_on_first_attempt():
    """A function that succeeds on the first call should return its value."""
    fn = MagicMock(return_value=42)
    result = with_retry(fn, label="test")
    assert result == 42
    assert fn.call_count == 1


def test_retry_forwards_arguments():
    fn = MagicMock(return_value="ok")
    with_retry(fn, 1, 2, label="test", key="value")
    fn.assert_called_once_with(1, 2, key="value")


def test_retry_succeeds_on_second_attempt():
    """A function that fails once then succeeds should return the success value."""
    fn = MagicMock(side_effect=[RuntimeError("fail"), 99])
    with patch("weather_history.utils.time.sleep"):
        result = with_retry(fn, label="test")
    assert result == 99
    assert fn.call_count == 2


def test_retry_exhausts_all_attempts_and_raises():
    """A function that always fails should raise RuntimeError after all attempts."""
    fn = MagicMock(side_effect=RuntimeError("always fails"))
    with patch("weather_history.utils.time.sleep"):
        with pytest.raises(RuntimeError, match="All 3 attempts failed") as excinfo:
            with_retry(fn, label="test")
    assert fn.call_count == 3
    assert str(excinfo.value.__cause__) == "always fails"


def test_retry_backoff_doubles():
    """Retry should sleep between failed attempts (but not after the last)."""
    fn = MagicMock(side_effect=RuntimeError("fail"))
    with patch("weather_history.utils.time.sleep") as mock_sleep:
        with pytest.raises(RuntimeError):
            with_retry(fn, label="test", attempts=3, delay=0.5)
    assert [c.args[0] for c in mock_sleep.call_args_list] == [0.5, 1.0]


def test_retry_logs_each_failure(caplog):
    fn = MagicMock(side_effect=[ValueError("first"), "ok"])
    with patch("weather_history.utils.time.sleep"):
        with caplog.at_level(logging.WARNING, logger="weather_history.utils"):
            with_retry(fn, label="Archive")
    assert "Archive failed (attempt 1/3)" in caplog.text


# ---------------------------------------------------------------------------
# Date helpers
# ---------------------------------------------------------------------------

def test_parse_iso_date():
    assert parse_iso_date("2024-02-26") == date(2024, 2, 26)
    assert parse_iso_date(" 2024-02-26 ") == date(2024, 2, 26)
    d = date(2024, 1, 1)
    assert parse_iso_date(d) is d


def test_parse_iso_date_rejects_garbage():
    with pytest.raises(ValueError):
        parse_iso_date("26/02/2024")


# ---------------------------------------------------------------------------
# configure_logging
# ---------------------------------------------------------------------------

@contextmanager
def isolated_root_logger():
    """Restore the root logger's handlers and level after configure_logging."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    try:
        yield root
    finally:
        for handler in list(root.handlers):
            if handler not in handlers:
                root.removeHandler(handler)
                handler.close()
        for handler in handlers:
            if handler not in root.handlers:
                root.addHandler(handler)
        root.setLevel(level)


def test_configure_logging_writes_file(tmp_path):
    log_path = tmp_path / "logs" / "history.log"
    with isolated_root_logger() as root:
        configure_logging(log_path, level="INFO")
        logging.getLogger("weather_history.test").info("hello file")
        for handler in root.handlers:
            handler.flush()

    assert "hello file" in log_path.read_text()


def test_configure_logging_unwritable_path_does_not_raise(tmp_path, capsys):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("")
    with isolated_root_logger():
        configure_logging(blocker / "history.log")
    assert "Cannot write log file" in capsys.readouterr().err


def test_configure_logging_verbose_sets_debug():
    with isolated_root_logger() as root:
        configure_logging(None, verbose=True)
        assert root.level == logging.DEBUG
