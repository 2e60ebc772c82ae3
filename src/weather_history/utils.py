# Project: weather-history
# Owner: GreenUnicorn
"""
utils.py — Shared utilities: retry logic, logging setup, date parsing.
"""

import logging
import sys
import time
from collections.abc import Callable
from datetime import date
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_LOG_PATH = Path("logs/weather_history.log")
MAX_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 0.3
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def parse_iso_date(value: date | str) -> date:
    """Accept a date or an ISO 'YYYY-MM-DD' string.

    Raises:
        ValueError: If the string is not a valid ISO date.
    """
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip())


def with_retry(
    fn: Callable[..., Any],
    *args: Any,
    label: str = "API call",
    attempts: int = MAX_ATTEMPTS,
    delay: float = RETRY_DELAY_SECONDS,
    **kwargs: Any,
) -> Any:
    """Call a function up to `attempts` times, retrying on any exception.

    The wait doubles after each failure (delay, 2*delay, 4*delay, ...).

    Args:
        fn: Callable to invoke.
        *args: Positional arguments forwarded to fn.
        label: Human-readable name for the call, used in log messages.
        attempts: Total number of tries.
        delay: Wait before the first retry, in seconds.
        **kwargs: Keyword arguments forwarded to fn.

    Returns:
        The return value of fn on success.

    Raises:
        RuntimeError: If every attempt raises.
    """
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            if attempt < attempts:
                wait = delay * 2 ** (attempt - 1)
                logger.warning(
                    "%s failed (attempt %d/%d): %s. Retrying in %.1fs...",
                    label, attempt, attempts, e, wait,
                )
                time.sleep(wait)
            else:
                msg = f"All {attempts} attempts failed for {label}."
                logger.error("%s Last error: %s", msg, e)
                raise RuntimeError(msg) from e


def configure_logging(
    log_path: Path | None = DEFAULT_LOG_PATH,
    level: str = "INFO",
    verbose: bool = False,
) -> None:
    """Send log records to stderr and, if possible, append them to `log_path`.

    A log file that cannot be opened is reported once on stderr; it never stops
    the program.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter("[%(name)s] %(message)s"))
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root.addHandler(console)

    if log_path is None:
        return
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    except OSError as e:
        print(f"[weather-history] Cannot write log file {log_path}: {e}", file=sys.stderr)
        return
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(file_handler)
