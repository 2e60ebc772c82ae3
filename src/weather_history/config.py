# Project: weather-history
# Owner: GreenUnicorn
"""
config.py — Load and validate the TOML configuration file.

We use tomllib (Python 3.11+ stdlib) so no extra install is needed.
Every section is optional; anything missing falls back to DEFAULT_CONFIG.
"""

import copy
import tomllib
from pathlib import Path

from weather_history.records import Location


DEFAULT_CONFIG_PATH = Path("config.toml")

ARCHIVE_API_URL = "https://archive-api.open-meteo.com/v1/archive"

DEFAULT_CONFIG: dict = {
    "location": {
        "latitude": 52.52,
        "longitude": 13.41,
        "name": "Berlin",
    },
    "cache": {
        "ttl_minutes": 30.0,
    },
    "fetch": {
        "archive_url": ARCHIVE_API_URL,
        "timeout_seconds": 30.0,
        "source_timeout_seconds": 120.0,
        "retry_attempts": 3,
        "retry_delay_seconds": 0.3,
        "timezone": "auto",
    },
    "stats": {
        "chunk_size": 100,
    },
    "log": {
        "path": "logs/weather_history.log",
        "level": "INFO",
    },
}

# Keys that must be strictly positive numbers
_POSITIVE = {
    ("cache", "ttl_minutes"),
    ("fetch", "timeout_seconds"),
    ("fetch", "source_timeout_seconds"),
    ("fetch", "retry_attempts"),
    ("stats", "chunk_size"),
}


def default_config() -> dict:
    """Return a fresh copy of DEFAULT_CONFIG."""
    return copy.deepcopy(DEFAULT_CONFIG)


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> dict:
    """Load a TOML configuration file and merge it over the defaults.

    Args:
        path: Path to the TOML config file.

    Returns:
        Nested dict with every section of DEFAULT_CONFIG present.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If a section is unknown or a value has the wrong type/range.
    """
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}\n"
            "Copy config.toml.example to config.toml and adjust it."
        )

    with open(path, "rb") as f:
        user = tomllib.load(f)

    config = merge_config(user)
    _validate(config)
    return config


def merge_config(user: dict) -> dict:
    """Overlay a parsed TOML dict on the defaults.

    Raises:
        ValueError: If `user` contains a section the defaults do not know.
    """
    config = default_config()
    for section, values in user.items():
        if section not in config:
            raise ValueError(f"Unknown config section: [{section}]")
        if not isinstance(values, dict):
            raise ValueError(f"Config section [{section}] must be a table")
        config[section].update(values)
    return config


def _validate(config: dict) -> None:
    """Check types and ranges of the merged config.

    Expected config schema::

        [location]
        latitude  = <float>   # decimal degrees, -90..90
        longitude = <float>   # decimal degrees, -180..180
        name      = <str>

        [cache]
        ttl_minutes = <float>

        [fetch]
        archive_url            = <str>
        timeout_seconds        = <float>   # one HTTP request
        source_timeout_seconds = <float>   # a whole source call, retries included
        retry_attempts         = <int>
        retry_delay_seconds    = <float>
        timezone               = <str>

        [stats]
        chunk_size = <int>

        [log]
        path  = <str>
        level = <str>

    Raises:
        ValueError: On the first invalid value found.
    """
    for section, defaults in DEFAULT_CONFIG.items():
        for key, default in defaults.items():
            value = config[section][key]
            if isinstance(default, (int, float)) and not isinstance(default, bool):
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ValueError(f"Config key [{section}].{key} must be a number")
                if isinstance(default, int) and not isinstance(value, int):
                    raise ValueError(f"Config key [{section}].{key} must be an integer")
            elif isinstance(default, str) and not isinstance(value, str):
                raise ValueError(f"Config key [{section}].{key} must be a string")
            if (section, key) in _POSITIVE and value <= 0:
                raise ValueError(f"Config key [{section}].{key} must be positive")

    location = config["location"]
    if not -90 <= location["latitude"] <= 90:
        raise ValueError("Config key [location].latitude must be between -90 and 90")
    if not -180 <= location["longitude"] <= 180:
        raise ValueError("Config key [location].longitude must be between -180 and 180")
    fetch = config["fetch"]
    if fetch["retry_delay_seconds"] < 0:
        raise ValueError("Config key [fetch].retry_delay_seconds must not be negative")
    if fetch["source_timeout_seconds"] < retry_budget(fetch):
        raise ValueError(
            f"Config key [fetch].source_timeout_seconds must be at least {retry_budget(fetch):.1f} "
            "(retry_attempts × timeout_seconds plus retry delays)"
        )


def retry_budget(fetch: dict) -> float:
    """Worst-case seconds for one archive call: every attempt times out, plus the backoff sleeps."""
    attempts = int(fetch["retry_attempts"])
    backoff = sum(fetch["retry_delay_seconds"] * 2 ** n for n in range(attempts - 1))
    return attempts * fetch["timeout_seconds"] + backoff


def location_from_config(config: dict) -> Location:
    loc = config["location"]
    return Location(
        latitude=float(loc["latitude"]),
        longitude=float(loc["longitude"]),
        name=loc.get("name", ""),
    )
