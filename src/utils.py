"""Utility functions for the domain operator."""

import os
from urllib.parse import urlsplit, urlunsplit

from models import ConfigurationError


def get_env_int(name: str, default: int) -> int:
    """Read a positive integer from the environment.

    Raises:
        ConfigurationError: If the variable is set but not a positive integer
    """
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def redact_dsn(dsn: str) -> str:
    """Strip the password from a connection URL so it can be logged.

    Example: 'postgres://admin:secret@db:5432/app' -> 'postgres://admin:***@db:5432/app'
    """
    parts = urlsplit(dsn)
    if not parts.password:
        return dsn
    netloc = parts.netloc.replace(f":{parts.password}@", ":***@", 1)
    return urlunsplit(parts._replace(netloc=netloc))
