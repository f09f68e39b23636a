"""Configuration loading for LoadClimb."""

from __future__ import annotations

import os
from dataclasses import dataclass

from loadclimb._internal.errors import ConfigError


@dataclass(frozen=True)
class EngineConfig:
    """Transport policy for an escalation run.

    Attributes:
        connect_timeout: Seconds allowed to open the TCP connection.
        tls_handshake_timeout: Seconds allowed to obtain a ready connection,
            TLS handshake included.
        request_timeout: Overall deadline for one request, response headers
            included.
        connection_pool_size: Maximum simultaneous connections. 0 means
            unlimited.
    """

    connect_timeout: float = 5.0
    tls_handshake_timeout: float = 5.0
    request_timeout: float = 1.0
    connection_pool_size: int = 0


def _positive_float(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        value = float(raw)
    except ValueError:
        msg = f"{name} must be a number, got: {raw!r}"
        raise ConfigError(msg) from None

    if value <= 0:
        msg = f"{name} must be positive, got: {value}"
        raise ConfigError(msg)
    return value


def load_config() -> EngineConfig:
    """Load configuration from environment variables with defaults.

    Environment variables:
        LOADCLIMB_CONNECT_TIMEOUT: Connect timeout in seconds (default: 5.0).
        LOADCLIMB_TLS_TIMEOUT: TLS handshake timeout in seconds (default: 5.0).
        LOADCLIMB_REQUEST_TIMEOUT: Per-request timeout in seconds (default: 1.0).
        LOADCLIMB_POOL_SIZE: Connection pool size, 0 for unlimited (default: 0).

    Returns:
        Populated EngineConfig instance.

    Raises:
        ConfigError: If an environment variable has an invalid value.
    """
    pool_size_str = os.environ.get("LOADCLIMB_POOL_SIZE", "0")

    try:
        pool_size = int(pool_size_str)
    except ValueError:
        msg = f"LOADCLIMB_POOL_SIZE must be an integer, got: {pool_size_str!r}"
        raise ConfigError(msg) from None

    if pool_size < 0:
        msg = f"LOADCLIMB_POOL_SIZE must be >= 0, got: {pool_size}"
        raise ConfigError(msg)

    return EngineConfig(
        connect_timeout=_positive_float("LOADCLIMB_CONNECT_TIMEOUT", "5.0"),
        tls_handshake_timeout=_positive_float("LOADCLIMB_TLS_TIMEOUT", "5.0"),
        request_timeout=_positive_float("LOADCLIMB_REQUEST_TIMEOUT", "1.0"),
        connection_pool_size=pool_size,
    )
