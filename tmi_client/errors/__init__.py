"""Error hierarchy and error-handling helpers."""

from .internal import (  # noqa: F401
    AlreadyConnectedError,
    APIError,
    ConfigError,
    ConnectionClosedError,
    ConnectionFailedError,
    HandshakeError,
    HandshakeTimeoutError,
    InternalError,
    InvalidTokenError,
    NetworkError,
    OAuthError,
    ParsingError,
    TmiConnectionError,
)

__all__ = [
    "AlreadyConnectedError",
    "APIError",
    "ConfigError",
    "ConnectionClosedError",
    "ConnectionFailedError",
    "HandshakeError",
    "HandshakeTimeoutError",
    "InternalError",
    "InvalidTokenError",
    "NetworkError",
    "OAuthError",
    "ParsingError",
    "TmiConnectionError",
]
