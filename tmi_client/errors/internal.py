"""Centralized internal error hierarchy.

These exceptions provide semantic categories for the chat session and the
REST collaborators. Only raise these inside application/network boundaries:
never surface raw aiohttp / socket errors to callers; wrap them instead.

Classes:
  InternalError          – Base for all internal errors.
  TmiConnectionError     – Dial failures, duplicate connects, closed streams.
  HandshakeError         – Login sequence did not complete.
  NetworkError           – Transport issues talking to the REST API.
  OAuthError             – Token acquisition / refresh failures.
  ParsingError           – Response parsing / schema validation issues.
  APIError               – Non-2xx answer from the REST API.
"""

from __future__ import annotations

from collections.abc import Mapping


class InternalError(Exception):
    """Base class for all internal errors with metadata support.

    Attributes:
        data: Dictionary containing arbitrary structured context data.

    Args:
        message: Descriptive error message.
        data: Optional mapping of additional context data.
    """

    data: dict[str, object]

    def __init__(
        self, message: str, *, data: Mapping[str, object] | None = None
    ) -> None:
        super().__init__(message)
        # Copy into a plain dict to avoid unexpected mutations from caller.
        self.data = dict(data) if data else {}


class TmiConnectionError(InternalError):
    """Base class for errors on the chat connection itself."""


class ConnectionFailedError(TmiConnectionError):
    """Raised when the TCP dial to the chat server fails."""


class AlreadyConnectedError(TmiConnectionError):
    """Raised when connect() is called on a session that already owns a stream."""

    def __init__(self, message: str = "already connected") -> None:
        super().__init__(message)


class ConnectionClosedError(TmiConnectionError):
    """Raised when the peer closes the stream or a read fails mid-handshake."""


class HandshakeError(InternalError):
    """Base class for login sequence failures."""


class HandshakeTimeoutError(HandshakeError):
    """Raised when the login acknowledgments do not arrive before the deadline.

    Attributes:
        checklist: The acknowledgment bits collected before the deadline.
    """

    def __init__(self, message: str, *, checklist: int = 0) -> None:
        super().__init__(message, data={"checklist": checklist})
        self.checklist = checklist


class InvalidTokenError(HandshakeError):
    """Raised when the server rejects the supplied token or username."""

    def __init__(self, message: str = "invalid token") -> None:
        super().__init__(message)


class NetworkError(InternalError):
    """Exception raised for network or transport layer errors."""


class OAuthError(InternalError):
    """Exception raised for OAuth authentication or authorization failures."""


class ParsingError(InternalError):
    """Exception raised for response parsing or schema validation errors."""


class APIError(InternalError):
    """Exception raised when the REST API answers with a non-2xx status.

    Attributes:
        status: HTTP status code of the response.
        body: Raw response body, for diagnostics.
    """

    def __init__(self, message: str, *, status: int, body: str = "") -> None:
        super().__init__(message, data={"status": status, "body": body})
        self.status = status
        self.body = body


class ConfigError(InternalError):
    """Raised when the bot configuration cannot be loaded or validated."""


__all__ = [
    "InternalError",
    "TmiConnectionError",
    "ConnectionFailedError",
    "AlreadyConnectedError",
    "ConnectionClosedError",
    "HandshakeError",
    "HandshakeTimeoutError",
    "InvalidTokenError",
    "NetworkError",
    "OAuthError",
    "ParsingError",
    "APIError",
    "ConfigError",
]
