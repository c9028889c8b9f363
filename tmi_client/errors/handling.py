from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

import aiohttp

from ..logging_config import log_structured_error
from .internal import (
    APIError,
    HandshakeError,
    InternalError,
    NetworkError,
    OAuthError,
    ParsingError,
    TmiConnectionError,
)

T = TypeVar("T")


def categorize_error(error: Exception) -> str:
    """Map an exception onto the short category used by structured logs."""
    if isinstance(error, TmiConnectionError):
        return "connection"
    if isinstance(error, HandshakeError):
        return "handshake"
    if isinstance(error, NetworkError | OSError | ConnectionError):
        return "network"
    if isinstance(error, OAuthError):
        return "auth"
    if isinstance(error, ParsingError):
        return "parsing"
    if isinstance(error, APIError):
        return "api"
    if isinstance(error, InternalError):
        return "internal"
    return "unknown"


def log_error(message: str, error: Exception, context: dict | None = None) -> None:
    """Logs an error message with the associated exception details.

    Args:
        message: A descriptive message about the error context.
        error: The exception instance to be logged.
        context: Optional additional context data for debugging.
    """
    log_structured_error(
        error_type=categorize_error(error),
        message=f"{message}: {str(error)}",
        exception=error,
        context=context,
    )


async def handle_api_error(operation: Callable[[], Awaitable[T]], context: str) -> T:  # type: ignore[valid-type]
    """Run a REST operation and translate transport failures into internal errors.

    No retry is attempted: the caller decides what to do with the raised error.

    Args:
        operation: The async API operation to execute.
        context: Descriptive context for the operation (e.g., "Helix GET /users").

    Returns:
        The result of the operation if successful.

    Raises:
        NetworkError: Connectivity or timeout problems.
        ParsingError: The response body could not be decoded.
        InternalError: Any other aiohttp failure.
    """
    try:
        return await operation()
    except InternalError:
        raise
    except (aiohttp.ContentTypeError, ValueError) as e:
        log_error(f"Response parsing failed in {context}", e, {"operation": context})
        raise ParsingError(
            f"Could not decode response in {context}. Error: {str(e)}"
        ) from e
    except (aiohttp.ClientConnectionError, TimeoutError, OSError) as e:
        log_error(
            f"API operation failed in {context}",
            e,
            {"operation": context, "timestamp": time.time()},
        )
        raise NetworkError(
            f"Network connectivity issue in {context}. Check internet connection and DNS resolution. Error: {str(e)}"
        ) from e
    except aiohttp.ClientError as e:
        log_error(f"API operation failed in {context}", e, {"operation": context})
        raise InternalError(
            f"Unexpected error in {context}. Error: {str(e)}"
        ) from e


def raise_for_status(status: int, body: str, context: str) -> None:
    """Raise APIError for any non-2xx status."""
    if 200 <= status < 300:
        return
    logging.debug(f"Non-2xx response in {context}: status={status} body={body[:200]}")
    raise APIError(
        f"expected a 2xx status code in {context}, but got {status}: {body}",
        status=status,
        body=body,
    )
