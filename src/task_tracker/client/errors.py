from __future__ import annotations

from typing import Any, Optional


class TaskClientError(Exception):
    """
    Base class for every failure surfaced by the task client.

    Attributes:
        message: Human readable message (the server's 'error' field when available).
        status: HTTP status code, or 0 when no response was received.
        details: Extra information, e.g. the server's field-level issues.
    """

    def __init__(self, message: str, status: int = 0, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.details = details

    @property
    def retryable(self) -> bool:
        return False


class ValidationError(TaskClientError):
    """Input failed the client schema, or the server answered 400. Never retried."""


class NotFoundError(TaskClientError):
    """The targeted task does not exist."""


class NetworkError(TaskClientError):
    """No response was received from the server."""

    @property
    def retryable(self) -> bool:
        return True


class ServerError(TaskClientError):
    """The server answered with a 5xx or an otherwise unexpected status."""

    @property
    def retryable(self) -> bool:
        return True


# PUBLIC_INTERFACE
def error_for_status(status: int, message: str, details: Optional[Any] = None) -> TaskClientError:
    """Map an unsuccessful HTTP status onto the client error taxonomy."""
    if status == 400 or status == 422:
        return ValidationError(message, status, details)
    if status == 404:
        return NotFoundError(message, status, details)
    return ServerError(message, status, details)
