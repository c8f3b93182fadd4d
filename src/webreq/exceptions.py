"""Exception hierarchy for webreq.

All exceptions inherit from :class:`WebreqError` so callers can catch every
failure raised by the package with a single ``except`` clause, or pick out
the specific kind they care about.

Subclass hierarchy::

    WebreqError
    +-- InvalidArgumentError   (bad request configuration, raised before I/O)
    +-- RequestError           (transport failure or non-2xx status)
    +-- DecodeError            (body claimed a content type it failed to parse)
    +-- ConfigError            (no cache location, invalid WEBREQ_* setting)
"""

from __future__ import annotations

from typing import Any, Optional


class WebreqError(Exception):
    """Base exception for all webreq errors.

    Args:
        message: Human-readable error description.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArgumentError(WebreqError, ValueError):
    """Raised when a :class:`~webreq.client.request.WebRequest` is misconfigured.

    Always raised synchronously from ``send()`` before any network activity.
    """


class RequestError(WebreqError):
    """Raised on transport failures and non-2xx responses.

    Args:
        message: Error text -- the transport's error for network failures,
            or the response body for HTTP errors.
        status: HTTP status code, or ``None`` when no response was received.
        body: The decoded error body, when a response was received.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Any = None,
    ):
        super().__init__(message)
        self.status = status
        self.body = body

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        if not self.message:
            return f"HTTP {self.status}"
        return f"HTTP {self.status}: {self.message}"


class DecodeError(WebreqError):
    """Raised when a response body cannot be decoded for its content type."""


class ConfigError(WebreqError):
    """Raised for environment problems (no temp directory, invalid settings)."""
