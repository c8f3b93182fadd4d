"""Pydantic models and enums shared across webreq modules.

**Request settings** -- :class:`HTTPMethod` and :class:`Settings`, the
defaults resolved from ``WEBREQ_*`` environment variables by
:func:`~webreq.config.load_settings`.

**Cache records** -- :class:`CachedResponse`, the on-disk form of a
:class:`~webreq.client.response.WebResponse` written by
:class:`~webreq.cache.ResponseCache`.
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class HTTPMethod(str, enum.Enum):
    """HTTP methods a :class:`~webreq.client.request.WebRequest` can send."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


BODY_METHODS = frozenset({HTTPMethod.POST, HTTPMethod.PUT, HTTPMethod.PATCH})
"""Methods whose requests carry a body or multipart files."""

OVERRIDE_METHODS = frozenset({HTTPMethod.PUT, HTTPMethod.PATCH})
"""Methods sent as POST with an ``X-HTTP-Method-Override`` header."""


class Settings(BaseModel):
    """Process-wide request defaults read from the environment.

    See Also:
        :func:`~webreq.config.load_settings` for the variable names.
    """

    connect_timeout: Optional[float] = Field(
        default=None, description="Seconds to wait for a connection (None = transport default)"
    )
    execute_timeout: Optional[float] = Field(
        default=None, description="Seconds to wait for the exchange (None = transport default)"
    )
    debug: bool = Field(default=False, description="Log cache activity and request timing")
    cache_dir: Optional[str] = Field(
        default=None, description="Directory for .webcache files (None = system temp dir)"
    )


class CachedResponse(BaseModel):
    """Serialized form of a response stored in a ``.webcache`` file.

    The raw body is base64-encoded in JSON so binary payloads survive the
    round trip unchanged.
    """

    model_config = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")

    status: int
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""
    is_decoded: bool = False
