"""webreq -- a small convenience layer over :mod:`httpx`.

Build a request from a method, URL, query arguments, body or multipart
files, headers and basic auth; send it; get back a response whose body is
decoded by content type.  Responses can be cached on disk, keyed by the
final URL, with a fixed expiration.

Typical use::

    from webreq import FixedExpirationCache, WebRequest

    request = WebRequest.create("GET", "https://api.ipify.org?format=json", json=True)
    request.cache = FixedExpirationCache(10)
    ip = request.send().get_body()["ip"]

Modules:
    client: :class:`WebRequest` and :class:`WebResponse`.
    cache: :class:`ResponseCache`, :class:`NoCache`, :class:`FixedExpirationCache`.
    config: ``WEBREQ_*`` environment settings and cache location.
    exceptions: Error hierarchy rooted at :class:`WebreqError`.
    models: Pydantic models shared across the package.
    output: stderr diagnostics with Rich support.
"""

from webreq.cache import FixedExpirationCache, NoCache, ResponseCache
from webreq.client import WebRequest, WebResponse
from webreq.exceptions import (
    ConfigError,
    DecodeError,
    InvalidArgumentError,
    RequestError,
    WebreqError,
)
from webreq.models import HTTPMethod

__version__ = "0.1.0"

__all__ = [
    "WebRequest",
    "WebResponse",
    "HTTPMethod",
    "ResponseCache",
    "NoCache",
    "FixedExpirationCache",
    "WebreqError",
    "InvalidArgumentError",
    "RequestError",
    "DecodeError",
    "ConfigError",
]
