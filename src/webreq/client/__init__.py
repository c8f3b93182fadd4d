"""HTTP request execution and response decoding.

Classes:
    :class:`WebRequest` -- builds, validates and sends one request through
    :mod:`httpx`, consulting a :class:`~webreq.cache.ResponseCache` first.
    :class:`WebResponse` -- status, lowercase-keyed headers, raw body and a
    lazily decoded body (JSON, XML, or raw bytes).

Example::

    from webreq.client import WebRequest

    body = WebRequest.create_and_send("GET", "https://api.example.com/users", json=True)
"""

from webreq.client.response import WebResponse, parse_header_block
from webreq.client.request import WebRequest, build_query_string

__all__ = ["WebRequest", "WebResponse", "build_query_string", "parse_header_block"]
