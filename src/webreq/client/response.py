"""HTTP response entity with lazy, content-type driven body decoding.

A :class:`WebResponse` holds the status code, the response headers (keyed
by lowercase name) and the raw body bytes.  :meth:`WebResponse.get_body`
decodes the body on first access and memoizes the result:

* ``application/json`` -- parsed with :mod:`json`.  Integers that do not
  fit a signed 64-bit value are returned as strings.
* ``application/xml`` / ``text/xml`` -- parsed into an
  :class:`xml.etree.ElementTree.ElementTree`.
* anything else, a missing Content-Type, or an empty body -- the raw bytes,
  unchanged.
"""

from __future__ import annotations

import json
import re
import xml.etree.ElementTree as ET
from typing import Any, Optional, Union

import httpx

from webreq.exceptions import DecodeError
from webreq.models import CachedResponse

_STATUS_LINE = re.compile(r"^HTTP/")
_JSON_TYPE = re.compile(r"^application/json")
_XML_TYPE = re.compile(r"^(application|text)/xml")

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_NOT_DECODED = object()


def parse_header_block(block: Union[str, bytes]) -> dict[str, str]:
    """Parse a raw HTTP header block into a ``{lowercase-name: value}`` dict.

    Blank lines and status lines (``HTTP/1.1 200 OK``) are skipped, so a
    block holding several responses (redirects, ``100 Continue``) parses
    cleanly.  When a header repeats, the last occurrence wins.
    """
    if isinstance(block, bytes):
        block = block.decode("iso-8859-1")

    headers: dict[str, str] = {}
    for line in block.splitlines():
        if not line or _STATUS_LINE.match(line):
            continue
        name, _, value = line.partition(": ")
        headers[name.lower()] = value
    return headers


def _parse_int(literal: str) -> Union[int, str]:
    value = int(literal)
    if value < _INT64_MIN or value > _INT64_MAX:
        return literal
    return value


class WebResponse:
    """A received HTTP response.

    Args:
        status: HTTP status code.
        headers: Header mapping.  Names are lowercased on the way in.
        body: Raw body bytes.
    """

    def __init__(
        self,
        status: int,
        headers: Optional[dict[str, str]] = None,
        body: bytes = b"",
    ) -> None:
        self._status = status
        self._headers = {k.lower(): v for k, v in (headers or {}).items()}
        self._body = body
        self._decoded: Any = _NOT_DECODED

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #

    @classmethod
    def from_raw(cls, raw: bytes, status: int, header_size: int) -> WebResponse:
        """Build a response from a raw byte stream of headers followed by body.

        Args:
            raw: The full response as received, header block first.
            status: HTTP status code reported by the transport.
            header_size: Length in bytes of the header block within *raw*.
        """
        return cls(status, parse_header_block(raw[:header_size]), raw[header_size:])

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> WebResponse:
        """Build a response from a completed :class:`httpx.Response`."""
        lines = [f"{response.http_version} {response.status_code} {response.reason_phrase}"]
        lines.extend(f"{name}: {value}" for name, value in response.headers.multi_items())
        return cls(response.status_code, parse_header_block("\r\n".join(lines)), response.content)

    @classmethod
    def from_record(cls, record: CachedResponse) -> WebResponse:
        """Rebuild a response from its cache record.

        A record that was decoded before it was stored is decoded again so
        the restored response is in the same state.
        """
        response = cls(record.status, record.headers, record.body)
        if record.is_decoded:
            response.get_body()
        return response

    def to_record(self) -> CachedResponse:
        """Return the cache record for this response."""
        return CachedResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
            is_decoded=self.is_decoded,
        )

    # ------------------------------------------------------------------ #
    # Accessors
    # ------------------------------------------------------------------ #

    @property
    def status(self) -> int:
        return self._status

    @property
    def headers(self) -> dict[str, str]:
        """A copy of the header mapping, keyed by lowercase name."""
        return dict(self._headers)

    @property
    def raw_body(self) -> bytes:
        return self._body

    @property
    def text(self) -> str:
        """The raw body as UTF-8 text, with undecodable bytes replaced."""
        return self._body.decode("utf-8", errors="replace")

    @property
    def is_decoded(self) -> bool:
        """Whether :meth:`get_body` has already decoded the body."""
        return self._decoded is not _NOT_DECODED

    @property
    def is_success(self) -> bool:
        return 200 <= self._status <= 299

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup.

        Returns *default* (``None`` unless given) when the header is absent.
        """
        return self._headers.get(name.lower(), default)

    def get_body(self) -> Any:
        """Return the decoded body, decoding it on first access.

        Raises:
            DecodeError: If the body does not parse as its content type.
                The next call retries the decode.
        """
        if self._decoded is _NOT_DECODED:
            self._decoded = self._decode_body()
        return self._decoded

    # ------------------------------------------------------------------ #
    # Decoding
    # ------------------------------------------------------------------ #

    def _decode_body(self) -> Any:
        content_type = self._headers.get("content-type")
        if not content_type or not self._body:
            return self._body

        if _JSON_TYPE.match(content_type):
            try:
                return json.loads(self._body, parse_int=_parse_int)
            except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                raise DecodeError(f"JSON decode failed: {exc}") from exc

        if _XML_TYPE.match(content_type):
            try:
                return ET.ElementTree(ET.fromstring(self._body))
            except ET.ParseError as exc:
                raise DecodeError(f"XML decode failed: {exc}") from exc

        return self._body

    def __repr__(self) -> str:
        content_type = self._headers.get("content-type", "-")
        return f"<WebResponse [{self._status}] {content_type} {len(self._body)} bytes>"
