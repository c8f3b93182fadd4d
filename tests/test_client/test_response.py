"""Tests for WebResponse header parsing and lazy body decoding."""

from __future__ import annotations

import xml.etree.ElementTree as ET

import httpx
import pytest

from webreq.client.response import WebResponse, parse_header_block
from webreq.exceptions import DecodeError
from webreq.models import CachedResponse


def _json_response(body: bytes, content_type: str = "application/json") -> WebResponse:
    return WebResponse(200, {"Content-Type": content_type}, body)


# ---------------------------------------------------------------------------
# Header block parsing
# ---------------------------------------------------------------------------


class TestParseHeaderBlock:
    def test_skips_status_and_blank_lines(self) -> None:
        block = "HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\nX-Id: 7\r\n\r\n"
        assert parse_header_block(block) == {"content-type": "text/plain", "x-id": "7"}

    def test_names_are_lowercased(self) -> None:
        assert parse_header_block("X-Request-ID: abc") == {"x-request-id": "abc"}

    def test_last_duplicate_wins(self) -> None:
        block = "Set-Cookie: a=1\r\nSet-Cookie: b=2"
        assert parse_header_block(block) == {"set-cookie": "b=2"}

    def test_splits_on_first_separator_only(self) -> None:
        headers = parse_header_block("Link: <https://a.example>: rel=next")
        assert headers["link"] == "<https://a.example>: rel=next"

    def test_multiple_status_blocks(self) -> None:
        """A 100 Continue preamble or redirect chain parses as one header set."""
        block = (
            "HTTP/1.1 100 Continue\r\n\r\n"
            "HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\n"
        )
        assert parse_header_block(block) == {"content-length": "2"}

    def test_accepts_bytes(self) -> None:
        assert parse_header_block(b"HTTP/2 204\r\nServer: x\r\n") == {"server": "x"}


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_from_raw_slices_headers_and_body(self) -> None:
        header = b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\n\r\n"
        raw = header + b"hello"
        response = WebResponse.from_raw(raw, 200, len(header))
        assert response.status == 200
        assert response.get_header("content-type") == "text/plain"
        assert response.raw_body == b"hello"

    def test_from_httpx(self) -> None:
        raw = httpx.Response(
            201,
            headers=[("Content-Type", "application/json"), ("X-Trace", "t1")],
            content=b'{"id": 5}',
        )
        response = WebResponse.from_httpx(raw)
        assert response.status == 201
        assert response.headers["x-trace"] == "t1"
        assert response.get_body() == {"id": 5}

    def test_headers_returns_copy(self) -> None:
        response = WebResponse(200, {"A": "1"})
        response.headers["a"] = "changed"
        assert response.get_header("a") == "1"


# ---------------------------------------------------------------------------
# Header lookup
# ---------------------------------------------------------------------------


class TestGetHeader:
    def test_case_insensitive(self) -> None:
        response = WebResponse(200, {"Content-Type": "text/html"})
        assert response.get_header("CONTENT-TYPE") == "text/html"
        assert response.get_header("content-type") == "text/html"

    def test_missing_returns_none(self) -> None:
        assert WebResponse(200).get_header("x-missing") is None

    def test_missing_returns_default(self) -> None:
        assert WebResponse(200).get_header("x-missing", "fallback") == "fallback"


# ---------------------------------------------------------------------------
# Body decoding
# ---------------------------------------------------------------------------


class TestDecodeJSON:
    def test_decodes_object(self) -> None:
        response = _json_response(b'{"ip":"1.2.3.4"}')
        assert response.get_body() == {"ip": "1.2.3.4"}

    def test_content_type_with_charset(self) -> None:
        response = _json_response(b"[1, 2]", "application/json; charset=utf-8")
        assert response.get_body() == [1, 2]

    def test_malformed_raises_decode_error(self) -> None:
        response = _json_response(b'{"ip":')
        with pytest.raises(DecodeError, match="JSON decode failed"):
            response.get_body()
        assert not response.is_decoded

    def test_invalid_utf8_raises_decode_error(self) -> None:
        with pytest.raises(DecodeError):
            _json_response(b'{"a": "\xff"}').get_body()

    def test_json_null_is_none(self) -> None:
        response = _json_response(b"null")
        assert response.get_body() is None
        assert response.is_decoded

    def test_big_integers_become_strings(self) -> None:
        response = _json_response(b'{"small": 42, "big": 123456789012345678901234567890}')
        body = response.get_body()
        assert body["small"] == 42
        assert body["big"] == "123456789012345678901234567890"

    def test_int64_bounds_stay_integers(self) -> None:
        body = _json_response(b"[9223372036854775807, -9223372036854775808]").get_body()
        assert body == [9223372036854775807, -9223372036854775808]

    def test_content_type_match_is_case_sensitive(self) -> None:
        response = _json_response(b'{"a": 1}', "Application/JSON")
        assert response.get_body() == b'{"a": 1}'


class TestDecodeXML:
    @pytest.mark.parametrize("content_type", ["application/xml", "text/xml; charset=utf-8"])
    def test_decodes_document(self, content_type: str) -> None:
        response = WebResponse(200, {"content-type": content_type}, b"<root><item>a</item></root>")
        document = response.get_body()
        assert isinstance(document, ET.ElementTree)
        assert document.getroot().tag == "root"
        assert document.find("item").text == "a"

    def test_malformed_raises_decode_error(self) -> None:
        response = WebResponse(200, {"content-type": "application/xml"}, b"<root>")
        with pytest.raises(DecodeError, match="XML decode failed"):
            response.get_body()


class TestDecodePassthrough:
    def test_no_content_type_returns_raw(self) -> None:
        assert WebResponse(200, {}, b'{"a": 1}').get_body() == b'{"a": 1}'

    def test_empty_body_returns_raw(self) -> None:
        assert _json_response(b"").get_body() == b""

    def test_other_type_returns_raw(self) -> None:
        response = WebResponse(200, {"content-type": "image/png"}, b"\x89PNG\r\n")
        assert response.get_body() == b"\x89PNG\r\n"


class TestMemoization:
    def test_decodes_once(self, monkeypatch: pytest.MonkeyPatch) -> None:
        response = _json_response(b'{"a": 1}')
        calls = []
        original = response._decode_body

        def counting():
            calls.append(1)
            return original()

        monkeypatch.setattr(response, "_decode_body", counting)
        first = response.get_body()
        second = response.get_body()
        assert first is second
        assert len(calls) == 1

    def test_is_decoded_flag(self) -> None:
        response = _json_response(b"{}")
        assert not response.is_decoded
        response.get_body()
        assert response.is_decoded


# ---------------------------------------------------------------------------
# Cache records
# ---------------------------------------------------------------------------


class TestRecords:
    def test_to_record(self) -> None:
        response = _json_response(b'{"a": 1}')
        record = response.to_record()
        assert record == CachedResponse(
            status=200,
            headers={"content-type": "application/json"},
            body=b'{"a": 1}',
            is_decoded=False,
        )

    def test_from_record_restores_decoded_state(self) -> None:
        record = CachedResponse(
            status=200,
            headers={"content-type": "application/json"},
            body=b'{"a": 1}',
            is_decoded=True,
        )
        response = WebResponse.from_record(record)
        assert response.is_decoded
        assert response.get_body() == {"a": 1}

    def test_text_replaces_invalid_bytes(self) -> None:
        assert WebResponse(200, {}, b"ok\xff").text == "ok\ufffd"
