"""Request builder and executor.

:class:`WebRequest` collects everything needed for one HTTP call -- method,
URL, query arguments, body or multipart files, headers, basic auth,
timeouts -- and :meth:`WebRequest.send` turns it into a
:class:`~webreq.client.response.WebResponse`:

1. **Validate** the configuration (:class:`~webreq.exceptions.InvalidArgumentError`).
2. **Resolve the final URL** from ``url`` plus ``query_string`` or ``args``.
3. **Consult the cache** -- a hit is returned as-is.
4. **Execute** through :class:`httpx.Client`.  PUT and PATCH go out as POST
   with an ``X-HTTP-Method-Override`` header, so the server must honour
   that header.
5. **Raise** :class:`~webreq.exceptions.RequestError` on transport failure
   or a non-2xx status.
6. **Store** the response in the cache and return it.

Example::

    from webreq import FixedExpirationCache, WebRequest

    request = WebRequest.create("GET", "https://api.ipify.org", args={"format": "json"})
    request.json = True
    request.cache = FixedExpirationCache(10)
    print(request.send().get_body()["ip"])
"""

from __future__ import annotations

import json as json_mod
import os
import time
import xml.etree.ElementTree as ET
from contextlib import ExitStack
from typing import Any, Mapping, Optional, Union
from urllib.parse import quote_plus

import httpx

from webreq.cache import NoCache, ResponseCache
from webreq.client.response import WebResponse
from webreq.config import load_settings
from webreq.exceptions import DecodeError, InvalidArgumentError, RequestError
from webreq.models import BODY_METHODS, OVERRIDE_METHODS, HTTPMethod, Settings
from webreq.output import get_output

METHOD_OVERRIDE_HEADER = "X-HTTP-Method-Override"


def build_query_string(args: Optional[Mapping[str, Any]]) -> str:
    """Return ``?k1=v1&k2=v2`` for *args*, or ``""`` when there are none.

    Keys and values are form-encoded and keep their insertion order.
    """
    if not args:
        return ""
    pairs = [f"{quote_plus(str(k))}={quote_plus(str(v))}" for k, v in args.items()]
    return "?" + "&".join(pairs)


def _parse_header_line(line: str) -> tuple[str, str]:
    name, _, value = line.partition(":")
    return name.strip(), value.strip()


def _has_header(headers: list[tuple[str, str]], name: str) -> bool:
    lowered = name.lower()
    return any(existing.lower() == lowered for existing, _ in headers)


def _body_to_text(body: Any) -> str:
    """Render a decoded body as text for error messages."""
    if body is None:
        return ""
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        return body
    if isinstance(body, ET.ElementTree):
        return ET.tostring(body.getroot(), encoding="unicode")
    return json_mod.dumps(body)


class WebRequest:
    """A configurable HTTP request.

    All options are plain attributes and may be set after construction;
    they are validated when :meth:`send` is called.

    Args:
        method: HTTP verb, as :class:`~webreq.models.HTTPMethod` or string.
        url: Request URL without the query string.
        args: Query arguments, encoded in insertion order.  Mutually
            exclusive with *query_string*.
        query_string: A pre-encoded query string (without the ``?``).
        body: Raw request body.  Mutually exclusive with *files*.
        files: Multipart upload fields, ``{field name: local file path}``.
        headers: ``"Name: Value"`` header lines.
        json: Add ``Accept`` / ``Content-Type: application/json`` headers
            when the caller has not set them.
        cache: Cache consulted before the network.  Defaults to
            :class:`~webreq.cache.NoCache`.
        follow_redirects: Follow 3xx redirects.
        username: Basic auth user name.  Auth is sent only when set.
        password: Basic auth password.
        connect_timeout: Seconds to wait for a connection.
        execute_timeout: Seconds to wait for the exchange.
        debug: Log cache activity, errors and timings as info lines.
        verify_ssl: Verify TLS certificates.
        transport: Optional :class:`httpx.BaseTransport`, e.g. an
            :class:`httpx.MockTransport` in tests.
    """

    def __init__(
        self,
        method: Union[HTTPMethod, str] = HTTPMethod.GET,
        url: Optional[str] = None,
        args: Optional[Mapping[str, Any]] = None,
        query_string: Optional[str] = None,
        body: Optional[Union[bytes, str]] = None,
        files: Optional[Mapping[str, str]] = None,
        headers: Optional[list[str]] = None,
        json: bool = False,
        cache: Optional[ResponseCache] = None,
        follow_redirects: bool = True,
        username: Optional[str] = None,
        password: Optional[str] = None,
        connect_timeout: Optional[float] = None,
        execute_timeout: Optional[float] = None,
        debug: bool = False,
        verify_ssl: bool = True,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.method = method
        self.url = url
        self.args = args if args is not None else {}
        self.query_string = query_string
        self.body = body
        self.files = files if files is not None else {}
        self.headers = list(headers) if headers is not None else []
        self.json = json
        self.cache = cache if cache is not None else NoCache()
        self.follow_redirects = follow_redirects
        self.username = username
        self.password = password
        self.connect_timeout = connect_timeout
        self.execute_timeout = execute_timeout
        self.debug = debug
        self.verify_ssl = verify_ssl
        self.transport = transport
        self._final_url: Optional[str] = None

    # ------------------------------------------------------------------ #
    # Construction helpers
    # ------------------------------------------------------------------ #

    @classmethod
    def create(cls, method: Union[HTTPMethod, str], url: str, **options: Any) -> WebRequest:
        """Create a request for *method* and *url*; *options* set attributes."""
        return cls(method, url, **options)

    @classmethod
    def create_and_send(cls, method: Union[HTTPMethod, str], url: str, **options: Any) -> Any:
        """Create and send a request, returning the decoded response body."""
        return cls.create(method, url, **options).send().get_body()

    @classmethod
    def from_settings(
        cls,
        method: Union[HTTPMethod, str],
        url: str,
        settings: Optional[Settings] = None,
        **options: Any,
    ) -> WebRequest:
        """Create a request whose timeouts and debug flag come from *settings*.

        *settings* defaults to :func:`~webreq.config.load_settings`, i.e.
        the ``WEBREQ_*`` environment variables.  Explicit *options* win.
        ``settings.cache_dir`` is not a request option: caches built without
        a directory resolve it through :func:`~webreq.config.get_cache_dir`.
        """
        if settings is None:
            settings = load_settings()
        defaults: dict[str, Any] = {
            "connect_timeout": settings.connect_timeout,
            "execute_timeout": settings.execute_timeout,
            "debug": settings.debug,
        }
        defaults.update(options)
        return cls(method, url, **defaults)

    def add_header(self, name: str, value: str) -> None:
        """Append a ``Name: Value`` header line."""
        self.headers.append(f"{name}: {value}")

    @property
    def final_url(self) -> Optional[str]:
        """The URL including its query string, set by :meth:`send`."""
        return self._final_url

    # ------------------------------------------------------------------ #
    # Sending
    # ------------------------------------------------------------------ #

    def send(self) -> WebResponse:
        """Send the request, consulting the cache first.

        Returns:
            The response -- from the cache on a hit, otherwise from the
            server (and then stored in the cache).

        Raises:
            InvalidArgumentError: The request is misconfigured.  Nothing was
                sent.
            RequestError: The transport failed, or the server answered with
                a status outside 200-299.
            ConfigError: The cache has no usable storage directory.
        """
        method = self._validate()
        self._final_url = self.url + self._query_suffix()
        cache_name = type(self.cache).__name__

        response = self.cache.get_from_cache(self._final_url)
        if response is not None:
            self._log(f"WebRequest: {cache_name}: Cache HIT: {self._final_url}")
            return response

        self._log(f"WebRequest: {cache_name}: Cache MISS: {self._final_url}")
        response = self._execute(method)
        self.cache.save_to_cache(self._final_url, response)
        return response

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _validate(self) -> HTTPMethod:
        """Check the request configuration and return the resolved method."""
        if not self.method:
            raise InvalidArgumentError("method is required")
        try:
            method = HTTPMethod(str(getattr(self.method, "value", self.method)).upper())
        except ValueError:
            raise InvalidArgumentError(f"unsupported method: {self.method!r}") from None

        if not self.url:
            raise InvalidArgumentError("url is required")
        if not isinstance(self.url, str):
            raise InvalidArgumentError("url must be a string")

        if self.args and not isinstance(self.args, Mapping):
            raise InvalidArgumentError("args must be a mapping")
        if self.files and not isinstance(self.files, Mapping):
            raise InvalidArgumentError("files must be a mapping")
        if not isinstance(self.headers, (list, tuple)):
            raise InvalidArgumentError('headers must be a list of "Name: Value" strings')
        for line in self.headers:
            if not isinstance(line, str):
                raise InvalidArgumentError(f"header must be a string, got {line!r}")
            if not line.isascii():
                raise InvalidArgumentError(f"header must be ASCII: {line!r}")

        if self.body and self.files:
            raise InvalidArgumentError("body and files are mutually exclusive")
        if self.args and self.query_string:
            raise InvalidArgumentError("args and query_string are mutually exclusive")
        if self.query_string and not isinstance(self.query_string, str):
            raise InvalidArgumentError("query_string must be a string")

        if not isinstance(self.cache, ResponseCache):
            raise InvalidArgumentError(
                "cache must be a ResponseCache implementation (use NoCache to disable)"
            )
        return method

    def _query_suffix(self) -> str:
        if self.query_string:
            return "?" + self.query_string
        return build_query_string(self.args)

    def _build_headers(self, method: HTTPMethod, sends_files: bool) -> list[tuple[str, str]]:
        headers = [_parse_header_line(line) for line in self.headers]

        if method in OVERRIDE_METHODS:
            headers.append((METHOD_OVERRIDE_HEADER, method.value))
        if self.json and not sends_files and self.body and method in BODY_METHODS:
            if not _has_header(headers, "Content-Type"):
                headers.append(("Content-Type", "application/json"))
        if self.json and not _has_header(headers, "Accept"):
            headers.append(("Accept", "application/json"))
        if sends_files:
            # An empty Expect stops servers answering multipart uploads with
            # "100 Continue" ahead of the real response.
            headers.append(("Expect", ""))
        return headers

    def _timeout(self) -> Optional[httpx.Timeout]:
        if self.connect_timeout is None and self.execute_timeout is None:
            return None
        connect = self.connect_timeout if self.connect_timeout is not None else self.execute_timeout
        return httpx.Timeout(self.execute_timeout, connect=connect)

    def _open_files(self, stack: ExitStack) -> dict[str, tuple[str, Any]]:
        files: dict[str, tuple[str, Any]] = {}
        for field, path in self.files.items():
            try:
                handle = stack.enter_context(open(path, "rb"))
            except OSError as exc:
                raise RequestError(
                    f"WebRequest to {self._final_url} failed: cannot read {path}: {exc}"
                ) from exc
            files[field] = (os.path.basename(path), handle)
        return files

    def _execute(self, method: HTTPMethod) -> WebResponse:
        """Send the request over the network and wrap the result."""
        sends_files = method in BODY_METHODS and bool(self.files)
        wire_method = "POST" if method in OVERRIDE_METHODS else method.value

        request_kwargs: dict[str, Any] = {
            "headers": self._build_headers(method, sends_files),
        }
        if self.username:
            request_kwargs["auth"] = (self.username, self.password or "")

        client_kwargs: dict[str, Any] = {
            "follow_redirects": self.follow_redirects,
            "verify": self.verify_ssl,
            "transport": self.transport,
        }
        timeout = self._timeout()
        if timeout is not None:
            client_kwargs["timeout"] = timeout

        with ExitStack() as stack:
            if sends_files:
                request_kwargs["files"] = self._open_files(stack)
            elif self.body and method in BODY_METHODS:
                request_kwargs["content"] = self.body

            client = stack.enter_context(httpx.Client(**client_kwargs))
            started = time.perf_counter()
            try:
                raw = client.request(wire_method, self._final_url, **request_kwargs)
            except (httpx.RequestError, httpx.InvalidURL) as exc:
                reason = str(exc) or "the transport did not report an error"
                message = f"WebRequest to {self._final_url} failed: {reason}"
                self._log(message, is_error=True)
                raise RequestError(message) from exc
            elapsed = time.perf_counter() - started

        response = WebResponse.from_httpx(raw)
        if not response.is_success:
            self._raise_for_status(response)

        self._log(
            f"WebRequest to {self._final_url} succeeded with status {response.status} "
            f"(took {elapsed:.3f} seconds)"
        )
        return response

    def _raise_for_status(self, response: WebResponse) -> None:
        """Raise :class:`RequestError` carrying the decoded error body."""
        try:
            body = response.get_body()
        except DecodeError:
            body = response.text

        message = _body_to_text(body)
        log_message = f"WebRequest error {response.status}"
        if message:
            log_message += f": {message}"
        self._log(log_message, is_error=True)

        raise RequestError(message, status=response.status, body=body)

    def _log(self, message: str, is_error: bool = False) -> None:
        output = get_output()
        if not self.debug:
            output.debug(message)
        elif is_error:
            output.error(message)
        else:
            output.info(message)

    def __repr__(self) -> str:
        return f"<WebRequest {getattr(self.method, 'value', self.method)} {self.url}>"
