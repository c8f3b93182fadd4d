"""File-based response caches keyed by final request URL.

Each cached response lives in its own file,
``<cache dir>/<sha256(url)>.webcache``, holding the JSON form of a
:class:`~webreq.models.CachedResponse`.  The cache directory is the system
temp directory unless one is passed in or ``WEBREQ_CACHE_DIR`` is set (see
:func:`~webreq.config.get_cache_dir`).

Implementations decide freshness by overriding
:meth:`ResponseCache.is_in_cache`:

* :class:`NoCache` -- never hits and never writes.
* :class:`FixedExpirationCache` -- hits while the file is younger than a
  fixed maximum age.
"""

from __future__ import annotations

import hashlib
import os
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional

from pydantic import ValidationError

from webreq.config import atomic_write, get_cache_dir
from webreq.models import CachedResponse

if TYPE_CHECKING:
    from webreq.client.response import WebResponse

CACHE_FILE_SUFFIX = ".webcache"


class ResponseCache(ABC):
    """Base class for response caches.

    Args:
        cache_dir: Directory holding cache files.  Resolved lazily through
            :func:`~webreq.config.get_cache_dir` when ``None``.
    """

    def __init__(self, cache_dir: Optional[str | Path] = None) -> None:
        self._cache_dir = Path(cache_dir) if cache_dir is not None else None

    @abstractmethod
    def is_in_cache(self, url: str) -> bool:
        """Return whether *url* has a cache entry that is still valid."""

    def get_from_cache(self, url: str) -> Optional[WebResponse]:
        """Return the cached response for *url*, or ``None`` on a miss.

        An entry that vanished or cannot be parsed counts as a miss and is
        removed.
        """
        if not self.is_in_cache(url):
            return None

        path = self.cache_file_path(self.create_hash(url))
        try:
            return self.deserialize_response(path.read_bytes())
        except (FileNotFoundError, ValidationError):
            self.invalidate(url)
            return None

    def save_to_cache(self, url: str, response: WebResponse) -> None:
        """Store *response* as the entry for *url*, replacing any existing one."""
        data = self.serialize_response(response)
        path = self.cache_file_path(self.create_hash(url))
        atomic_write(path, data)

    def invalidate(self, url: str) -> None:
        """Remove the entry for *url*, if any."""
        self.cache_file_path(self.create_hash(url)).unlink(missing_ok=True)

    def serialize_response(self, response: WebResponse) -> bytes:
        """Serialize *response* for storage.  Override for a custom format."""
        return response.to_record().model_dump_json().encode("utf-8")

    def deserialize_response(self, data: bytes) -> WebResponse:
        """Inverse of :meth:`serialize_response`."""
        from webreq.client.response import WebResponse

        return WebResponse.from_record(CachedResponse.model_validate_json(data))

    def cache_file_path(self, key: str) -> Path:
        """Return the path of the cache file for hashed *key*.

        Raises:
            ConfigError: If no cache directory can be resolved.
        """
        directory = get_cache_dir(self._cache_dir)
        return directory / f"{key}{CACHE_FILE_SUFFIX}"

    @staticmethod
    def create_hash(url: str) -> str:
        """Return the cache key for *url*: its SHA-256 hex digest."""
        return hashlib.sha256(url.encode("utf-8")).hexdigest()

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class NoCache(ResponseCache):
    """A cache that stores nothing.  The default for every request."""

    def is_in_cache(self, url: str) -> bool:
        return False

    def save_to_cache(self, url: str, response: WebResponse) -> None:
        pass


class FixedExpirationCache(ResponseCache):
    """Cache whose entries expire a fixed number of seconds after being written.

    Entry age is measured from the cache file's modification time.

    Args:
        max_age_seconds: Maximum entry age.  ``0`` (or less) keeps entries
            forever once written.
        cache_dir: Directory holding cache files (see :class:`ResponseCache`).
        clock: Returns the current time as a Unix timestamp.

    Example::

        from webreq import FixedExpirationCache, WebRequest

        request = WebRequest.create("GET", "https://api.ipify.org?format=json")
        request.json = True
        request.cache = FixedExpirationCache(10)
        ip = request.send().get_body()["ip"]
    """

    def __init__(
        self,
        max_age_seconds: float,
        cache_dir: Optional[str | Path] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(cache_dir)
        self.max_age_seconds = max_age_seconds
        self._clock = clock

    def is_in_cache(self, url: str) -> bool:
        age = self.age_in_seconds(self.create_hash(url))
        if age is None:
            return False
        if self.max_age_seconds <= 0:
            return True
        return age < self.max_age_seconds

    def age_in_seconds(self, key: str, from_time: Optional[float] = None) -> Optional[float]:
        """Return the age of the entry for hashed *key*, or ``None`` if absent.

        Args:
            key: Hashed cache key (see :meth:`create_hash`).
            from_time: Timestamp to measure from.  Defaults to the clock.
        """
        if from_time is None:
            from_time = self._clock()

        try:
            mtime = os.path.getmtime(self.cache_file_path(key))
        except FileNotFoundError:
            return None
        return from_time - mtime

    def __repr__(self) -> str:
        return f"FixedExpirationCache(max_age_seconds={self.max_age_seconds})"
