"""On-disk response caching for webreq.

This package provides :class:`ResponseCache`, the store a
:class:`~webreq.client.request.WebRequest` consults before touching the
network, and its two variants:

* :class:`NoCache` -- the default; never hits, never writes.
* :class:`FixedExpirationCache` -- entries stay valid for a fixed number of
  seconds after being written.

Entries are files named ``<sha256(final url)>.webcache`` in the system temp
directory (or ``$WEBREQ_CACHE_DIR``).
"""

from webreq.cache.cache import FixedExpirationCache, NoCache, ResponseCache

__all__ = ["ResponseCache", "NoCache", "FixedExpirationCache"]
