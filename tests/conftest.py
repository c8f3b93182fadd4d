"""Shared test fixtures for webreq.

Provides fixtures for isolating the environment, pointing caches at a
temporary directory, managing the global output state, and building
mock transports.  These fixtures are automatically discovered by pytest.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import httpx
import pytest

from webreq.output import OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches a reference to sys.stderr at creation time.
    When capsys swaps the stream and the test finishes, that reference
    becomes stale, so a fresh manager is created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clear_webreq_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove WEBREQ_* variables that might leak in from the developer's shell."""
    for var in [
        "WEBREQ_CONNECT_TIMEOUT",
        "WEBREQ_EXECUTE_TIMEOUT",
        "WEBREQ_DEBUG",
        "WEBREQ_CACHE_DIR",
    ]:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """A private directory for .webcache files."""
    path = tmp_path / "webcache"
    path.mkdir()
    return path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def plain_output() -> OutputManager:
    """Install a colourless output manager without debug lines."""
    output = OutputManager(no_color=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def verbose_output() -> OutputManager:
    """Install a colourless output manager with debug lines enabled."""
    output = OutputManager(no_color=True, verbose=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Transport fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def recorded_requests() -> list[httpx.Request]:
    """Requests seen by :func:`mock_transport`, in order."""
    return []


@pytest.fixture
def mock_transport(
    recorded_requests: list[httpx.Request],
) -> Callable[..., httpx.MockTransport]:
    """Factory for an httpx.MockTransport that records every request.

    Call with a handler returning an :class:`httpx.Response`, or with the
    keyword arguments of a fixed response::

        transport = mock_transport(status_code=200, json={"ok": True})
    """

    def factory(handler=None, **response_kwargs) -> httpx.MockTransport:
        def wrapped(request: httpx.Request) -> httpx.Response:
            request.read()
            recorded_requests.append(request)
            if handler is not None:
                return handler(request)
            return httpx.Response(**{"status_code": 200, **response_kwargs})

        return httpx.MockTransport(wrapped)

    return factory
