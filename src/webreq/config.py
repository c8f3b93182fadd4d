"""Configuration: environment settings, cache location, and atomic writes.

* **Settings** -- :func:`load_settings` reads request defaults from
  ``WEBREQ_*`` environment variables into a
  :class:`~webreq.models.Settings` model.
* **Cache location** -- :func:`get_cache_dir` resolves where ``.webcache``
  files live: ``$WEBREQ_CACHE_DIR`` when set, otherwise the system temp
  directory.
* **Atomic writes** -- :func:`atomic_write` writes a file through a
  temp-file-then-rename so readers never observe a partially written
  cache entry.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Mapping, Optional

from pydantic import ValidationError

from webreq.exceptions import ConfigError
from webreq.models import Settings

ENV_CONNECT_TIMEOUT = "WEBREQ_CONNECT_TIMEOUT"
ENV_EXECUTE_TIMEOUT = "WEBREQ_EXECUTE_TIMEOUT"
ENV_DEBUG = "WEBREQ_DEBUG"
ENV_CACHE_DIR = "WEBREQ_CACHE_DIR"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


# --- Environment settings ---


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ConfigError(f"{name} must be a boolean (1/0, true/false, yes/no, on/off), got {value!r}")


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`~webreq.models.Settings` from environment variables.

    Recognised variables:

    * ``WEBREQ_CONNECT_TIMEOUT`` -- connect timeout in seconds (float).
    * ``WEBREQ_EXECUTE_TIMEOUT`` -- execute timeout in seconds (float).
    * ``WEBREQ_DEBUG`` -- ``1``/``true``/``yes``/``on`` enables debug logging.
    * ``WEBREQ_CACHE_DIR`` -- directory for cache files.

    Empty values are treated as unset.

    Args:
        environ: Mapping to read from.  Defaults to :data:`os.environ`.

    Raises:
        ConfigError: If a variable holds a value that cannot be parsed.
    """
    env = os.environ if environ is None else environ
    raw: dict[str, object] = {}

    for field, name in (
        ("connect_timeout", ENV_CONNECT_TIMEOUT),
        ("execute_timeout", ENV_EXECUTE_TIMEOUT),
    ):
        value = env.get(name, "").strip()
        if value:
            raw[field] = value

    debug = env.get(ENV_DEBUG)
    if debug is not None:
        raw["debug"] = _parse_bool(ENV_DEBUG, debug)

    cache_dir = env.get(ENV_CACHE_DIR, "").strip()
    if cache_dir:
        raw["cache_dir"] = cache_dir

    try:
        return Settings.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid WEBREQ_* environment setting: {exc}") from exc


# --- Cache location ---


def get_cache_dir(override: Optional[str | Path] = None) -> Path:
    """Return the directory that holds ``.webcache`` files.

    Resolution order: *override*, the ``cache_dir`` of :func:`load_settings`
    (``$WEBREQ_CACHE_DIR``), then the system temp directory.  Explicit
    directories are created if missing.

    Raises:
        ConfigError: If no usable directory can be resolved, or the
            ``WEBREQ_*`` settings cannot be parsed.
    """
    if override is None:
        override = load_settings().cache_dir

    if override is not None:
        path = Path(override)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigError(f"Unable to create cache directory {path}: {exc}") from exc
        return path

    try:
        temp_dir = tempfile.gettempdir()
    except FileNotFoundError as exc:
        raise ConfigError("Unable to get temp directory") from exc
    if not temp_dir:
        raise ConfigError("Unable to get temp directory")
    return Path(temp_dir)


# --- Atomic file writes ---


def atomic_write(path: Path, data: bytes) -> None:
    """Write *data* to *path* atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems.  On any failure the
    temp file is removed and the error re-raised.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise
