"""Runtime configuration model for rackstore.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Mapping, cast

import yaml

from core.constants import (
    DEFAULT_BACKEND,
    DEFAULT_DATA_ROOT,
    DEFAULT_WRITE_DELAY_MS,
    MEDIA_DIR_NAME,
    SUPPORTED_BACKENDS,
)
from core.errors import RackstoreConfigError

_CONFIG_FILE_KEYS = ("data_root", "backend", "write_delay_ms", "pictures_root", "media_root")


@dataclass(frozen=True)
class RackstoreConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Directory holding the catalog document and KV database.
        backend: Persistence backend name, ``file`` or ``kv``.
        write_delay_ms: Debounce window for coalesced KV writes.
        pictures_root: Optional folder scanned for ``@pp/`` picture refs.
        media_root: Folder that ``@media/`` picture refs resolve against.
    """

    data_root: Path
    backend: str
    write_delay_ms: int
    pictures_root: Path | None
    media_root: Path

    @property
    def write_delay_seconds(self) -> float:
        return self.write_delay_ms / 1000.0

    @classmethod
    def from_env(cls) -> "RackstoreConfig":
        """Build config from process environment variables.

        Values from an optional YAML file named by ``RACKSTORE_CONFIG_FILE``
        are used where the matching environment variable is unset.

        Returns:
            A validated config object.

        Raises:
            RackstoreConfigError: If environment or file values are invalid.
        """
        file_values = _load_config_file(os.getenv("RACKSTORE_CONFIG_FILE"))
        data_root_value = _setting("RACKSTORE_DATA_ROOT", file_values, "data_root")
        backend_value = _setting("RACKSTORE_BACKEND", file_values, "backend")
        delay_value = _setting("RACKSTORE_WRITE_DELAY_MS", file_values, "write_delay_ms")
        pictures_value = _setting("RACKSTORE_PICTURES_ROOT", file_values, "pictures_root")
        media_value = _setting("RACKSTORE_MEDIA_ROOT", file_values, "media_root")
        data_root = _resolve_path(data_root_value or str(DEFAULT_DATA_ROOT))
        return cls(
            data_root=data_root,
            backend=_parse_backend(backend_value or DEFAULT_BACKEND),
            write_delay_ms=_parse_write_delay(delay_value),
            pictures_root=_resolve_path(pictures_value) if pictures_value else None,
            media_root=_resolve_path(media_value) if media_value else data_root / MEDIA_DIR_NAME,
        )


def _setting(env_name: str, file_values: Mapping[str, str], file_key: str) -> str | None:
    env_value = os.getenv(env_name)
    if env_value:
        return env_value
    return file_values.get(file_key)


def _resolve_path(raw_value: str) -> Path:
    return Path(raw_value).expanduser().resolve()


def _load_config_file(raw_path: str | None) -> dict[str, str]:
    """Load optional YAML settings file.

    Args:
        raw_path: Path from ``RACKSTORE_CONFIG_FILE`` or None.

    Returns:
        Mapping of recognised keys to string values.

    Raises:
        RackstoreConfigError: If the file is missing, unreadable, or malformed.
    """
    if not raw_path:
        return {}
    config_file = _resolve_path(raw_path)
    try:
        payload = cast(object, yaml.safe_load(config_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise RackstoreConfigError(
            f"Failed to read config file at {config_file}: {error}. "
            "Fix RACKSTORE_CONFIG_FILE or unset it."
        ) from error
    except yaml.YAMLError as error:
        raise RackstoreConfigError(
            f"Failed to parse YAML config at {config_file}: {error}. Fix YAML syntax and retry."
        ) from error
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise RackstoreConfigError(
            f"Invalid config file at {config_file}: expected a mapping at top level, "
            f"got {type(payload).__name__}."
        )
    unknown_keys = sorted(str(key) for key in payload if key not in _CONFIG_FILE_KEYS)
    if unknown_keys:
        raise RackstoreConfigError(
            f"Unsupported config keys in {config_file}: {', '.join(unknown_keys)}. "
            f"Supported keys: {', '.join(_CONFIG_FILE_KEYS)}."
        )
    return {str(key): str(value) for key, value in payload.items() if value is not None}


def _parse_backend(raw_value: str) -> str:
    backend = raw_value.strip().lower()
    if backend not in SUPPORTED_BACKENDS:
        raise RackstoreConfigError(
            f"Invalid RACKSTORE_BACKEND value '{raw_value}'. "
            f"Supported values: {', '.join(SUPPORTED_BACKENDS)}."
        )
    return backend


def _parse_write_delay(raw_value: str | None) -> int:
    """Parse the write debounce window.

    Args:
        raw_value: Raw string from environment or config file.

    Returns:
        Non-negative delay in milliseconds.

    Raises:
        RackstoreConfigError: If value is not a non-negative integer.
    """
    if raw_value is None:
        return DEFAULT_WRITE_DELAY_MS
    try:
        delay_ms = int(raw_value)
    except ValueError as error:
        raise RackstoreConfigError(
            "Invalid RACKSTORE_WRITE_DELAY_MS value: "
            f"expected integer, got '{raw_value}'. "
            "Set RACKSTORE_WRITE_DELAY_MS to a number of milliseconds."
        ) from error
    if delay_ms < 0:
        raise RackstoreConfigError(
            f"Invalid RACKSTORE_WRITE_DELAY_MS value {delay_ms}: must be zero or greater."
        )
    return delay_ms
