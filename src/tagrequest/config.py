"""Configuration loading with XDG paths and precedence resolution.

This module builds the :class:`~tagrequest.models.ClientConfig` a
:class:`~tagrequest.client.Client` is wired with:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.tagrequest/`` on macOS and Windows. See :func:`get_config_dir`.
* **Config files** -- JSON documents deserialised into
  :class:`~tagrequest.models.ClientConfig` by :func:`load_config_file`.
* **Precedence resolution** -- :func:`resolve_config` merges explicit
  overrides, environment variables, the project-local file and the user
  file into the final effective configuration.

Nothing is ever written back; configuration is read-only at runtime.
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError

from tagrequest.exceptions import ConfigError
from tagrequest.models import ClientConfig

_APP_NAME = "tagrequest"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "tagrequest.json"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_config_dir() -> Path:
    """Return the user configuration directory.

    On Linux/BSD: ``$XDG_CONFIG_HOME/tagrequest/`` (default ``~/.config/tagrequest/``).
    On macOS/Windows: ``~/.tagrequest/``.

    The directory is not created; a missing directory simply means there is
    no user configuration.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_CONFIG_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".config"
        return base / _APP_NAME
    return Path.home() / f".{_APP_NAME}"


def user_config_path() -> Path:
    """Path of the user config file (it may not exist)."""
    return get_config_dir() / _CONFIG_FILENAME


# --- File loading ---


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config at {path}: expected a JSON object")
    return data


def load_config_file(path: Union[str, Path]) -> ClientConfig:
    """Load and validate a single config file.

    Args:
        path: Path to a JSON document matching :class:`~tagrequest.models.ClientConfig`.

    Returns:
        The deserialised configuration, with defaults for absent keys.

    Raises:
        ConfigError: If the file is missing, is not valid JSON, or fails
            Pydantic validation.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    return _validate(_read_json(path), source=str(path))


def _validate(data: dict[str, Any], source: str) -> ClientConfig:
    try:
        return ClientConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration ({source}): {exc}") from exc


# --- Environment ---


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"Environment variable {name} must be a boolean, got '{value}'")


def _parse_interval(name: str, value: str) -> Optional[int]:
    lowered = value.strip().lower()
    if lowered in ("", "none", "off"):
        return None
    try:
        return int(lowered)
    except ValueError:
        raise ConfigError(
            f"Environment variable {name} must be an integer (milliseconds), got '{value}'"
        ) from None


_ENV_VARS: dict[str, tuple[tuple[str, ...], Callable[[str, str], Any]]] = {
    "TAGREQUEST_VERBOSE": (("verbose",), _parse_bool),
    "TAGREQUEST_WITH_CREDENTIALS": (("with_credentials",), _parse_bool),
    "TAGREQUEST_BASE_URL": (("base_url",), lambda _name, value: value),
    "TAGREQUEST_TRANSPORT": (("transport",), lambda _name, value: value.strip().lower()),
    "TAGREQUEST_CACHE_FLUSH_INTERVAL": (("cache", "flush_interval_ms"), _parse_interval),
}


def load_env_config() -> dict[str, Any]:
    """Collect the ``TAGREQUEST_*`` environment variables as a partial config dict."""
    data: dict[str, Any] = {}
    for name, (keys, parse) in _ENV_VARS.items():
        raw = os.environ.get(name)
        if raw is None:
            continue
        target = data
        for key in keys[:-1]:
            target = target.setdefault(key, {})
        target[keys[-1]] = parse(name, raw)
    return data


# --- Precedence resolution ---


def _merge(base: dict[str, Any], layer: dict[str, Any]) -> dict[str, Any]:
    """Return *base* updated with *layer*, merging nested dicts key by key."""
    merged = dict(base)
    for key, value in layer.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def resolve_config(
    overrides: Optional[dict[str, Any]] = None,
    config_file: Optional[Union[str, Path]] = None,
) -> ClientConfig:
    """Resolve the effective client configuration.

    Precedence (high to low):
        1. Explicit *overrides* (e.g. CLI flags)
        2. Environment variables (``TAGREQUEST_VERBOSE``,
           ``TAGREQUEST_WITH_CREDENTIALS``, ``TAGREQUEST_BASE_URL``,
           ``TAGREQUEST_TRANSPORT``, ``TAGREQUEST_CACHE_FLUSH_INTERVAL``)
        3. Project config (``./tagrequest.json``, or *config_file* when given)
        4. User config (``~/.config/tagrequest/config.json``)
        5. Defaults

    Args:
        overrides: Partial config dict; nested ``cache`` keys merge with
            the lower layers instead of replacing them. Top-level ``None``
            values are ignored so unset CLI flags fall through.
        config_file: Explicit project config file. Unlike the implicit
            ``./tagrequest.json``, it must exist.

    Raises:
        ConfigError: If any layer is malformed or the merged result fails
            validation.
    """
    data: dict[str, Any] = {}

    # 4. User config
    user_path = user_config_path()
    if user_path.is_file():
        data = _merge(data, _read_json(user_path))

    # 3. Project config
    if config_file is not None:
        project_path = Path(config_file)
        if not project_path.is_file():
            raise ConfigError(f"Config file not found: {project_path}")
        data = _merge(data, _read_json(project_path))
    else:
        project_path = Path.cwd() / _PROJECT_CONFIG_FILENAME
        if project_path.is_file():
            data = _merge(data, _read_json(project_path))

    # 2. Environment
    data = _merge(data, load_env_config())

    # 1. Overrides (highest precedence)
    if overrides:
        data = _merge(data, {k: v for k, v in overrides.items() if v is not None})

    return _validate(data, source="resolved")
