"""
Configuration loader: reads nativelib.yml and NATIVELIB_* overrides.

File values are validated against the pydantic ``Settings`` schema;
environment variables win over the file.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import ValidationError

from native_loader.core.models.settings import DEFAULT_LEFTOVER_MIN_AGE_MS, Settings

logger = logging.getLogger(__name__)

# Default config filename
SETTINGS_FILE = "nativelib.yml"

ENV_TMPDIR = "NATIVELIB_TMPDIR"
ENV_LEFTOVER_MIN_AGE = "NATIVELIB_LEFTOVER_MIN_AGE_MS"
ENV_SYSINFO = "NATIVELIB_SYSINFO"
ENV_MODE = "NATIVELIB_MODE"
ENV_CONTEXT_LABEL = "NATIVELIB_CONTEXT_LABEL"


class ConfigError(Exception):
    """Raised when loader configuration is invalid or unreadable."""


def find_settings_file(start_dir: Path | None = None) -> Path | None:
    """Search for nativelib.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to nativelib.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / SETTINGS_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def _read_file(path: Path) -> dict:
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading loader settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The YAML may wrap everything under a "nativelib" key or be flat
    section = data.get("nativelib", data)
    if not isinstance(section, dict):
        raise ConfigError(f"Expected a mapping under 'nativelib' in {path}")
    return dict(section)


def _apply_env(data: dict, env: Mapping[str, str]) -> dict:
    if env.get(ENV_TMPDIR):
        data["tmp_dir"] = env[ENV_TMPDIR]
    if env.get(ENV_SYSINFO):
        data["sysinfo"] = env[ENV_SYSINFO]
    if env.get(ENV_MODE):
        data["mode"] = env[ENV_MODE]
    if env.get(ENV_CONTEXT_LABEL):
        data["context_label"] = env[ENV_CONTEXT_LABEL]

    raw_age = env.get(ENV_LEFTOVER_MIN_AGE)
    if raw_age:
        try:
            data["leftover_min_age_ms"] = int(raw_age)
        except ValueError:
            logger.warning(
                "Ignoring %s=%r (not an integer), using %d",
                ENV_LEFTOVER_MIN_AGE,
                raw_age,
                data.get("leftover_min_age_ms", DEFAULT_LEFTOVER_MIN_AGE_MS),
            )
    return data


def load_settings(
    path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> Settings:
    """Load and validate loader settings.

    Args:
        path: Explicit path to nativelib.yml. If None, searches upward and
            falls back to defaults when no file exists.
        env: Environment mapping (default: ``os.environ``).

    Returns:
        Validated Settings model.

    Raises:
        ConfigError: If the file is unreadable or the values are invalid.
    """
    if env is None:
        env = os.environ

    if path is None:
        path = find_settings_file()

    data = _read_file(path) if path is not None else {}
    data = _apply_env(data, env)

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid loader configuration: {e}") from e

    logger.debug("Loader settings: mode=%s, tmp_dir=%s", settings.mode, settings.tmp_dir)
    return settings
