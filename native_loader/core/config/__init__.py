"""Loader configuration: nativelib.yml + NATIVELIB_* environment."""

from native_loader.core.config.loader import ConfigError, find_settings_file, load_settings

__all__ = ["ConfigError", "find_settings_file", "load_settings"]
