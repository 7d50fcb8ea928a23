"""
Tests for settings loading: nativelib.yml discovery, validation, env overrides.
"""

from pathlib import Path

import pytest

from native_loader.core.config import ConfigError, find_settings_file, load_settings
from native_loader.core.models.settings import DEFAULT_LEFTOVER_MIN_AGE_MS, Settings


class TestFindSettingsFile:
    def test_found_in_start_dir(self, tmp_path: Path):
        (tmp_path / "nativelib.yml").write_text("mode: single\n")
        assert find_settings_file(tmp_path) == (tmp_path / "nativelib.yml").resolve()

    def test_found_in_parent(self, tmp_path: Path):
        (tmp_path / "nativelib.yml").write_text("mode: single\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_settings_file(nested) == (tmp_path / "nativelib.yml").resolve()

    def test_not_found(self, tmp_path: Path, monkeypatch):
        monkeypatch.setattr(Path, "is_file", lambda self: False)
        assert find_settings_file(tmp_path) is None


class TestLoadSettings:
    def test_defaults_without_file(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(
            "native_loader.core.config.loader.find_settings_file", lambda start_dir=None: None
        )
        settings = load_settings(env={})
        assert settings == Settings()
        assert settings.leftover_min_age_ms == DEFAULT_LEFTOVER_MIN_AGE_MS
        assert settings.mode == "single"
        assert settings.context_label == "Classloader"

    def test_flat_file(self, tmp_path: Path):
        config = tmp_path / "nativelib.yml"
        config.write_text(
            "tmp_dir: /var/tmp/native\n"
            "leftover_min_age_ms: 1000\n"
            "mode: multi\n"
            "search_paths:\n"
            "  - vendor/natives\n"
        )
        settings = load_settings(config, env={})
        assert settings.tmp_dir == Path("/var/tmp/native")
        assert settings.leftover_min_age_ms == 1000
        assert settings.isolated
        assert settings.search_paths == ["vendor/natives"]

    def test_wrapped_file(self, tmp_path: Path):
        config = tmp_path / "nativelib.yml"
        config.write_text("nativelib:\n  context_label: Plugin\n  sysinfo: amd64-Linux-gpp\n")
        settings = load_settings(config, env={})
        assert settings.context_label == "Plugin"
        assert settings.sysinfo == "amd64-Linux-gpp"

    def test_empty_file(self, tmp_path: Path):
        config = tmp_path / "nativelib.yml"
        config.write_text("")
        assert load_settings(config, env={}) == Settings()

    def test_env_overrides_file(self, tmp_path: Path):
        config = tmp_path / "nativelib.yml"
        config.write_text("mode: single\ntmp_dir: /from/file\n")
        env = {
            "NATIVELIB_TMPDIR": "/from/env",
            "NATIVELIB_MODE": "multi",
            "NATIVELIB_SYSINFO": "custom-desc",
            "NATIVELIB_CONTEXT_LABEL": "Worker",
            "NATIVELIB_LEFTOVER_MIN_AGE_MS": "42",
        }
        settings = load_settings(config, env=env)
        assert settings.tmp_dir == Path("/from/env")
        assert settings.mode == "multi"
        assert settings.sysinfo == "custom-desc"
        assert settings.context_label == "Worker"
        assert settings.leftover_min_age_ms == 42

    def test_bad_age_env_keeps_file_value(self, tmp_path: Path, caplog):
        config = tmp_path / "nativelib.yml"
        config.write_text("leftover_min_age_ms: 1234\n")
        with caplog.at_level("WARNING", logger="native_loader"):
            settings = load_settings(config, env={"NATIVELIB_LEFTOVER_MIN_AGE_MS": "soon"})
        assert settings.leftover_min_age_ms == 1234
        assert "not an integer" in caplog.text

    def test_bad_age_env_keeps_default(self, tmp_path: Path):
        config = tmp_path / "nativelib.yml"
        config.write_text("{}\n")
        settings = load_settings(config, env={"NATIVELIB_LEFTOVER_MIN_AGE_MS": "x"})
        assert settings.leftover_min_age_ms == DEFAULT_LEFTOVER_MIN_AGE_MS


class TestConfigErrors:
    def test_missing_explicit_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="Config file not found"):
            load_settings(tmp_path / "nope.yml", env={})

    def test_invalid_yaml(self, tmp_path: Path):
        config = tmp_path / "nativelib.yml"
        config.write_text("mode: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_settings(config, env={})

    def test_not_a_mapping(self, tmp_path: Path):
        config = tmp_path / "nativelib.yml"
        config.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="Expected a YAML mapping"):
            load_settings(config, env={})

    def test_invalid_mode(self, tmp_path: Path):
        config = tmp_path / "nativelib.yml"
        config.write_text("mode: sometimes\n")
        with pytest.raises(ConfigError, match="Invalid loader configuration"):
            load_settings(config, env={})

    def test_negative_age(self, tmp_path: Path):
        config = tmp_path / "nativelib.yml"
        config.write_text("leftover_min_age_ms: -1\n")
        with pytest.raises(ConfigError):
            load_settings(config, env={})

    def test_invalid_mode_from_env(self, tmp_path: Path):
        config = tmp_path / "nativelib.yml"
        config.write_text("{}\n")
        with pytest.raises(ConfigError):
            load_settings(config, env={"NATIVELIB_MODE": "both"})
