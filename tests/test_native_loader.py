"""
Tests for the NativeLoader facade.
"""

from pathlib import Path

import pytest

from conftest import RecordingLoader, write_resource
from native_loader import NativeLoader
from native_loader.core.errors import LibraryLoadError
from native_loader.core.models.settings import Settings
from native_loader.core.services.resources import resolve_roots


def _no_system(lib_name: str):
    raise OSError(f"{lib_name} not found by the system dynamic linker")


@pytest.fixture
def settings(tmp_root: Path) -> Settings:
    return Settings(tmp_dir=tmp_root, sysinfo="amd64-Linux-gpp")


def _loader(settings, bundle_dir, linux64, deletions, **kwargs) -> NativeLoader:
    kwargs.setdefault("loader", RecordingLoader())
    kwargs.setdefault("system_lookup", _no_system)
    return NativeLoader(
        settings,
        roots=resolve_roots([str(bundle_dir)]),
        identifier=linux64,
        deletions=deletions,
        **kwargs,
    )


class TestLoadLibrary:
    def test_system_linker_first(self, settings, bundle_dir, linux64, deletions):
        write_resource(bundle_dir, "natives/linux-x86_64/libfoo.so", b"packaged")
        packaged = RecordingLoader()
        seen = []

        def system(lib_name):
            seen.append(lib_name)
            return "system-handle"

        nl = _loader(settings, bundle_dir, linux64, deletions, loader=packaged, system_lookup=system)

        assert nl.load_library("foo") == "system-handle"
        assert seen == ["foo"]
        assert packaged.calls == []

    def test_falls_back_to_packaged(self, settings, bundle_dir, linux64, deletions):
        write_resource(bundle_dir, "natives/linux-x86_64/libfoo.so", b"packaged")
        nl = _loader(settings, bundle_dir, linux64, deletions)

        handle = nl.load_library("foo")

        assert handle["handle"].endswith("libfoo.so")
        assert Path(handle["handle"]).parent == nl.workdir.jni_dir.resolve()

    def test_failure_raises_with_name(self, settings, bundle_dir, linux64, deletions):
        nl = _loader(settings, bundle_dir, linux64, deletions)
        with pytest.raises(LibraryLoadError, match="Couldn't load library missing") as exc:
            nl.load_library("missing")
        assert exc.value.library == "missing"
        assert isinstance(exc.value.cause, OSError)

    def test_link_failure_is_the_cause(self, settings, bundle_dir, linux64, deletions):
        write_resource(bundle_dir, "natives/linux-x86_64/libfoo.so", b"x")
        nl = _loader(settings, bundle_dir, linux64, deletions, loader=RecordingLoader(reject=("libfoo",)))
        with pytest.raises(LibraryLoadError, match="Dynamic loader rejected"):
            nl.load_library("foo")

    def test_handles_cached(self, settings, bundle_dir, linux64, deletions):
        write_resource(bundle_dir, "natives/linux-x86_64/libfoo.so", b"x")
        packaged = RecordingLoader()
        nl = _loader(settings, bundle_dir, linux64, deletions, loader=packaged)

        first = nl.load_library("foo")
        second = nl.load_library("foo")

        assert first is second
        assert len(packaged.calls) == 1
        assert list(nl.loaded) == ["foo"]

    def test_versioned_name(self, settings, bundle_dir, linux64, deletions):
        write_resource(bundle_dir, "natives/linux-x86_64/libfoo-1.2.so", b"x")
        nl = _loader(settings, bundle_dir, linux64, deletions)

        handle = nl.load_library("foo", version="1.2")

        assert handle["handle"].endswith("libfoo-1.2.so")
        assert "foo-1.2" in nl.loaded

    def test_configured_and_call_search_paths(self, tmp_root, bundle_dir, linux64, deletions):
        write_resource(bundle_dir, "extra/linux-x86_64/libbar.so", b"x")
        write_resource(bundle_dir, "configured/linux-x86_64/libfoo.so", b"x")
        settings = Settings(tmp_dir=tmp_root, sysinfo="d", search_paths=["configured"])
        nl = _loader(settings, bundle_dir, linux64, deletions)

        assert nl.load_library("foo")
        assert nl.load_library("bar", "extra")

    def test_descriptor_from_settings(self, settings, bundle_dir, linux64, deletions):
        write_resource(bundle_dir, "META-INF/lib/amd64-Linux-gpp/linux-x86_64/libfoo.so", b"x")
        nl = _loader(settings, bundle_dir, linux64, deletions)
        assert nl.load_packaged("foo").loaded


class TestModes:
    def test_single_mode_shares_native_dir(self, settings, bundle_dir, linux64, deletions):
        nl = _loader(settings, bundle_dir, linux64, deletions)
        assert not nl.workdir.isolated
        assert nl.workdir.jni_dir == nl.workdir.native_dir

    def test_multi_mode_contexts_distinct(self, tmp_root, bundle_dir, linux64, deletions):
        write_resource(bundle_dir, "natives/linux-x86_64/libfoo.so", b"x")
        settings = Settings(tmp_dir=tmp_root, sysinfo="d", mode="multi", context_label="Plugin")

        a = _loader(settings, bundle_dir, linux64, deletions)
        b = _loader(settings, bundle_dir, linux64, deletions)
        path_a = Path(a.load_library("foo")["handle"])
        path_b = Path(b.load_library("foo")["handle"])

        assert path_a != path_b
        assert path_a.parent.name.startswith("Plugin.")

    def test_context_manager_closes_isolated_dir(self, tmp_root, bundle_dir, linux64, deletions):
        write_resource(bundle_dir, "natives/linux-x86_64/libfoo.so", b"x")
        settings = Settings(tmp_dir=tmp_root, sysinfo="d", mode="multi")

        with _loader(settings, bundle_dir, linux64, deletions) as nl:
            nl.load_library("foo")
            jni_dir = nl.workdir.jni_dir

        assert not jni_dir.exists()


class TestFromSettings:
    def test_reads_yaml(self, tmp_path, tmp_root, bundle_dir, linux64, deletions, monkeypatch):
        for var in ("NATIVELIB_TMPDIR", "NATIVELIB_MODE", "NATIVELIB_SYSINFO"):
            monkeypatch.delenv(var, raising=False)
        config = tmp_path / "nativelib.yml"
        config.write_text(
            f"nativelib:\n  tmp_dir: {tmp_root}\n  mode: multi\n  sysinfo: d\n  resource_roots:\n    - {bundle_dir}\n"
        )
        nl = NativeLoader.from_settings(config, identifier=linux64, deletions=deletions)

        assert nl.settings.isolated
        assert nl.workdir.native_dir.parent == tmp_root
        assert [r.label for r in nl.orchestrator.locator.roots] == [str(bundle_dir)]


class TestExtractRegistered:
    def test_extracts_manifest(self, settings, bundle_dir, linux64, deletions):
        write_resource(bundle_dir, "natives/AUTOEXTRACT.LIST", b"libdep.so\n")
        write_resource(bundle_dir, "natives/libdep.so", b"dep")
        nl = _loader(settings, bundle_dir, linux64, deletions)

        result = nl.extract_registered()

        assert [lib.name for lib in result.extracted] == ["libdep.so"]
        assert (nl.workdir.jni_dir / "libdep.so").read_bytes() == b"dep"
