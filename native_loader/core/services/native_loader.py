"""
NativeLoader: the public entry point applications hold on to.

    from native_loader import NativeLoader

    with NativeLoader.from_settings() as loader:
        lib = loader.load_library("foo")

``load_library`` first asks the system dynamic linker (a library already
installed on the host wins), then falls back to the packaged binaries.
The working-directory strategy comes from ``Settings.mode``; a program
hosting several isolated plugin contexts builds one loader per context
with ``mode="multi"``.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import threading
from collections.abc import Callable, Sequence
from pathlib import Path

from native_loader.core.config.loader import load_settings
from native_loader.core.errors import LibraryLoadError
from native_loader.core.models.library import LibrarySpec
from native_loader.core.models.results import ExtractResult, LoadResult
from native_loader.core.models.settings import Settings
from native_loader.core.services.orchestrator import DynamicLoader, LoadOrchestrator, ctypes_loader
from native_loader.core.services.platform_id import PlatformIdentifier
from native_loader.core.services.resources import (
    ResourceLocator,
    ResourceRoot,
    default_roots,
    resolve_roots,
)
from native_loader.core.services.sysinfo import system_descriptor
from native_loader.core.services.workdir import DeletionRegistry, WorkDirManager, WorkDirStrategy

logger = logging.getLogger(__name__)


def system_library_lookup(lib_name: str) -> object:
    """Load ``lib_name`` through the host's own library search.

    Raises:
        OSError: If the dynamic linker cannot find or load it.
    """
    found = ctypes.util.find_library(lib_name)
    if found is None:
        raise OSError(f"{lib_name} not found by the system dynamic linker")
    return ctypes.CDLL(found)


class NativeLoader:
    """Wires platform detection, resources and a working directory together."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        roots: Sequence[ResourceRoot] | None = None,
        identifier: PlatformIdentifier | None = None,
        loader: DynamicLoader = ctypes_loader,
        system_lookup: Callable[[str], object] = system_library_lookup,
        deletions: DeletionRegistry | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.identifier = identifier or PlatformIdentifier()

        if roots is None:
            roots = resolve_roots(self.settings.resource_roots) if self.settings.resource_roots else default_roots()
        strategy = WorkDirStrategy.ISOLATED if self.settings.isolated else WorkDirStrategy.SINGLETON

        self.workdir = WorkDirManager(
            strategy,
            label=self.settings.context_label,
            tmp_dir=self.settings.tmp_dir,
            leftover_min_age_ms=self.settings.leftover_min_age_ms,
            deletions=deletions,
        )
        self.orchestrator = LoadOrchestrator(
            identifier=self.identifier,
            locator=ResourceLocator(roots, self.identifier),
            workdir=self.workdir,
            loader=loader,
            descriptor=lambda: system_descriptor(self.settings.sysinfo),
        )
        self._system_lookup = system_lookup
        self._lock = threading.Lock()
        self._handles: dict[str, object] = {}

    @classmethod
    def from_settings(cls, path: Path | None = None, **kwargs) -> NativeLoader:
        """Build a loader from nativelib.yml / NATIVELIB_* configuration."""
        return cls(load_settings(path), **kwargs)

    @property
    def loaded(self) -> dict[str, object]:
        """Handles loaded so far, keyed by versioned library name."""
        with self._lock:
            return dict(self._handles)

    def load_library(
        self,
        lib_name: str,
        *search_paths: str,
        version: str | None = None,
    ) -> object:
        """Load a native library, returning the dynamic loader's handle.

        Raises:
            LibraryLoadError: If neither the system linker nor any packaged
                binary could be loaded.
        """
        name = LibrarySpec(name=lib_name, version=version).versioned_name
        with self._lock:
            if name in self._handles:
                return self._handles[name]

            try:
                handle = self._system_lookup(name)
                logger.debug("Loaded %s through the system dynamic linker", name)
            except OSError as e:
                logger.debug("System lookup of %s failed (%s), trying packaged binaries", name, e)
                result = self.orchestrator.load(name, *self.settings.search_paths, *search_paths)
                if not result.loaded:
                    raise LibraryLoadError(name, result.last_error or e) from (result.last_error or e)
                handle = result.handle

            self._handles[name] = handle
            return handle

    def load_packaged(self, lib_name: str, *search_paths: str) -> LoadResult:
        """Skip the system linker and report every candidate tried."""
        return self.orchestrator.load(lib_name, *self.settings.search_paths, *search_paths)

    def extract_registered(self) -> ExtractResult:
        """Extract everything listed in ``AUTOEXTRACT.LIST`` manifests."""
        return self.orchestrator.extract_all_registered()

    def close(self) -> None:
        self.workdir.close()

    def __enter__(self) -> NativeLoader:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
