"""
Load orchestration: platform → search prefixes → locate → extract → load.

Search order for ``load_native_library("foo", *extra)`` on linux-x86_64::

    natives/linux-x86_64/libfoo.so          default
    <extra>/linux-x86_64/libfoo.so          caller overrides, in order
    linux-x86_64/libfoo.so                  legacy: root of the bundle
    META-INF/lib/linux-x86_64/libfoo.so     legacy
    META-INF/lib/<descriptor>/linux-x86_64/libfoo.so   when a descriptor is known

Within a prefix every resource root holding the binary is a candidate,
in root order. A candidate that fails to extract or link is logged and
skipped; only running out of candidates makes the load fail.
"""

from __future__ import annotations

import ctypes
import logging
from collections.abc import Callable, Iterable
from pathlib import Path

from native_loader.core.errors import (
    ExtractionError,
    LinkRejectedError,
    MissingResourceError,
)
from native_loader.core.models.library import ExtractedLibrary
from native_loader.core.models.platform import Platform
from native_loader.core.models.results import CandidateFailure, ExtractResult, LoadResult
from native_loader.core.services.extractor import Extractor
from native_loader.core.services.platform_id import DELIM, PlatformIdentifier
from native_loader.core.services.resources import ResourceHandle, ResourceLocator
from native_loader.core.services.sysinfo import DescriptorProvider
from native_loader.core.services.workdir import WorkDirManager

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_PATH = "natives" + DELIM
META_INF_LIB = "META-INF" + DELIM + "lib" + DELIM
LEGACY_SEARCH_PATHS = ("", META_INF_LIB)
MANIFEST_NAME = "AUTOEXTRACT.LIST"

# Loads a shared object from an absolute path; raises OSError on rejection.
DynamicLoader = Callable[[Path], object]


def ctypes_loader(path: Path) -> object:
    return ctypes.CDLL(str(path))


def build_search_paths(
    extra_search_paths: Iterable[str] = (),
    descriptor: str | None = None,
) -> list[str]:
    """Ordered load prefixes: default, caller extras, legacy, descriptor."""
    paths = [DEFAULT_SEARCH_PATH, *extra_search_paths, *LEGACY_SEARCH_PATHS]
    if descriptor:
        paths.append(META_INF_LIB + descriptor + DELIM)
    return paths


def manifest_roots(descriptor: str | None = None) -> list[str]:
    """Prefixes holding ``AUTOEXTRACT.LIST`` manifests and the files they name."""
    if descriptor:
        return [DEFAULT_SEARCH_PATH, META_INF_LIB + descriptor + DELIM, META_INF_LIB]
    return [DEFAULT_SEARCH_PATH, META_INF_LIB]


class LoadOrchestrator:
    """Finds, extracts and loads the binary matching the host platform.

    Every collaborator is injected; nothing here reads global state.
    """

    def __init__(
        self,
        *,
        identifier: PlatformIdentifier,
        locator: ResourceLocator,
        workdir: WorkDirManager,
        extractor: Extractor | None = None,
        loader: DynamicLoader = ctypes_loader,
        descriptor: DescriptorProvider | None = None,
    ) -> None:
        self.identifier = identifier
        self.locator = locator
        self.workdir = workdir
        self.extractor = extractor or Extractor(workdir.deletions)
        self.loader = loader
        self._descriptor_provider = descriptor
        self._descriptor: str | None = None
        self._descriptor_resolved = False

    @property
    def descriptor(self) -> str | None:
        """System descriptor, asked for once."""
        if not self._descriptor_resolved:
            self._descriptor = self._descriptor_provider() if self._descriptor_provider else None
            self._descriptor_resolved = True
        return self._descriptor

    # ── Loading ─────────────────────────────────────────────────

    def load(self, lib_name: str, *extra_search_paths: str) -> LoadResult:
        """Try every search prefix in order; the first successful load wins."""
        platform = self.identifier.current()
        result = LoadResult(library=lib_name, platform=platform)

        if platform is Platform.UNKNOWN:
            logger.info("No native library available for this platform (%s)", lib_name)
            return result

        mangled = self.identifier.library_file_name(lib_name)
        if mangled is None:
            return result

        for prefix in build_search_paths(extra_search_paths, self.descriptor):
            search_prefix = self.identifier.library_path(prefix)
            result.prefixes_tried.append(search_prefix)
            logger.debug("Searching %s%s", search_prefix, mangled)

            for handle in self.locator.locate_all(search_prefix, mangled):
                try:
                    extracted = self.extractor.extract(handle, handle.file_name, self.workdir.jni_dir)
                except ExtractionError as e:
                    logger.warning("Problem extracting %s: %s", handle.uri, e)
                    result.failures.append(CandidateFailure(search_prefix, "extract", str(e)))
                    result.last_error = e
                    continue

                try:
                    result.handle = self._link(extracted.path)
                except LinkRejectedError as e:
                    logger.warning("Problem loading %s: %s", extracted.path, e)
                    result.failures.append(CandidateFailure(search_prefix, "link", str(e)))
                    result.last_error = e
                    continue

                result.loaded = True
                result.path = extracted.path
                logger.debug("Loaded %s from %s", lib_name, handle.uri)
                return result

        return result

    def load_native_library(self, lib_name: str, *extra_search_paths: str) -> bool:
        return self.load(lib_name, *extra_search_paths).loaded

    def _link(self, path: Path) -> object:
        try:
            return self.loader(path)
        except OSError as e:
            raise LinkRejectedError(f"Dynamic loader rejected {path}: {e}") from e

    # ── Manifest extraction ─────────────────────────────────────

    def extract_all_registered(self) -> ExtractResult:
        """Extract every library listed in ``AUTOEXTRACT.LIST`` manifests.

        Raises:
            MissingResourceError: A listed file is not packaged under any
                manifest root. Aborts the whole pass.
            ExtractionError: A listed file could not be written.
        """
        result = ExtractResult()
        roots = manifest_roots(self.descriptor)
        for root in roots:
            for manifest in self.locator.find_all(root + MANIFEST_NAME):
                result.manifests.append(manifest.uri)
                result.extracted.extend(self._extract_manifest(manifest, roots))
        return result

    def _extract_manifest(self, manifest: ResourceHandle, roots: list[str]) -> list[ExtractedLibrary]:
        logger.debug("Extracting libraries listed in %s", manifest.uri)
        try:
            text = manifest.resource.read_text(encoding="utf-8")
        except OSError as e:
            raise ExtractionError(f"Cannot read manifest {manifest.uri}: {e}") from e

        extracted: list[ExtractedLibrary] = []
        for raw_line in text.splitlines():
            line = raw_line.strip()
            if not line:
                continue
            handle = next(
                (h for h in (self.locator.find(root + line) for root in roots) if h is not None),
                None,
            )
            if handle is None:
                raise MissingResourceError(
                    f"Couldn't find native library {line} under {', '.join(roots)}"
                )
            extracted.append(self.extractor.extract(handle, line, self.workdir.jni_dir))
        return extracted
