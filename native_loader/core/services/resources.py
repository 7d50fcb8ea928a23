"""
Resource roots and lookup of packaged native binaries.

A resource root is anything ``importlib.resources`` can traverse: an
installed package (``package:<name>``), a plain directory or a zip
archive (wheel, egg, zipapp). Roots are searched in order and the first
hit wins, the way an import path is searched.
"""

from __future__ import annotations

import logging
import sys
import zipfile
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import BinaryIO

from native_loader.core.models.platform import OSX_ALTERNATE_EXTENSIONS
from native_loader.core.services.platform_id import DELIM, PlatformIdentifier, normalize_prefix

logger = logging.getLogger(__name__)

PACKAGE_SCHEME = "package:"


@dataclass(frozen=True)
class ResourceRoot:
    """One searchable location holding packaged resources."""

    label: str
    base: Traversable

    @classmethod
    def from_spec(cls, spec: str) -> ResourceRoot:
        """Build a root from ``package:<name>``, a directory, or a zip archive.

        Raises:
            ValueError: If the spec names nothing traversable.
        """
        if spec.startswith(PACKAGE_SCHEME):
            package = spec[len(PACKAGE_SCHEME):]
            try:
                return cls(label=spec, base=resources.files(package))
            except (ModuleNotFoundError, TypeError) as e:
                raise ValueError(f"Unknown resource package: {package}") from e

        path = Path(spec)
        if path.is_dir():
            return cls(label=str(path), base=path)
        if path.is_file() and zipfile.is_zipfile(path):
            return cls(label=str(path), base=zipfile.Path(path))
        raise ValueError(f"Not a directory or zip archive: {spec}")

    def find(self, resource_path: str) -> Traversable | None:
        """The file at ``resource_path`` (``/``-delimited), or None."""
        node = self.base
        try:
            for part in resource_path.split(DELIM):
                if part:
                    node = node.joinpath(part)
            if node.is_file():
                return node
        except (OSError, ValueError, KeyError):
            pass
        return None


@dataclass(frozen=True)
class ResourceHandle:
    """A located resource, ready to be opened for extraction."""

    root: ResourceRoot
    path: str
    file_name: str
    resource: Traversable

    @property
    def uri(self) -> str:
        return f"{self.root.label}!/{self.path}"

    def open(self) -> BinaryIO:
        return self.resource.open("rb")


def resolve_roots(specs: Iterable[str]) -> list[ResourceRoot]:
    """Resolve configured root specs, skipping (and logging) unusable ones."""
    roots: list[ResourceRoot] = []
    for spec in specs:
        try:
            roots.append(ResourceRoot.from_spec(spec))
        except ValueError as e:
            logger.warning("Skipping resource root %r: %s", spec, e)
    return roots


def default_roots(search_path: Sequence[str] | None = None) -> list[ResourceRoot]:
    """Every import-path entry that is a directory or a zip archive."""
    entries = sys.path if search_path is None else search_path
    roots: list[ResourceRoot] = []
    seen: set[str] = set()
    for entry in entries:
        spec = entry or "."
        if spec in seen:
            continue
        seen.add(spec)
        try:
            roots.append(ResourceRoot.from_spec(spec))
        except ValueError:
            continue
    return roots


class ResourceLocator:
    """Finds resources across an ordered list of roots."""

    def __init__(
        self,
        roots: Sequence[ResourceRoot],
        identifier: PlatformIdentifier | None = None,
    ) -> None:
        self.roots = list(roots)
        self._identifier = identifier or PlatformIdentifier()

    def find(self, resource_path: str) -> ResourceHandle | None:
        """First root holding ``resource_path``."""
        file_name = resource_path.rsplit(DELIM, 1)[-1]
        for root in self.roots:
            found = root.find(resource_path)
            if found is not None:
                return ResourceHandle(root=root, path=resource_path, file_name=file_name, resource=found)
        return None

    def find_all(self, resource_path: str) -> list[ResourceHandle]:
        """Every root holding ``resource_path``, in root order."""
        file_name = resource_path.rsplit(DELIM, 1)[-1]
        handles: list[ResourceHandle] = []
        for root in self.roots:
            found = root.find(resource_path)
            if found is not None:
                handles.append(
                    ResourceHandle(root=root, path=resource_path, file_name=file_name, resource=found)
                )
        return handles

    def locate(self, search_prefix: str, mangled_name: str) -> ResourceHandle | None:
        """Look up ``<search_prefix>/<mangled_name>``.

        On osx a miss is retried with the ``.dylib``/``.jnilib`` extension
        swapped. A miss is not an error: the caller tries the next prefix.
        """
        candidates = self.locate_all(search_prefix, mangled_name)
        return candidates[0] if candidates else None

    def locate_all(self, search_prefix: str, mangled_name: str) -> list[ResourceHandle]:
        """Every copy of ``<search_prefix>/<mangled_name>``, best first.

        Copies under the exact name come first in root order, then (on
        osx only) copies under the alternate extension.
        """
        prefix = normalize_prefix(search_prefix)
        combined = prefix + mangled_name
        handles = self.find_all(combined)

        if self._identifier.current().family == "osx":
            alt_name = _alternate_name(mangled_name)
            if alt_name is not None:
                alternates = self.find_all(prefix + alt_name)
                if alternates and not handles:
                    logger.debug("Found %s under alternate name %s", combined, alt_name)
                handles.extend(alternates)

        if not handles:
            logger.debug("Couldn't find resource %s", combined)
        return handles


def _alternate_name(file_name: str) -> str | None:
    for ext, alt in OSX_ALTERNATE_EXTENSIONS.items():
        if file_name.endswith(ext):
            return file_name[: -len(ext)] + alt
    return None
