"""
Library models: what we are asked to load and what extraction produced.
"""

from __future__ import annotations

import logging
from importlib import metadata
from pathlib import Path

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class LibrarySpec(BaseModel):
    """A logical native library name with an optional version suffix.

    The versioned name is what gets mangled into a file name, so a
    library packaged as ``libfoo-1.2.so`` is requested as
    ``LibrarySpec(name="foo", version="1.2")``.
    """

    name: str
    version: str | None = None

    @property
    def versioned_name(self) -> str:
        if self.version:
            return f"{self.name}-{self.version}"
        return self.name

    @classmethod
    def from_distribution(cls, name: str, distribution: str) -> LibrarySpec:
        """Build a spec whose version comes from installed package metadata.

        A distribution that is not installed yields an unversioned spec.
        """
        try:
            version = metadata.version(distribution)
        except metadata.PackageNotFoundError:
            logger.debug("No installed distribution '%s', %s stays unversioned", distribution, name)
            version = None
        return cls(name=name, version=version or None)


class ExtractedLibrary(BaseModel):
    """A native binary copied out of a resource root onto the filesystem."""

    name: str
    path: Path
    source: str = ""

    def to_dict(self) -> dict:
        return {"name": self.name, "path": str(self.path), "source": self.source}
