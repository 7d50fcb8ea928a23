"""
Operation results: what a load or manifest pass did, for callers and ``--json``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from native_loader.core.models.library import ExtractedLibrary
from native_loader.core.models.platform import Platform


@dataclass
class CandidateFailure:
    """One search prefix that located a resource but could not use it."""

    prefix: str
    stage: str  # extract, link
    error: str

    def to_dict(self) -> dict:
        return {"prefix": self.prefix, "stage": self.stage, "error": self.error}


@dataclass
class LoadResult:
    """Outcome of loading one library from packaged resources."""

    library: str
    platform: Platform = Platform.UNKNOWN
    loaded: bool = False
    path: Path | None = None
    handle: object | None = None
    prefixes_tried: list[str] = field(default_factory=list)
    failures: list[CandidateFailure] = field(default_factory=list)
    last_error: BaseException | None = None

    @property
    def found_any(self) -> bool:
        """Whether at least one prefix located a resource."""
        return self.loaded or bool(self.failures)

    def to_dict(self) -> dict:
        return {
            "library": self.library,
            "platform": self.platform.value,
            "loaded": self.loaded,
            "path": str(self.path) if self.path else None,
            "prefixes_tried": list(self.prefixes_tried),
            "failures": [f.to_dict() for f in self.failures],
            "error": str(self.last_error) if self.last_error else None,
        }


@dataclass
class ExtractResult:
    """Outcome of an ``AUTOEXTRACT.LIST`` pass."""

    manifests: list[str] = field(default_factory=list)
    extracted: list[ExtractedLibrary] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {
            "manifests": list(self.manifests),
            "extracted": [lib.to_dict() for lib in self.extracted],
        }
        if self.error:
            result["error"] = self.error
        return result
