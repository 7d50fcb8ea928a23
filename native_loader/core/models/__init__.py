"""
Domain models for the native loader.

All models are re-exported here for convenient access:

    from native_loader.core.models import Platform, LibrarySpec, LoadResult
"""

from native_loader.core.models.library import ExtractedLibrary, LibrarySpec
from native_loader.core.models.platform import Platform, Processor
from native_loader.core.models.results import CandidateFailure, ExtractResult, LoadResult
from native_loader.core.models.settings import Settings

__all__ = [
    # library.py
    "ExtractedLibrary",
    "LibrarySpec",
    # platform.py
    "Platform",
    "Processor",
    # results.py
    "CandidateFailure",
    "ExtractResult",
    "LoadResult",
    # settings.py
    "Settings",
]
