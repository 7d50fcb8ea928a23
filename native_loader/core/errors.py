"""
Exception taxonomy for the native loader.

Unsupported platforms and resources missing under a single prefix are
expected outcomes and are reported as ``False`` / ``None``, not raised.
"""

from __future__ import annotations


class NativeLoaderError(Exception):
    """Base class for all native loader failures."""


class ExtractionError(NativeLoaderError):
    """Copying a resource out to the working directory failed."""


class LinkRejectedError(NativeLoaderError):
    """The dynamic loader refused an extracted binary."""


class DirectoryCreationError(NativeLoaderError):
    """A private working directory could not be created."""


class MissingResourceError(NativeLoaderError):
    """A library listed in an ``AUTOEXTRACT.LIST`` manifest is not packaged."""


class LibraryLoadError(NativeLoaderError):
    """Every way of loading a library failed.

    Carries the logical library name and the last underlying cause.
    """

    def __init__(self, library: str, cause: BaseException | None = None) -> None:
        self.library = library
        self.cause = cause
        message = f"Couldn't load library {library}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
