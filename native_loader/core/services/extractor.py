"""
Extractor: copies one located resource into a working directory.
"""

from __future__ import annotations

import logging
import shutil
import zipfile
import zlib
from pathlib import Path

from native_loader.core.errors import ExtractionError
from native_loader.core.models.library import ExtractedLibrary
from native_loader.core.services.resources import ResourceHandle
from native_loader.core.services.workdir import DeletionRegistry, process_deletions

logger = logging.getLogger(__name__)

COPY_BUFFER_SIZE = 8192

# Read failures: I/O errors plus corrupt archive members (bad CRC, bad deflate stream)
_READ_ERRORS = (OSError, zipfile.BadZipFile, zlib.error)


class Extractor:
    """Materializes packaged binaries as real files the OS loader can map."""

    def __init__(self, deletions: DeletionRegistry | None = None) -> None:
        self.deletions = deletions or process_deletions()

    def extract(self, resource: ResourceHandle, output_name: str, into_dir: Path) -> ExtractedLibrary:
        """Copy ``resource`` to ``into_dir / output_name``.

        An existing file of that name is truncated. The produced file is
        scheduled for removal at process exit.

        Raises:
            ExtractionError: If the resource cannot be read or the file
                cannot be written. A partially written file is removed.
        """
        outfile = into_dir / output_name
        logger.debug("Extracting '%s' to '%s'", resource.uri, outfile)

        try:
            src = resource.open()
        except _READ_ERRORS as e:
            raise ExtractionError(f"Cannot open resource {resource.uri}: {e}") from e

        with src:
            try:
                dst = outfile.open("wb")
            except OSError as e:
                raise ExtractionError(f"Cannot create {outfile}: {e}") from e
            with dst:
                try:
                    shutil.copyfileobj(src, dst, COPY_BUFFER_SIZE)
                except _READ_ERRORS as e:
                    dst.close()
                    outfile.unlink(missing_ok=True)
                    raise ExtractionError(f"Failed writing {outfile}: {e}") from e

        self.deletions.schedule(outfile)
        return ExtractedLibrary(name=output_name, path=outfile.resolve(), source=resource.uri)
