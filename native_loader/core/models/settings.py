"""
Settings model: every overridable knob of the loader.

Loaded from nativelib.yml and NATIVELIB_* environment variables by
``native_loader.core.config.loader``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

# Leftover working directories younger than this are left alone.
DEFAULT_LEFTOVER_MIN_AGE_MS = 5 * 60 * 1000

DEFAULT_CONTEXT_LABEL = "Classloader"


class Settings(BaseModel):
    """Loader configuration.

    ``mode`` picks the working-directory strategy: ``single`` shares one
    private directory per process, ``multi`` gives every loader instance
    its own labelled subdirectory so sibling contexts never load the same
    absolute path.
    """

    tmp_dir: Path | None = None
    leftover_min_age_ms: int = Field(default=DEFAULT_LEFTOVER_MIN_AGE_MS, ge=0)
    sysinfo: str | None = None
    mode: Literal["single", "multi"] = "single"
    context_label: str = DEFAULT_CONTEXT_LABEL
    resource_roots: list[str] = Field(default_factory=list)
    search_paths: list[str] = Field(default_factory=list)
    log_level: str | None = None

    @property
    def isolated(self) -> bool:
        return self.mode == "multi"
