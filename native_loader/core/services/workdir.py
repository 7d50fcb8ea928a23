"""
Working directories: private, uniquely named homes for extracted binaries.

Design notes:
    - Every directory is created optimistically (attempt, then react to
      ``FileExistsError``), never check-then-create, so sibling processes
      racing on the same temp root cannot collide.
    - Leftovers from earlier runs are swept on startup, but only once they
      are older than ``leftover_min_age_ms``: a younger directory may still
      belong to a live sibling. Directories this process created are
      never swept, whatever their age.
    - End-of-process removal is best effort. A loaded shared object may be
      undeletable (Windows keeps it locked) and that is not an error.

Layout::

    <tmp root>/
        nativelib-loader_abc123/          native dir (singleton: also the jni dir)
            libfoo.so
            Classloader.1739648400123.0/  jni dir of an isolated context
                libfoo.so
"""

from __future__ import annotations

import atexit
import logging
import tempfile
import threading
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from native_loader.core.errors import DirectoryCreationError
from native_loader.core.models.settings import DEFAULT_CONTEXT_LABEL, DEFAULT_LEFTOVER_MIN_AGE_MS

logger = logging.getLogger(__name__)

TMP_PREFIX = "nativelib-loader_"

# Used when the interpreter has no usable temp directory at all
ALT_TMP_DIR = Path(".") / "tmplib"


class WorkDirStrategy(str, Enum):
    """How the directory that receives extracted binaries is allocated."""

    SINGLETON = "single"
    ISOLATED = "multi"


# ── Deferred deletion ───────────────────────────────────────────


class DeletionRegistry:
    """Paths to remove when the process exits.

    Paths are removed in reverse registration order, so files registered
    after their directory go first and the directory is empty by the time
    its turn comes.
    """

    def __init__(self, *, register_atexit: bool = True) -> None:
        self._lock = threading.Lock()
        self._paths: list[Path] = []
        self._register_atexit = register_atexit
        self._hooked = False

    @property
    def pending(self) -> list[Path]:
        with self._lock:
            return list(self._paths)

    def schedule(self, path: Path) -> None:
        with self._lock:
            if path in self._paths:
                return
            self._paths.append(path)
            if self._register_atexit and not self._hooked:
                atexit.register(self.run)
                self._hooked = True

    def run(self) -> int:
        """Delete every scheduled path; returns how many were removed."""
        with self._lock:
            paths, self._paths = self._paths, []

        removed = 0
        for path in reversed(paths):
            try:
                if path.is_dir():
                    path.rmdir()
                else:
                    path.unlink(missing_ok=True)
                removed += 1
            except OSError as e:
                # still mapped by the dynamic loader, or not empty
                logger.debug("Could not remove %s at exit: %s", path, e)
        return removed


_process_deletions = DeletionRegistry()


def process_deletions() -> DeletionRegistry:
    """The registry flushed at interpreter exit."""
    return _process_deletions


# ── Temp root and directory allocation ─────────────────────────


def resolve_temp_root(configured: Path | None = None) -> Path:
    """Configured temp root, else the interpreter's temp dir, else ``./tmplib``."""
    if configured is not None:
        return Path(configured)
    try:
        return Path(tempfile.gettempdir())
    except FileNotFoundError:
        return ALT_TMP_DIR


# Native dirs created by this process; leftover sweeps never touch them
_live_native_dirs: set[Path] = set()
_live_lock = threading.Lock()


def live_native_dirs() -> set[Path]:
    """Resolved native dirs created by this process."""
    with _live_lock:
        return set(_live_native_dirs)


def create_native_dir(root: Path) -> Path:
    """Create ``root`` if needed, then a fresh uniquely named directory under it.

    Raises:
        DirectoryCreationError: If either directory cannot be created.
    """
    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryCreationError(f"Unable to create temporary directory {root}: {e}") from e
    if not root.is_dir():
        raise DirectoryCreationError(f"Unable to create temporary directory {root}")

    try:
        native_dir = Path(tempfile.mkdtemp(prefix=TMP_PREFIX, dir=root))
    except OSError as e:
        raise DirectoryCreationError(
            f"Unable to create native library working directory under {root}: {e}"
        ) from e
    with _live_lock:
        _live_native_dirs.add(native_dir.resolve())
    logger.debug("Created native library working directory %s", native_dir)
    return native_dir


def create_context_dir(parent: Path, label: str, now_ms: int | None = None) -> Path:
    """Create ``<label>.<now_ms>.<attempt>`` under ``parent``.

    ``attempt`` starts at 0 and goes up each time the name is taken.

    Raises:
        DirectoryCreationError: On any failure other than a name clash.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    attempt = 0
    while True:
        trial = parent / f"{label}.{now_ms}.{attempt}"
        try:
            trial.mkdir()
        except FileExistsError:
            attempt += 1
            continue
        except OSError as e:
            raise DirectoryCreationError(
                f"Unable to create native library working directory {trial}: {e}"
            ) from e
        logger.debug("Created isolated context directory %s", trial)
        return trial


# ── Leftover cleanup ────────────────────────────────────────────


@dataclass
class CleanupReport:
    """What a leftover sweep did."""

    root: Path
    deleted: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    failed: list[Path] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "root": str(self.root),
            "deleted": [str(p) for p in self.deleted],
            "skipped": [str(p) for p in self.skipped],
            "failed": [str(p) for p in self.failed],
        }


def delete_recursively(directory: Path) -> bool:
    """Delete files, then subdirectories, then ``directory`` itself.

    Stops at the first failure and returns False; nothing is retried or
    forced. A directory that does not exist counts as deleted.
    """
    try:
        children = list(directory.iterdir())
    except FileNotFoundError:
        return True
    except OSError as e:
        logger.debug("Cannot list %s: %s", directory, e)
        return False

    try:
        for child in children:
            if child.is_dir() and not child.is_symlink():
                if not delete_recursively(child):
                    return False
            else:
                child.unlink()
        directory.rmdir()
    except OSError as e:
        logger.debug("Cannot delete %s: %s", directory, e)
        return False
    return True


def cleanup_leftovers(
    root: Path,
    prefix: str = TMP_PREFIX,
    min_age_ms: int = DEFAULT_LEFTOVER_MIN_AGE_MS,
    now_ms: int | None = None,
    keep: Iterable[Path] = (),
) -> CleanupReport:
    """Remove aged ``<prefix>*`` directories left in ``root`` by earlier runs.

    Directories this process created, and any listed in ``keep``, are
    never touched regardless of age.
    """
    report = CleanupReport(root=root)
    protected = live_native_dirs() | {Path(p).resolve() for p in keep}
    if now_ms is None:
        now_ms = int(time.time() * 1000)

    try:
        candidates = sorted(p for p in root.iterdir() if p.name.startswith(prefix))
    except OSError:
        return report

    for folder in candidates:
        try:
            age = now_ms - int(folder.stat().st_mtime * 1000)
        except OSError:
            continue  # removed by a sibling meanwhile
        if folder.resolve() in protected:
            logger.debug("Not deleting %s: in use by this process", folder)
            report.skipped.append(folder)
            continue
        if age < min_age_ms:
            logger.info("Not deleting leftover folder %s: is %dms old", folder, age)
            report.skipped.append(folder)
            continue
        logger.info("Deleting leftover folder: %s", folder)
        if delete_recursively(folder):
            report.deleted.append(folder)
        else:
            logger.warning("Leftover folder %s was only partially deleted", folder)
            report.failed.append(folder)
    return report


# ── Manager ─────────────────────────────────────────────────────


class WorkDirManager:
    """Owns the private directories one loader extracts into.

    ``native_dir`` is always a fresh ``nativelib-loader_*`` directory.
    With the isolated strategy, ``jni_dir`` is a labelled child of it,
    otherwise the two are the same directory.

    Use as a context manager (or call ``close()``) to tear an isolated
    context down immediately instead of waiting for process exit.
    """

    def __init__(
        self,
        strategy: WorkDirStrategy = WorkDirStrategy.SINGLETON,
        *,
        label: str | None = None,
        tmp_dir: Path | None = None,
        leftover_min_age_ms: int = DEFAULT_LEFTOVER_MIN_AGE_MS,
        deletions: DeletionRegistry | None = None,
    ) -> None:
        self.strategy = strategy
        self.label = label or DEFAULT_CONTEXT_LABEL
        self.deletions = deletions or process_deletions()
        self.temp_root = resolve_temp_root(tmp_dir)
        self._closed = False

        self.leftovers = cleanup_leftovers(
            self.temp_root, TMP_PREFIX, leftover_min_age_ms, keep=self.deletions.pending
        )

        self.native_dir = create_native_dir(self.temp_root)
        self.deletions.schedule(self.native_dir)

        if strategy is WorkDirStrategy.ISOLATED:
            self.jni_dir = create_context_dir(self.native_dir, self.label)
            self.deletions.schedule(self.jni_dir)
        else:
            self.jni_dir = self.native_dir

    @property
    def isolated(self) -> bool:
        return self.strategy is WorkDirStrategy.ISOLATED

    @property
    def closed(self) -> bool:
        return self._closed

    def schedule_deletion(self, path: Path) -> None:
        """Remove ``path`` at process exit (best effort)."""
        self.deletions.schedule(path)

    def close(self) -> None:
        """Tear down an isolated context's jni dir right away.

        The singleton directory is shared by the whole process and is only
        removed at exit.
        """
        if self._closed:
            return
        self._closed = True
        if not self.isolated:
            return

        try:
            files = [p for p in self.jni_dir.iterdir() if p.is_file()]
        except OSError:
            files = []
        for path in files:
            try:
                path.unlink()
            except OSError as e:
                logger.debug("Could not delete %s: %s", path, e)
        try:
            self.jni_dir.rmdir()
        except OSError as e:
            logger.debug("Could not delete %s: %s", self.jni_dir, e)

    def __enter__(self) -> WorkDirManager:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
