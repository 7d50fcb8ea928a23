"""
Shared test fixtures and configuration.
"""

import zipfile
from pathlib import Path

import pytest

from native_loader.core.services.platform_id import PlatformIdentifier
from native_loader.core.services.resources import ResourceRoot
from native_loader.core.services.workdir import DeletionRegistry


class RecordingLoader:
    """Stands in for ctypes.CDLL: records paths, rejects on request."""

    def __init__(self, reject: tuple[str, ...] = ()) -> None:
        self.calls: list[Path] = []
        self.reject = reject

    def __call__(self, path: Path) -> object:
        self.calls.append(path)
        if any(marker in str(path) for marker in self.reject):
            raise OSError(f"invalid ELF header: {path}")
        return {"handle": str(path)}


def write_resource(root: Path, resource_path: str, content: bytes) -> Path:
    """Create ``root/<resource_path>`` with ``content``."""
    target = root.joinpath(*resource_path.split("/"))
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)
    return target


@pytest.fixture
def linux64() -> PlatformIdentifier:
    return PlatformIdentifier(os_name="Linux", arch_name="amd64")


@pytest.fixture
def deletions() -> DeletionRegistry:
    """A deletion registry that is never hooked into interpreter exit."""
    return DeletionRegistry(register_atexit=False)


@pytest.fixture
def tmp_root(tmp_path: Path) -> Path:
    """Temp root that working directories are created under."""
    root = tmp_path / "tmp"
    root.mkdir()
    return root


@pytest.fixture
def bundle_dir(tmp_path: Path) -> Path:
    """An empty directory resource root."""
    root = tmp_path / "bundle"
    root.mkdir()
    return root


@pytest.fixture
def bundle_root(bundle_dir: Path) -> ResourceRoot:
    return ResourceRoot.from_spec(str(bundle_dir))


@pytest.fixture
def make_zip(tmp_path: Path):
    """Build a zip archive resource root from a {path: bytes} mapping."""

    def _make(entries: dict[str, bytes], name: str = "app.whl") -> Path:
        archive = tmp_path / name
        with zipfile.ZipFile(archive, "w") as zf:
            for resource_path, content in entries.items():
                zf.writestr(resource_path, content)
        return archive

    return _make


@pytest.fixture
def recording_loader() -> RecordingLoader:
    return RecordingLoader()
