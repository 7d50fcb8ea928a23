"""
Platform model: the closed set of hosts we ship native binaries for.

A ``Platform`` value doubles as the resource directory segment under
which a binary is packaged (``natives/linux-x86_64/libfoo.so``), so the
enum values are part of the on-disk layout and must never change.
"""

from __future__ import annotations

from enum import Enum


class Processor(str, Enum):
    """CPU family of the running interpreter (intermediate, never persisted)."""

    UNKNOWN = "unknown"
    INTEL_32 = "intel-32"
    INTEL_64 = "intel-64"
    PPC_32 = "ppc-32"
    PPC_64 = "ppc-64"
    ARM = "arm"
    AARCH64 = "aarch64"


class Platform(str, Enum):
    """Supported OS/CPU combination."""

    UNKNOWN = "unknown"
    LINUX_X86_32 = "linux-x86_32"
    LINUX_X86_64 = "linux-x86_64"
    LINUX_ARM = "linux-arm"
    LINUX_ARM64 = "linux-arm64"
    WINDOWS_X86_32 = "windows-x86_32"
    WINDOWS_X86_64 = "windows-x86_64"
    OSX_X86_32 = "osx-x86_32"
    OSX_X86_64 = "osx-x86_64"
    OSX_PPC = "osx-ppc"
    AIX_32 = "aix-32"
    AIX_64 = "aix-64"

    @property
    def family(self) -> str:
        """OS family: ``linux``, ``aix``, ``windows``, ``osx`` or ``unknown``."""
        if self is Platform.UNKNOWN:
            return "unknown"
        head = self.value.split("-", 1)[0]
        return head

    @property
    def directory_name(self) -> str:
        """Lowercase resource-path segment for this platform."""
        return self.value.lower()

    @property
    def supported(self) -> bool:
        return self is not Platform.UNKNOWN


# Per-family (prefix, suffix) for the mangled library file name.
LIBRARY_NAMING: dict[str, tuple[str, str]] = {
    "linux": ("lib", ".so"),
    "aix": ("lib", ".so"),
    "windows": ("", ".dll"),
    "osx": ("lib", ".dylib"),
}

# Extensions the osx dynamic loader has historically mapped library names to.
OSX_ALTERNATE_EXTENSIONS: dict[str, str] = {
    ".dylib": ".jnilib",
    ".jnilib": ".dylib",
}
