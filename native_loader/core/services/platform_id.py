"""
Platform identification: raw OS/arch strings to a supported ``Platform``.

``identify_platform`` is pure and never raises; anything it does not
recognise maps to ``Platform.UNKNOWN``, which callers treat as "no native
library available".

The host value is memoized by a ``PlatformIdentifier`` instance, so the
probe runs at most once per identifier no matter how many threads ask.
"""

from __future__ import annotations

import logging
import platform as _platform
import struct
import threading

from native_loader.core.models.platform import (
    LIBRARY_NAMING,
    Platform,
    Processor,
)

logger = logging.getLogger(__name__)

DELIM = "/"


# ── Pure derivation ─────────────────────────────────────────────

def identify_processor(arch_name: str) -> Processor:
    """Derive the CPU family from an architecture string."""
    arch = (arch_name or "").lower()
    if "arm" in arch and "aarch64" not in arch:
        return Processor.ARM
    if "aarch64" in arch:
        return Processor.AARCH64
    if "ppc" in arch:
        return Processor.PPC_64 if "64" in arch else Processor.PPC_32
    if "86" in arch or "amd" in arch:
        return Processor.INTEL_64 if "64" in arch else Processor.INTEL_32
    return Processor.UNKNOWN


_LINUX = {
    Processor.INTEL_32: Platform.LINUX_X86_32,
    Processor.INTEL_64: Platform.LINUX_X86_64,
    Processor.ARM: Platform.LINUX_ARM,
    Processor.AARCH64: Platform.LINUX_ARM64,
}
_AIX = {
    Processor.PPC_32: Platform.AIX_32,
    Processor.PPC_64: Platform.AIX_64,
}
_WINDOWS = {
    Processor.INTEL_32: Platform.WINDOWS_X86_32,
    Processor.INTEL_64: Platform.WINDOWS_X86_64,
}
_OSX = {
    Processor.INTEL_32: Platform.OSX_X86_32,
    Processor.INTEL_64: Platform.OSX_X86_64,
    Processor.PPC_32: Platform.OSX_PPC,
}

# Checked in order: the first OS-name marker that matches picks the table.
_OS_TABLES: tuple[tuple[tuple[str, ...], dict[Processor, Platform]], ...] = (
    (("nix", "nux"), _LINUX),
    (("aix",), _AIX),
    (("win",), _WINDOWS),
    (("mac",), _OSX),
)


def identify_platform(os_name: str, arch_name: str) -> Platform:
    """Map an OS name and CPU architecture string to a ``Platform``.

    >>> identify_platform("Linux", "amd64")
    <Platform.LINUX_X86_64: 'linux-x86_64'>
    """
    processor = identify_processor(arch_name)
    if processor is Processor.UNKNOWN:
        return Platform.UNKNOWN

    name = (os_name or "").lower()
    for markers, table in _OS_TABLES:
        if any(marker in name for marker in markers):
            return table.get(processor, Platform.UNKNOWN)
    return Platform.UNKNOWN


# ── Naming conventions ──────────────────────────────────────────

def platform_directory_name(platform: Platform) -> str:
    return platform.directory_name


def platform_library_file_name(platform: Platform, logical_name: str) -> str | None:
    """Mangled file name for ``logical_name`` on ``platform``.

    Returns None for ``Platform.UNKNOWN``.
    """
    naming = LIBRARY_NAMING.get(platform.family)
    if naming is None:
        return None
    prefix, suffix = naming
    return f"{prefix}{logical_name}{suffix}"


def normalize_prefix(prefix: str) -> str:
    """Make a non-empty resource prefix end with exactly one delimiter.

    The empty prefix stays empty: it addresses the resource root itself.
    """
    if prefix == "" or prefix.endswith(DELIM):
        return prefix
    return prefix + DELIM


def platform_library_path(prefix: str, platform: Platform) -> str:
    """Full search prefix: ``<prefix>/<platform-dir>/``."""
    return normalize_prefix(prefix) + platform.directory_name + DELIM


# ── Host probing ────────────────────────────────────────────────

def host_os_name() -> str:
    """OS name of the running host in the form the matching rules expect."""
    system = _platform.system()
    # "Darwin" would otherwise match the windows marker
    if system == "Darwin":
        return "Mac OS X"
    return system


def host_arch_name() -> str:
    """CPU architecture of the running interpreter.

    A 32-bit interpreter on a 64-bit x86 host can only load 32-bit
    binaries, so it reports ``x86``.
    """
    machine = _platform.machine()
    if struct.calcsize("P") * 8 == 32 and machine.lower() in ("x86_64", "amd64"):
        return "x86"
    return machine


class PlatformIdentifier:
    """Lazily computes and caches the host ``Platform``.

    One instance is built per process (or per test) and handed to every
    component that needs the platform.
    """

    def __init__(
        self,
        os_name: str | None = None,
        arch_name: str | None = None,
    ) -> None:
        self._os_name = os_name
        self._arch_name = arch_name
        self._lock = threading.Lock()
        self._platform: Platform | None = None

    @property
    def os_name(self) -> str:
        return self._os_name if self._os_name is not None else host_os_name()

    @property
    def arch_name(self) -> str:
        return self._arch_name if self._arch_name is not None else host_arch_name()

    def current(self) -> Platform:
        """The host platform, computed on first call."""
        if self._platform is not None:
            return self._platform
        with self._lock:
            if self._platform is None:
                os_name, arch_name = self.os_name, self.arch_name
                self._platform = identify_platform(os_name, arch_name)
                logger.debug(
                    "Platform is %s (os=%r, arch=%r)",
                    self._platform.value,
                    os_name,
                    arch_name,
                )
            return self._platform

    def library_file_name(self, logical_name: str) -> str | None:
        return platform_library_file_name(self.current(), logical_name)

    def library_path(self, prefix: str) -> str:
        return platform_library_path(prefix, self.current())
