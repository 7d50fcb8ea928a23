"""
System descriptor: an optional, finer-grained host fingerprint.

The descriptor adds a ``META-INF/lib/<descriptor>/`` resource prefix so
a bundle can ship binaries built against a specific C/C++ runtime.
It is a heuristic; every probe failure degrades to ``unknown``.
"""

from __future__ import annotations

import logging
import platform
import re
from collections.abc import Callable
from pathlib import Path

logger = logging.getLogger(__name__)

# Pluggable: the orchestrator accepts any callable with this shape.
DescriptorProvider = Callable[[], "str | None"]

_LIBC = Path("/lib/libc.so.6")
_LIBSTDCXX_CANDIDATES = (Path("/usr/lib/libstdc++.so.6"), Path("/usr/lib/libstdc++.so.5"))

_LIBC_RE = re.compile(r".*/libc-(\d+)\.(\d+)\..*")
_LIBSTDCXX_RE = re.compile(r".*/libstdc\+\+\.so\.(\d+)\.0\.(\d+)")


def _cxx_version(major: str, minor: str) -> str:
    if major == "5":
        return "5"
    if major == "6":
        return "6" if int(minor) < 9 else f"6{minor}"
    return f"{major}{minor}"


def _linux_runtime_tag(
    libc: Path = _LIBC,
    libstdcxx_candidates: tuple[Path, ...] = _LIBSTDCXX_CANDIDATES,
) -> str:
    """``c<major><minor>cxx<ver>`` from the libc / libstdc++ symlink targets."""
    libc_dest = str(libc.resolve())
    libc_m = _LIBC_RE.match(libc_dest)
    if not libc_m:
        raise ValueError(f"libc symlink contains unexpected destination: {libc_dest}")

    libstdcxx = next((p for p in libstdcxx_candidates if p.exists()), libstdcxx_candidates[-1])
    cxx_dest = str(libstdcxx.resolve())
    cxx_m = _LIBSTDCXX_RE.match(cxx_dest)
    if not cxx_m:
        raise ValueError(f"libstdc++ symlink contains unexpected destination: {cxx_dest}")

    cxxver = _cxx_version(cxx_m.group(1), cxx_m.group(2))
    return f"c{libc_m.group(1)}{libc_m.group(2)}cxx{cxxver}"


def guess_system_descriptor(
    os_name: str | None = None,
    arch_name: str | None = None,
) -> str:
    """Guess ``<arch>-<os>-<runtime>`` for the running host."""
    arch = arch_name if arch_name is not None else platform.machine()
    os_name = os_name if os_name is not None else platform.system()
    extra = "unknown"
    if os_name == "Linux":
        try:
            extra = _linux_runtime_tag()
        except (OSError, ValueError) as e:
            logger.debug("Cannot derive runtime tag: %s", e)
            extra = "unknown"
    return f"{arch}-{os_name}-{extra}"


def system_descriptor(override: str | None = None) -> str | None:
    """Configured descriptor (``Settings.sysinfo``), else a guess."""
    if override:
        return override
    return guess_system_descriptor()
