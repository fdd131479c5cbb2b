"""
Platform detection for nodekit.

Maps the host operating system and CPU to the tokens used by the Node.js
distribution site (``linux``/``darwin``/``win`` and ``x64``/``arm64``/...).

Usage:
    from nodekit.core.platform import detect_platform

    info = detect_platform()
    print(info.platform, info.arch)  # e.g. "linux x64"
"""

import functools
import platform as _platform
from dataclasses import dataclass
from typing import List

from nodekit.core.exceptions import UnsupportedArchitectureError

SUPPORTED_PLATFORMS = ("linux", "darwin", "win")

SUPPORTED_ARCHITECTURES = (
    "x86",
    "x64",
    "arm64",
    "armv6l",
    "armv7l",
    "ppc64le",
    "s390x",
)


@dataclass(frozen=True)
class PlatformInfo:
    """
    Host platform information.

    Attributes:
        platform: Distribution platform token ('linux', 'darwin', 'win')
        arch: Distribution architecture token ('x64', 'arm64', ...)
    """

    platform: str
    arch: str

    @property
    def is_windows(self) -> bool:
        return self.platform == "win"

    def __str__(self) -> str:
        return f"{self.platform}-{self.arch}"


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """
    Detect current platform information.

    This function is cached - it only runs detection once per process.

    Returns:
        PlatformInfo for the running host

    Raises:
        RuntimeError: If the operating system is not supported
    """
    return PlatformInfo(platform=_detect_os(), arch=_detect_architecture())


def _detect_os() -> str:
    system = _platform.system().lower()

    if system == "windows":
        return "win"
    elif system == "linux":
        return "linux"
    elif system == "darwin":
        return "darwin"
    else:
        raise RuntimeError(f"Unsupported operating system: {system}")


def _detect_architecture() -> str:
    """
    Detect CPU architecture.

    Returns:
        Normalized architecture token; unknown machines are returned as-is
    """
    machine = _platform.machine().lower()

    if machine in ("x86_64", "amd64", "x64"):
        return "x64"
    elif machine in ("aarch64", "arm64"):
        return "arm64"
    elif machine in ("i386", "i686", "x86"):
        return "x86"
    elif machine in ("armv7l", "armv7"):
        return "armv7l"
    elif machine in ("armv6l", "armv6"):
        return "armv6l"
    else:
        # ppc64le and s390x already match their distribution tokens
        return machine


def normalize_architecture(arch: str) -> str:
    """
    Validate an architecture token.

    Args:
        arch: Architecture token (case-insensitive)

    Returns:
        Lower-cased architecture token

    Raises:
        UnsupportedArchitectureError: If the token is not a known architecture
    """
    token = (arch or "").strip().lower()
    if token not in SUPPORTED_ARCHITECTURES:
        raise UnsupportedArchitectureError(arch, get_supported_architectures())
    return token


def get_supported_architectures() -> List[str]:
    return list(SUPPORTED_ARCHITECTURES)


def clear_platform_cache():
    """Clear cached platform detection (used by tests)."""
    detect_platform.cache_clear()
