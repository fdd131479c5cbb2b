"""
Core functionality for nodekit.

Configuration, platform detection, version matching, the tool cache and
the filesystem/network primitives the acquisition pipeline builds on.
"""

from .cache_store import CacheEntry, CacheStore, StagingHandle
from .config import ToolCacheConfig, load_config
from .platform import PlatformInfo, detect_platform, normalize_architecture
from .versions import (
    VersionRange,
    clean_version,
    is_explicit_version,
    parse_specifier,
    resolve,
)

__all__ = [
    "CacheEntry",
    "CacheStore",
    "StagingHandle",
    "ToolCacheConfig",
    "load_config",
    "PlatformInfo",
    "detect_platform",
    "normalize_architecture",
    "VersionRange",
    "clean_version",
    "is_explicit_version",
    "parse_specifier",
    "resolve",
]
