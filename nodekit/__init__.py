"""
nodekit - Node.js runtime acquisition for CI tool caches.

Resolves a version specifier against a shared tool cache and the Node.js
release index, downloading and installing the runtime when needed.

Example:
    >>> from nodekit import acquire
    >>> path = acquire("10.x", "x64")
"""

from nodekit.core.config import ToolCacheConfig, load_config
from nodekit.core.exceptions import (
    ArchiveNotFoundError,
    CacheCorruptionError,
    ConfigError,
    DownloadError,
    ExtractionError,
    FilesystemError,
    HttpStatusError,
    IndexUnavailableError,
    InstallError,
    InvalidSpecifierError,
    LayoutError,
    NodeKitError,
    UnsupportedArchitectureError,
    VersionNotFoundError,
)
from nodekit.node.acquire import NodeAcquirer, acquire, node_bin_dir

__version__ = "0.1.0"

__all__ = [
    "acquire",
    "node_bin_dir",
    "NodeAcquirer",
    "ToolCacheConfig",
    "load_config",
    "NodeKitError",
    "ConfigError",
    "InvalidSpecifierError",
    "UnsupportedArchitectureError",
    "IndexUnavailableError",
    "VersionNotFoundError",
    "ArchiveNotFoundError",
    "DownloadError",
    "HttpStatusError",
    "InstallError",
    "ExtractionError",
    "LayoutError",
    "CacheCorruptionError",
    "FilesystemError",
]
