"""
Shared tool cache with completion markers.

Layout::

    <cache_root>/<tool>/<version>/<arch>/            installed content
    <cache_root>/<tool>/<version>/<arch>.complete    completion marker

The marker is the only proof that an installation finished. Content without
a marker is an interrupted install and is ignored. New content is staged
under ``temp_root`` and moved into the cache before the marker is written,
so a reader can never see a marker next to incomplete content.
"""

import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from nodekit.core.config import ToolCacheConfig
from nodekit.core.exceptions import CacheCorruptionError, FilesystemError
from nodekit.core.filesystem import atomic_write, move_tree, safe_rmtree
from nodekit.core.platform import normalize_architecture
from nodekit.core.versions import (
    clean_version,
    parse_specifier,
    resolve,
    sort_versions,
)

logger = logging.getLogger(__name__)

MARKER_SUFFIX = ".complete"


@dataclass(frozen=True)
class CacheEntry:
    """A completed installation in the tool cache."""

    tool_name: str
    version: str
    architecture: str
    path: Path
    marker_path: Path


@dataclass(frozen=True)
class StagingHandle:
    """A writable staging directory reserved for one cache key."""

    tool_name: str
    version: str
    architecture: str
    path: Path


class CacheStore:
    """
    Finds, stages and commits installations in the shared tool cache.

    Example:
        >>> store = CacheStore(config)
        >>> entry = store.find("node", "10.x", "x64")
        >>> if entry is None:
        ...     handle = store.reserve("node", "10.16.0", "x64")
        ...     # ... populate handle.path ...
        ...     entry = store.commit(handle)
    """

    def __init__(self, config: ToolCacheConfig):
        self.config = config
        self.cache_root = Path(config.cache_root)
        self.temp_root = Path(config.temp_root)

    def entry_path(self, tool_name: str, version: str, arch: str) -> Path:
        """Content directory for a cache key."""
        return self.cache_root / tool_name / version / arch

    def marker_path(self, tool_name: str, version: str, arch: str) -> Path:
        """Completion marker for a cache key."""
        return self.cache_root / tool_name / version / f"{arch}{MARKER_SUFFIX}"

    def is_complete(self, tool_name: str, version: str, arch: str) -> bool:
        return self.marker_path(tool_name, version, arch).is_file()

    def find(
        self, tool_name: str, specifier: str, arch: Optional[str] = None
    ) -> Optional[CacheEntry]:
        """
        Find the best completed installation matching specifier.

        Args:
            tool_name: Cache namespace (e.g. "node")
            specifier: Exact version, partial or range
            arch: Architecture token (default: config.default_arch)

        Returns:
            CacheEntry for the highest matching completed install, or None

        Raises:
            InvalidSpecifierError: If specifier is malformed
            CacheCorruptionError: If the matched marker exists but its
                content directory is missing or unreadable
        """
        arch = normalize_architecture(arch or self.config.default_arch)
        version_range = parse_specifier(specifier)

        explicit = clean_version(specifier)
        if explicit is not None:
            version = explicit if self.is_complete(tool_name, explicit, arch) else None
        else:
            version = resolve(version_range, self.list_versions(tool_name, arch))

        if version is None:
            logger.debug(f"Cache miss: {tool_name} {specifier} ({arch})")
            return None

        entry = CacheEntry(
            tool_name=tool_name,
            version=version,
            architecture=arch,
            path=self.entry_path(tool_name, version, arch),
            marker_path=self.marker_path(tool_name, version, arch),
        )
        self._check_content(entry)

        logger.info(f"Found in cache: {tool_name} {version} ({arch}) at {entry.path}")
        return entry

    def list_versions(self, tool_name: str, arch: Optional[str] = None) -> List[str]:
        """
        List versions with a completed install for arch, oldest first.

        Directories without a completion marker are not listed.
        """
        arch = normalize_architecture(arch or self.config.default_arch)
        tool_dir = self.cache_root / tool_name
        if not tool_dir.is_dir():
            return []

        versions = [
            child.name
            for child in tool_dir.iterdir()
            if child.is_dir() and self.is_complete(tool_name, child.name, arch)
        ]
        return sort_versions(versions)

    def reserve(self, tool_name: str, version: str, arch: str) -> StagingHandle:
        """
        Create a fresh staging directory for a cache key.

        The directory lives under ``temp_root``, outside the cache namespace.
        """
        self.temp_root.mkdir(parents=True, exist_ok=True)
        path = Path(
            tempfile.mkdtemp(
                prefix=f"{tool_name}-{version}-{arch}-", dir=self.temp_root
            )
        )
        logger.debug(f"Reserved staging directory: {path}")
        return StagingHandle(
            tool_name=tool_name, version=version, architecture=arch, path=path
        )

    def commit(
        self, handle: StagingHandle, content_root: Optional[Path] = None
    ) -> CacheEntry:
        """
        Promote staged content into the cache and mark it complete.

        Any previous install of the same key is replaced wholesale: its
        marker is removed first, then its content. The new marker is
        written last.

        Args:
            handle: Handle returned by ``reserve``
            content_root: Directory inside the staging area to promote
                (default: the staging directory itself)

        Returns:
            CacheEntry for the committed install

        Raises:
            FilesystemError: If the content cannot be moved into the cache
        """
        source = Path(content_root) if content_root is not None else handle.path
        destination = self.entry_path(
            handle.tool_name, handle.version, handle.architecture
        )
        marker = self.marker_path(handle.tool_name, handle.version, handle.architecture)

        self._clear(destination, marker)
        try:
            move_tree(source, destination)
        except FilesystemError:
            if not destination.exists():
                raise
            # Another writer committed the same key in the meantime
            logger.info(f"Concurrent commit detected, replacing: {destination}")
            self._clear(destination, marker)
            move_tree(source, destination)
        atomic_write(marker, f"{datetime.now().isoformat()}\n")

        self.discard(handle)

        logger.info(
            f"Cached {handle.tool_name} {handle.version} ({handle.architecture}) "
            f"at {destination}"
        )
        return CacheEntry(
            tool_name=handle.tool_name,
            version=handle.version,
            architecture=handle.architecture,
            path=destination,
            marker_path=marker,
        )

    def discard(self, handle: StagingHandle):
        """Remove a staging directory entirely. Safe to call twice."""
        if handle.path.exists():
            safe_rmtree(handle.path, require_prefix=self.temp_root)
            logger.debug(f"Discarded staging directory: {handle.path}")

    def _clear(self, destination: Path, marker: Path):
        # Marker before content
        marker.unlink(missing_ok=True)
        if destination.exists():
            logger.info(f"Replacing existing cache content: {destination}")
            safe_rmtree(destination, require_prefix=self.cache_root)

    def _check_content(self, entry: CacheEntry):
        if not entry.path.exists():
            raise CacheCorruptionError(entry.path, "marker present but content missing")
        if not entry.path.is_dir():
            raise CacheCorruptionError(entry.path, "content is not a directory")
        if not os.access(entry.path, os.R_OK | os.X_OK):
            raise CacheCorruptionError(entry.path, "content is not readable")
