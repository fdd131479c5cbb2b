"""
Node.js acquisition: cache lookup, resolution, download and install.

The pipeline runs these steps in order, stopping at the first terminal
outcome:

1. CHECK_CACHE  - a completed cached install satisfies the specifier
2. LIST_REMOTE  - fetch the release index
3. RESOLVE      - pick the highest published match
4. FETCH        - download from the first location that has it
5. INSTALL      - extract and verify the installation root
6. COMMIT       - promote into the cache and write the completion marker

Staging state is removed on every exit path, including cancellation.
"""

import logging
from pathlib import Path
from typing import Callable, Optional

import requests

from nodekit.core.cache_store import CacheStore
from nodekit.core.config import ToolCacheConfig, load_config
from nodekit.core.download import DownloadProgress
from nodekit.core.exceptions import ArchiveNotFoundError, VersionNotFoundError
from nodekit.core.platform import normalize_architecture
from nodekit.core.versions import parse_specifier, resolve
from nodekit.node.fetcher import ArchiveFetcher
from nodekit.node.index import RemoteIndexClient
from nodekit.node.installer import ArchiveInstaller

logger = logging.getLogger(__name__)


def node_bin_dir(install_path: Path, platform: str) -> Path:
    """
    Directory holding the Node executable for an installation.

    Example:
        >>> node_bin_dir(Path("/cache/node/10.16.0/x64"), "linux")
        PosixPath('/cache/node/10.16.0/x64/bin')
    """
    if platform == "win":
        return install_path
    return install_path / "bin"


class NodeAcquirer:
    """
    Ensures a Node.js runtime matching a specifier is in the tool cache.

    Example:
        >>> acquirer = NodeAcquirer(ToolCacheConfig.from_environment())
        >>> path = acquirer.acquire("10.x", "x64")
        >>> print(path)
        /opt/hostedtoolcache/node/10.24.1/x64
    """

    def __init__(
        self,
        config: ToolCacheConfig,
        session: Optional[requests.Session] = None,
        cache: Optional[CacheStore] = None,
        index: Optional[RemoteIndexClient] = None,
        fetcher: Optional[ArchiveFetcher] = None,
        installer: Optional[ArchiveInstaller] = None,
        progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    ):
        self.config = config
        self.session = session or requests.Session()
        self.cache = cache or CacheStore(config)
        self.index = index or RemoteIndexClient(config, self.session)
        self.fetcher = fetcher or ArchiveFetcher(
            config, self.session, progress_callback
        )
        self.installer = installer or ArchiveInstaller()

    def acquire(self, specifier: str, arch: Optional[str] = None) -> Path:
        """
        Return the path of an installed Node matching specifier.

        Args:
            specifier: Exact version, partial or range (e.g. "10.16.0", "10")
            arch: Architecture token (default: config.default_arch)

        Returns:
            Absolute path of the installation root in the tool cache

        Raises:
            InvalidSpecifierError: If specifier is malformed (before any I/O)
            UnsupportedArchitectureError: If arch is unknown
            IndexUnavailableError: If the release index cannot be read
            VersionNotFoundError: If no release matches or no location has it
            DownloadError: On other download failures
            ExtractionError: If the archive cannot be unpacked
            LayoutError: If the archive is not a Node distribution
            CacheCorruptionError: If a matching cache entry is damaged
        """
        version_range = parse_specifier(specifier)
        arch = normalize_architecture(arch or self.config.default_arch)
        tool = self.config.tool_name

        entry = self.cache.find(tool, specifier, arch)
        if entry is not None:
            return entry.path.resolve()

        releases = self.index.list_available(arch)
        version = resolve(version_range, [r.version for r in releases])
        if version is None:
            raise VersionNotFoundError(specifier, self.config.platform, arch)

        release = next(r for r in releases if r.version == version)
        logger.info(f"Resolved '{specifier}' to Node {version} ({arch})")

        try:
            archive = self.fetcher.fetch(release)
        except ArchiveNotFoundError as e:
            raise VersionNotFoundError(specifier, self.config.platform, arch) from e

        handle = None
        try:
            handle = self.cache.reserve(tool, version, arch)
            root = self.installer.install(archive, self.config.platform, handle.path)
            entry = self.cache.commit(handle, root)
        finally:
            archive.cleanup()
            if handle is not None:
                self.cache.discard(handle)

        return entry.path.resolve()


def acquire(
    specifier: str,
    arch: Optional[str] = None,
    config: Optional[ToolCacheConfig] = None,
) -> Path:
    """
    Convenience function to acquire Node.js in one call.

    Loads configuration from the environment (and ``./nodekit.yaml``) when
    none is given. For several acquisitions, create a NodeAcquirer and
    reuse it.

    Example:
        >>> from nodekit import acquire
        >>> acquire("10.16.0")
        PosixPath('/opt/hostedtoolcache/node/10.16.0/x64')
    """
    acquirer = NodeAcquirer(config or load_config())
    return acquirer.acquire(specifier, arch)
