"""
Client for the Node.js distribution index (``/dist/index.json``).

The index is a JSON list of releases, each with a ``version`` ("v10.16.0")
and a ``files`` list of platform tokens ("linux-x64", "osx-x64-tar",
"win-x64-exe", ...). Only releases that publish a build for the configured
platform and requested architecture are returned.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

import requests
from requests.exceptions import RequestException

from nodekit.core.config import ToolCacheConfig
from nodekit.core.exceptions import IndexUnavailableError
from nodekit.core.platform import normalize_architecture
from nodekit.core.versions import clean_version

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReleaseDescriptor:
    """A published release available for one platform/architecture."""

    version: str
    """Concrete version without the leading "v" (e.g. "10.16.0")"""

    architecture: str
    """Architecture token (e.g. "x64")"""

    platform: str
    """Platform token (e.g. "linux", "darwin", "win")"""

    lts: Optional[str] = None
    """LTS codename, or None for non-LTS releases"""


def platform_file_token(platform: str, arch: str) -> str:
    """
    Get the ``files`` token that marks a build for platform/arch.

    Windows releases are matched on the installer-less ``exe`` token, which
    is published even for releases whose archives live in fallback folders.

    Example:
        >>> platform_file_token("darwin", "x64")
        'osx-x64-tar'
    """
    if platform == "linux":
        return f"linux-{arch}"
    if platform == "darwin":
        return f"osx-{arch}-tar"
    if platform == "win":
        return f"win-{arch}-exe"
    raise ValueError(f"Unexpected platform '{platform}'")


class RemoteIndexClient:
    """
    Fetches the list of published releases.

    Example:
        >>> client = RemoteIndexClient(config)
        >>> releases = client.list_available("x64")
        >>> releases[0].version
        '22.3.0'
    """

    def __init__(
        self, config: ToolCacheConfig, session: Optional[requests.Session] = None
    ):
        self.config = config
        self.session = session or requests.Session()

    def list_available(self, arch: Optional[str] = None) -> List[ReleaseDescriptor]:
        """
        List releases published for the configured platform and arch.

        Args:
            arch: Architecture token (default: config.default_arch)

        Returns:
            Release descriptors in index order (newest first on nodejs.org)

        Raises:
            IndexUnavailableError: On network, HTTP, JSON or format errors
        """
        arch = normalize_architecture(arch or self.config.default_arch)
        url = self.config.index_url
        token = platform_file_token(self.config.platform, arch)

        logger.info(f"Querying release index: {url}")
        entries = self._fetch(url)

        releases = []
        for entry in entries:
            release = self._to_descriptor(entry, token, arch)
            if release is not None:
                releases.append(release)

        logger.debug(f"{len(releases)} releases offer '{token}'")
        return releases

    def _fetch(self, url: str) -> List[Any]:
        try:
            response = self.session.get(url, timeout=self.config.timeout)
            response.raise_for_status()
            data = response.json()
        except RequestException as e:
            raise IndexUnavailableError(url, str(e)) from e
        except ValueError as e:
            raise IndexUnavailableError(url, f"invalid JSON: {e}") from e

        if not isinstance(data, list):
            raise IndexUnavailableError(url, "expected a JSON list of releases")
        return data

    def _to_descriptor(
        self, entry: Any, token: str, arch: str
    ) -> Optional[ReleaseDescriptor]:
        if not isinstance(entry, dict):
            logger.warning(f"Ignoring malformed index entry: {entry!r}")
            return None

        files = entry.get("files") or []
        if not isinstance(files, list):
            logger.warning(f"Ignoring index entry with malformed files: {entry!r}")
            return None
        if token not in files:
            return None

        version = clean_version(str(entry.get("version", "")))
        if version is None:
            logger.warning(f"Ignoring index entry with bad version: {entry!r}")
            return None

        lts = entry.get("lts")
        return ReleaseDescriptor(
            version=version,
            architecture=arch,
            platform=self.config.platform,
            lts=lts if isinstance(lts, str) else None,
        )
