"""
Archive download with ordered fallback locations.

For each distribution site (primary first, then mirrors) the fetcher knows
which locations may hold a release:

1. The packed archive:
   ``<base>/dist/v<ver>/node-v<ver>-<platform>-<arch>.<ext>``
2. Windows only: loose ``node.exe``/``node.lib`` under
   ``<base>/dist/v<ver>/win-<arch>/`` (non-LTS 4.x-6.x releases)
3. Windows only: loose ``node.exe``/``node.lib`` directly under
   ``<base>/dist/v<ver>/`` (0.x releases)

Locations are tried in order. Only "not found" moves on to the next one;
any other failure stops immediately so transient errors are not hidden
behind a mirror.
"""

import enum
import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import requests

from nodekit.core.config import ToolCacheConfig
from nodekit.core.download import DownloadProgress, download_file
from nodekit.core.exceptions import (
    ArchiveNotFoundError,
    DownloadError,
    FilesystemError,
    HttpStatusError,
)
from nodekit.core.filesystem import safe_rmtree
from nodekit.node.index import ReleaseDescriptor

logger = logging.getLogger(__name__)

NOT_FOUND_STATUSES = (404, 410)


class ArchiveLayout(enum.Enum):
    """How the content of a candidate location is packaged."""

    ARCHIVE = "archive"
    """A single packed archive wrapping a versioned root folder"""

    LOOSE = "loose"
    """Individual files that form the installation root as-is"""


class FetchDecision(enum.Enum):
    """What to do after a location answered with a status code."""

    ACCEPT = "accept"
    NEXT = "next"
    ABORT = "abort"


@dataclass(frozen=True)
class CandidateLocation:
    """One place a release may be downloaded from."""

    name: str
    urls: Tuple[str, ...]
    layout: ArchiveLayout


@dataclass
class StagingArchive:
    """
    Downloaded content waiting to be installed.

    ``path`` is the archive file for ARCHIVE layouts and a directory of the
    downloaded files for LOOSE layouts. ``cleanup`` removes the whole
    download directory and is safe to call more than once.
    """

    path: Path
    release: ReleaseDescriptor
    location: CandidateLocation
    download_dir: Path

    @property
    def layout(self) -> ArchiveLayout:
        return self.location.layout

    def cleanup(self):
        if self.download_dir.exists():
            safe_rmtree(self.download_dir)
            logger.debug(f"Removed download directory: {self.download_dir}")


def archive_extension(platform: str) -> str:
    """Archive format published for a platform family."""
    return "7z" if platform == "win" else "tar.gz"


def archive_basename(release: ReleaseDescriptor) -> str:
    """
    Name of the versioned folder (and archive stem) for a release.

    Example:
        >>> archive_basename(ReleaseDescriptor("10.16.0", "x64", "linux"))
        'node-v10.16.0-linux-x64'
    """
    return f"node-v{release.version}-{release.platform}-{release.architecture}"


def decide(location: CandidateLocation, status_code: int) -> FetchDecision:
    """
    Decide how to continue after a location answered with status_code.

    Args:
        location: Location that was tried
        status_code: HTTP status of the response

    Returns:
        ACCEPT for 2xx, NEXT for not-found (404/410), ABORT otherwise
    """
    if 200 <= status_code < 300:
        return FetchDecision.ACCEPT
    if status_code in NOT_FOUND_STATUSES:
        logger.debug(f"{location.name}: not found ({status_code})")
        return FetchDecision.NEXT
    return FetchDecision.ABORT


def _remove_after_error(download_dir: Path):
    # Cleanup failures are logged so the original error propagates
    try:
        safe_rmtree(download_dir)
    except FilesystemError as e:
        logger.warning(f"Could not remove download directory {download_dir}: {e}")


class ArchiveFetcher:
    """
    Downloads a release from the first location that has it.

    Example:
        >>> fetcher = ArchiveFetcher(config)
        >>> archive = fetcher.fetch(ReleaseDescriptor("10.16.0", "x64", "linux"))
        >>> archive.path.name
        'node-v10.16.0-linux-x64.tar.gz'
    """

    def __init__(
        self,
        config: ToolCacheConfig,
        session: Optional[requests.Session] = None,
        progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    ):
        self.config = config
        self.session = session or requests.Session()
        self.progress_callback = progress_callback

    def candidate_locations(self, release: ReleaseDescriptor) -> List[CandidateLocation]:
        """List download locations for a release in priority order."""
        version = release.version
        arch = release.architecture
        filename = f"{archive_basename(release)}.{archive_extension(release.platform)}"

        locations = []
        for base in self.config.base_urls:
            dist = f"{base}/dist/v{version}"
            locations.append(
                CandidateLocation(
                    name=f"{base} archive",
                    urls=(f"{dist}/{filename}",),
                    layout=ArchiveLayout.ARCHIVE,
                )
            )
            if release.platform == "win":
                locations.append(
                    CandidateLocation(
                        name=f"{base} win-{arch} folder",
                        urls=(
                            f"{dist}/win-{arch}/node.exe",
                            f"{dist}/win-{arch}/node.lib",
                        ),
                        layout=ArchiveLayout.LOOSE,
                    )
                )
                locations.append(
                    CandidateLocation(
                        name=f"{base} release folder",
                        urls=(f"{dist}/node.exe", f"{dist}/node.lib"),
                        layout=ArchiveLayout.LOOSE,
                    )
                )
        return locations

    def fetch(self, release: ReleaseDescriptor) -> StagingArchive:
        """
        Download a release, falling back through candidate locations.

        Args:
            release: Release to download

        Returns:
            StagingArchive owned by the caller (call ``cleanup`` when done)

        Raises:
            ArchiveNotFoundError: If every location reports not found
            DownloadError: On any other HTTP status or transport failure
        """
        tried: List[str] = []

        for location in self.candidate_locations(release):
            download_dir = self._new_download_dir(release)
            try:
                decision = self._try_location(location, download_dir, tried)
            except BaseException:
                _remove_after_error(download_dir)
                raise

            if decision is FetchDecision.ACCEPT:
                logger.info(f"Downloaded Node {release.version} from {location.name}")
                if location.layout is ArchiveLayout.ARCHIVE:
                    path = download_dir / location.urls[0].rsplit("/", 1)[-1]
                else:
                    path = download_dir / "files"
                return StagingArchive(
                    path=path,
                    release=release,
                    location=location,
                    download_dir=download_dir,
                )

            safe_rmtree(download_dir)

        raise ArchiveNotFoundError(release.version, release.architecture, tried)

    def _try_location(
        self, location: CandidateLocation, download_dir: Path, tried: List[str]
    ) -> FetchDecision:
        if location.layout is ArchiveLayout.ARCHIVE:
            target_dir = download_dir
        else:
            target_dir = download_dir / "files"

        for url in location.urls:
            tried.append(url)
            destination = target_dir / url.rsplit("/", 1)[-1]
            logger.info(f"Downloading {url}")
            try:
                download_file(
                    url,
                    destination,
                    session=self.session,
                    timeout=self.config.timeout,
                    progress_callback=self.progress_callback,
                )
            except HttpStatusError as e:
                decision = decide(location, e.status_code)
                if decision is FetchDecision.NEXT:
                    return decision
                raise DownloadError(
                    f"Download from {location.name} failed: {e}", url=url
                ) from e
        return FetchDecision.ACCEPT

    def _new_download_dir(self, release: ReleaseDescriptor) -> Path:
        self.config.temp_root.mkdir(parents=True, exist_ok=True)
        return Path(
            tempfile.mkdtemp(
                prefix=f"download-{release.version}-", dir=self.config.temp_root
            )
        )
