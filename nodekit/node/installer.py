"""
Archive extraction and installation-root detection.

Node distribution archives wrap everything in one versioned folder
(``node-v10.16.0-linux-x64/``). The installer extracts into a staging
directory, requires exactly one top-level folder, and checks that the Node
binary is where it should be before handing the folder back for promotion
into the cache.
"""

import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path

from nodekit.core.exceptions import ExtractionError, LayoutError
from nodekit.core.filesystem import extract_7z, extract_tar_gz
from nodekit.node.fetcher import ArchiveLayout, StagingArchive

logger = logging.getLogger(__name__)


class Extractor(ABC):
    """Unpacks downloaded content into a destination directory."""

    name = "extractor"

    @abstractmethod
    def extract(self, source: Path, destination: Path) -> None:
        """
        Unpack source into destination.

        Raises:
            ExtractionError: If the content cannot be unpacked
        """


class TarGzExtractor(Extractor):
    name = "tar.gz"

    def extract(self, source: Path, destination: Path) -> None:
        extract_tar_gz(source, destination)


class SevenZipExtractor(Extractor):
    name = "7z"

    def extract(self, source: Path, destination: Path) -> None:
        extract_7z(source, destination)


class LooseFilesExtractor(Extractor):
    """Copies individually downloaded files (no archive to unpack)."""

    name = "files"

    def extract(self, source: Path, destination: Path) -> None:
        if not source.is_dir():
            raise ExtractionError(f"Downloaded files not found: {source}")
        destination.mkdir(parents=True, exist_ok=True)
        try:
            for item in source.iterdir():
                shutil.copy2(item, destination / item.name)
        except OSError as e:
            raise ExtractionError(f"Failed to copy {source}: {e}") from e


def extractor_for(platform: str, layout: ArchiveLayout) -> Extractor:
    """
    Select the extractor for a platform family and download layout.

    Example:
        >>> extractor_for("win", ArchiveLayout.ARCHIVE).name
        '7z'
    """
    if layout is ArchiveLayout.LOOSE:
        return LooseFilesExtractor()
    if platform == "win":
        return SevenZipExtractor()
    return TarGzExtractor()


def node_binary_path(root: Path, platform: str) -> Path:
    """Location of the Node executable inside an installation root."""
    if platform == "win":
        return root / "node.exe"
    return root / "bin" / "node"


def find_archive_root(extract_dir: Path) -> Path:
    """
    Return the single versioned folder an archive unpacked into.

    Raises:
        LayoutError: If there is not exactly one top-level entry, or it is
            not a directory
    """
    items = list(extract_dir.iterdir())
    if len(items) != 1:
        names = ", ".join(sorted(item.name for item in items)) or "nothing"
        raise LayoutError(
            f"Expected exactly one top-level folder in archive, found: {names}"
        )

    root = items[0]
    if not root.is_dir():
        raise LayoutError(f"Top-level archive entry is not a folder: {root.name}")
    return root


class ArchiveInstaller:
    """Turns a StagingArchive into a verified installation root."""

    def install(
        self, archive: StagingArchive, platform: str, destination: Path
    ) -> Path:
        """
        Extract an archive and locate its installation root.

        Args:
            archive: Content downloaded by the fetcher
            platform: Platform token selecting the archive format
            destination: Empty staging directory to extract into

        Returns:
            The installation root inside destination

        Raises:
            ExtractionError: If the archive cannot be unpacked
            LayoutError: If the unpacked layout is not a Node distribution

        Both errors carry the release version, architecture and download
        location on their ``version``, ``architecture`` and ``location``
        attributes.
        """
        release = archive.release
        context = {
            "version": release.version,
            "architecture": release.architecture,
            "location": archive.location.name,
        }
        source = (
            f"Node {release.version} ({release.architecture}) "
            f"from {archive.location.name}"
        )

        extractor = extractor_for(platform, archive.layout)
        logger.info(f"Extracting {archive.path.name} ({extractor.name})")
        try:
            extractor.extract(archive.path, destination)
        except ExtractionError as e:
            raise ExtractionError(f"Cannot unpack {source}: {e}", **context) from e

        try:
            if archive.layout is ArchiveLayout.ARCHIVE:
                root = find_archive_root(destination)
            else:
                root = destination
        except LayoutError as e:
            raise LayoutError(f"Unexpected layout in {source}: {e}", **context) from e

        binary = node_binary_path(root, platform)
        if not binary.is_file():
            raise LayoutError(
                f"Node binary not found at {binary.relative_to(destination)} "
                f"in {source}",
                **context,
            )

        logger.debug(f"Installation root: {root}")
        return root
