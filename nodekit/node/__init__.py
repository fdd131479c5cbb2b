"""
Node.js specific acquisition: release index, downloads, installation.
"""

from nodekit.node.acquire import NodeAcquirer, acquire, node_bin_dir
from nodekit.node.fetcher import (
    ArchiveFetcher,
    ArchiveLayout,
    CandidateLocation,
    FetchDecision,
    StagingArchive,
    decide,
)
from nodekit.node.index import ReleaseDescriptor, RemoteIndexClient
from nodekit.node.installer import (
    ArchiveInstaller,
    Extractor,
    LooseFilesExtractor,
    SevenZipExtractor,
    TarGzExtractor,
    extractor_for,
)

__all__ = [
    "NodeAcquirer",
    "acquire",
    "node_bin_dir",
    "ArchiveFetcher",
    "ArchiveLayout",
    "CandidateLocation",
    "FetchDecision",
    "StagingArchive",
    "decide",
    "ReleaseDescriptor",
    "RemoteIndexClient",
    "ArchiveInstaller",
    "Extractor",
    "LooseFilesExtractor",
    "SevenZipExtractor",
    "TarGzExtractor",
    "extractor_for",
]
