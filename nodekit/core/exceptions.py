"""
Centralized exception hierarchy for nodekit.

Every failure surfaced by the acquisition pipeline is one of the typed
errors below, so callers can tell "not found" apart from transport,
extraction and cache problems.
"""

from typing import List, Optional


# ============================================================================
# Base Exceptions
# ============================================================================


class NodeKitError(Exception):
    """Base exception for all nodekit errors."""

    pass


class ConfigError(NodeKitError):
    """Raised when configuration values are missing or invalid."""

    pass


# ============================================================================
# Specifier Exceptions
# ============================================================================


class InvalidSpecifierError(NodeKitError):
    """Raised when a version specifier cannot be parsed."""

    def __init__(self, specifier: str, reason: str = ""):
        self.specifier = specifier
        self.reason = reason
        msg = f"Invalid version specifier: '{specifier}'"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class UnsupportedArchitectureError(NodeKitError):
    """Raised when an architecture token is not recognized."""

    def __init__(self, architecture: str, supported: List[str]):
        self.architecture = architecture
        self.supported = supported
        super().__init__(
            f"Unsupported architecture: '{architecture}'. "
            f"Supported: {', '.join(supported)}"
        )


# ============================================================================
# Resolution Exceptions
# ============================================================================


class IndexUnavailableError(NodeKitError):
    """Raised when the remote release index cannot be fetched or parsed."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Release index unavailable at {url}: {reason}")


class VersionNotFoundError(NodeKitError):
    """Raised when no release satisfies the requested specifier."""

    def __init__(self, specifier: str, platform: str, architecture: str):
        self.specifier = specifier
        self.platform = platform
        self.architecture = architecture
        super().__init__(
            f"Unable to find Node version '{specifier}' for platform "
            f"{platform} and architecture {architecture}."
        )


# ============================================================================
# Download Exceptions
# ============================================================================


class DownloadError(NodeKitError):
    """Raised when a download fails for reasons other than "not found"."""

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        super().__init__(message)


class HttpStatusError(DownloadError):
    """Raised when a server answers with a non-success HTTP status."""

    def __init__(self, url: str, status_code: int):
        self.status_code = status_code
        super().__init__(f"HTTP {status_code} for {url}", url=url)


class ArchiveNotFoundError(NodeKitError):
    """Raised when every candidate location reports the archive as missing."""

    def __init__(self, version: str, architecture: str, tried_urls: List[str]):
        self.version = version
        self.architecture = architecture
        self.tried_urls = list(tried_urls)
        super().__init__(
            f"No download location has Node {version} ({architecture}). "
            f"Tried: {', '.join(self.tried_urls)}"
        )


# ============================================================================
# Installation Exceptions
# ============================================================================


class InstallError(NodeKitError):
    """
    Base for failures turning downloaded content into an installation.

    ``version``, ``architecture`` and ``location`` name the release and the
    download location being installed, when known.
    """

    def __init__(
        self,
        message: str,
        version: Optional[str] = None,
        architecture: Optional[str] = None,
        location: Optional[str] = None,
    ):
        self.version = version
        self.architecture = architecture
        self.location = location
        super().__init__(message)


class ExtractionError(InstallError):
    """Raised when an archive cannot be decoded or contains unsafe paths."""

    pass


class LayoutError(InstallError):
    """Raised when extracted content does not look like a Node distribution."""

    pass


# ============================================================================
# Cache Exceptions
# ============================================================================


class CacheCorruptionError(NodeKitError):
    """Raised when a completion marker exists but its content is unusable."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Corrupted cache entry at {path}: {reason}")


# ============================================================================
# Filesystem Exceptions
# ============================================================================


class FilesystemError(NodeKitError):
    """Raised when a filesystem operation on staging or cache content fails."""

    pass
