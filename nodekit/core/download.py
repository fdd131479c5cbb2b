"""
Streaming HTTP downloads with progress reporting.

Responses are written to disk chunk by chunk so archives are never buffered
in memory. Non-success statuses surface as ``HttpStatusError`` carrying the
status code, so callers can treat "not found" differently from other
failures. Nothing here retries.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import requests
from requests.exceptions import RequestException

from nodekit.core.exceptions import DownloadError, HttpStatusError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


@dataclass
class DownloadProgress:
    """Progress information for a download."""

    bytes_downloaded: int
    total_bytes: int
    percentage: float
    speed_bps: float  # bytes per second

    def __str__(self) -> str:
        return format_progress(self)


def download_file(
    url: str,
    destination: Path,
    session: Optional[requests.Session] = None,
    timeout: float = 30,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
) -> Path:
    """
    Download a URL to a local file.

    A partially written destination is removed when the download fails.

    Args:
        url: URL to download from
        destination: Local path to save file (parents are created)
        session: Optional requests session (default: a one-off request)
        timeout: Connect/read timeout in seconds
        progress_callback: Optional callback for progress updates

    Returns:
        Path to downloaded file

    Raises:
        HttpStatusError: If the server answers with a non-2xx status
        DownloadError: On connection errors, timeouts or write failures
        ValueError: If URL or destination is empty

    Example:
        >>> download_file(
        ...     "https://nodejs.org/dist/v10.16.0/node-v10.16.0-linux-x64.tar.gz",
        ...     Path("/tmp/node.tar.gz"),
        ... )
    """
    if not url:
        raise ValueError("URL cannot be empty")
    if not destination:
        raise ValueError("Destination path cannot be empty")

    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    http = session or requests

    logger.debug(f"Downloading from {url}")

    try:
        response = http.get(url, stream=True, timeout=timeout, allow_redirects=True)
    except RequestException as e:
        raise DownloadError(f"Failed to download {url}: {e}", url=url) from e

    with response:
        if not 200 <= response.status_code < 300:
            raise HttpStatusError(url, response.status_code)

        try:
            _stream_to_file(response, destination, progress_callback)
        except (RequestException, OSError) as e:
            destination.unlink(missing_ok=True)
            raise DownloadError(f"Failed to download {url}: {e}", url=url) from e

    logger.debug(f"Download complete: {destination}")
    return destination


def _stream_to_file(
    response: requests.Response,
    destination: Path,
    progress_callback: Optional[Callable[[DownloadProgress], None]],
):
    content_length = response.headers.get("content-length")
    total_size = int(content_length) if content_length else 0

    downloaded = 0
    start_time = time.time()
    last_progress_time = start_time

    with open(destination, "wb") as f:
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            if not chunk:
                continue
            f.write(chunk)
            downloaded += len(chunk)

            # Report at most twice per second
            now = time.time()
            if progress_callback and (
                now - last_progress_time >= 0.5 or downloaded == total_size
            ):
                elapsed = now - start_time
                progress_callback(
                    DownloadProgress(
                        bytes_downloaded=downloaded,
                        total_bytes=total_size if total_size > 0 else downloaded,
                        percentage=(downloaded / total_size * 100)
                        if total_size > 0
                        else 0,
                        speed_bps=downloaded / elapsed if elapsed > 0 else 0,
                    )
                )
                last_progress_time = now


def format_progress(progress: DownloadProgress) -> str:
    """
    Format progress for display.

    Example:
        >>> progress = DownloadProgress(52428800, 104857600, 50.0, 1048576)
        >>> print(format_progress(progress))
        50.0/100.0 MB (50.0%) at 1.0 MB/s
    """
    mb_downloaded = progress.bytes_downloaded / 1024 / 1024
    mb_total = progress.total_bytes / 1024 / 1024
    speed_mbps = progress.speed_bps / 1024 / 1024

    if progress.total_bytes > 0:
        return (
            f"{mb_downloaded:.1f}/{mb_total:.1f} MB "
            f"({progress.percentage:.1f}%) "
            f"at {speed_mbps:.1f} MB/s"
        )
    return f"{mb_downloaded:.1f} MB at {speed_mbps:.1f} MB/s"
