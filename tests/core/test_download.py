"""
Unit tests for download module.

Tests download functionality with mocked network requests.
"""

import pytest
import requests
import responses

from nodekit.core.download import DownloadProgress, download_file, format_progress
from nodekit.core.exceptions import DownloadError, HttpStatusError

URL = "https://nodejs.org/dist/v10.16.0/node-v10.16.0-linux-x64.tar.gz"


class TestDownloadProgress:
    """Test DownloadProgress dataclass."""

    def test_progress_to_string(self):
        """Test progress string representation."""
        progress = DownloadProgress(
            bytes_downloaded=52428800,  # 50 MB
            total_bytes=104857600,  # 100 MB
            percentage=50.0,
            speed_bps=1048576,  # 1 MB/s
        )

        result = str(progress)

        assert "50.0/100.0 MB" in result
        assert "50.0%" in result
        assert "1.0 MB/s" in result

    def test_progress_unknown_total(self):
        """Test formatting without a known total size."""
        progress = DownloadProgress(
            bytes_downloaded=1048576, total_bytes=0, percentage=0, speed_bps=0
        )

        assert format_progress(progress) == "1.0 MB at 0.0 MB/s"


class TestDownloadFile:
    """Test download_file."""

    @responses.activate
    def test_download_success(self, tmp_path):
        """Test successful download writes the body to disk."""
        responses.add(responses.GET, URL, body=b"archive bytes", status=200)
        destination = tmp_path / "nested" / "node.tar.gz"

        result = download_file(URL, destination)

        assert result == destination
        assert destination.read_bytes() == b"archive bytes"

    @responses.activate
    def test_download_with_session(self, tmp_path):
        """Test downloads go through the given session."""
        responses.add(responses.GET, URL, body=b"data", status=200)
        session = requests.Session()

        download_file(URL, tmp_path / "node.tar.gz", session=session, timeout=5)

        assert len(responses.calls) == 1

    @responses.activate
    def test_download_progress_callback(self, tmp_path):
        """Test progress is reported for the final chunk."""
        body = b"x" * 1000
        responses.add(
            responses.GET,
            URL,
            body=body,
            status=200,
            headers={"content-length": str(len(body))},
        )
        updates = []

        download_file(URL, tmp_path / "node.tar.gz", progress_callback=updates.append)

        assert updates
        assert updates[-1].bytes_downloaded == 1000
        assert updates[-1].percentage == 100

    @pytest.mark.parametrize("status", [404, 410, 500, 503])
    @responses.activate
    def test_http_status(self, tmp_path, status):
        """Test non-2xx responses raise HttpStatusError with the code."""
        responses.add(responses.GET, URL, status=status)
        destination = tmp_path / "node.tar.gz"

        with pytest.raises(HttpStatusError) as exc_info:
            download_file(URL, destination)

        assert exc_info.value.status_code == status
        assert exc_info.value.url == URL
        assert not destination.exists()

    @responses.activate
    def test_connection_error(self, tmp_path):
        """Test transport failures raise DownloadError, not HttpStatusError."""
        responses.add(
            responses.GET, URL, body=requests.exceptions.ConnectionError("reset")
        )

        with pytest.raises(DownloadError) as exc_info:
            download_file(URL, tmp_path / "node.tar.gz")

        assert not isinstance(exc_info.value, HttpStatusError)
        assert exc_info.value.url == URL

    @responses.activate
    def test_timeout(self, tmp_path):
        """Test timeouts raise DownloadError."""
        responses.add(responses.GET, URL, body=requests.exceptions.Timeout("slow"))

        with pytest.raises(DownloadError, match="slow"):
            download_file(URL, tmp_path / "node.tar.gz")

    def test_empty_url(self, tmp_path):
        """Test empty URL raises ValueError."""
        with pytest.raises(ValueError, match="URL cannot be empty"):
            download_file("", tmp_path / "node.tar.gz")
