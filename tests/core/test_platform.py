"""
Tests for platform detection.
"""

from unittest.mock import patch

import pytest

from nodekit.core.exceptions import UnsupportedArchitectureError
from nodekit.core.platform import (
    PlatformInfo,
    detect_platform,
    get_supported_architectures,
    normalize_architecture,
)


class TestDetectPlatform:
    """Test host detection."""

    @pytest.mark.parametrize(
        "system,expected",
        [("Linux", "linux"), ("Darwin", "darwin"), ("Windows", "win")],
    )
    def test_os_tokens(self, system, expected):
        """Test OS names map to distribution platform tokens."""
        with patch("platform.system", return_value=system), patch(
            "platform.machine", return_value="x86_64"
        ):
            info = detect_platform()

        assert info.platform == expected
        assert info.arch == "x64"

    @pytest.mark.parametrize(
        "machine,expected",
        [
            ("AMD64", "x64"),
            ("aarch64", "arm64"),
            ("arm64", "arm64"),
            ("i686", "x86"),
            ("armv7l", "armv7l"),
            ("armv6l", "armv6l"),
            ("ppc64le", "ppc64le"),
            ("s390x", "s390x"),
        ],
    )
    def test_arch_tokens(self, machine, expected):
        """Test machine names map to distribution arch tokens."""
        with patch("platform.system", return_value="Linux"), patch(
            "platform.machine", return_value=machine
        ):
            assert detect_platform().arch == expected

    def test_unsupported_os(self):
        """Test unknown operating systems raise RuntimeError."""
        with patch("platform.system", return_value="Plan9"):
            with pytest.raises(RuntimeError, match="Unsupported operating system"):
                detect_platform()

    def test_cached(self):
        """Test detection only runs once."""
        with patch("platform.system", return_value="Linux") as system, patch(
            "platform.machine", return_value="x86_64"
        ):
            detect_platform()
            detect_platform()

        assert system.call_count == 1

    def test_str(self):
        assert str(PlatformInfo("win", "x86")) == "win-x86"
        assert PlatformInfo("win", "x86").is_windows


class TestNormalizeArchitecture:
    """Test normalize_architecture."""

    def test_case_insensitive(self):
        assert normalize_architecture(" X64 ") == "x64"

    @pytest.mark.parametrize("arch", ["", "mips", "x86_64"])
    def test_unsupported(self, arch):
        """Test unknown tokens raise UnsupportedArchitectureError."""
        with pytest.raises(UnsupportedArchitectureError) as exc_info:
            normalize_architecture(arch)

        assert exc_info.value.supported == get_supported_architectures()
