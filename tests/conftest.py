"""
Pytest configuration and shared fixtures for nodekit tests.
"""

from pathlib import Path

import pytest

from nodekit.core.cache_store import MARKER_SUFFIX
from nodekit.core.config import ToolCacheConfig
from nodekit.core.platform import PlatformInfo, clear_platform_cache


@pytest.fixture
def tool_config(tmp_path: Path) -> ToolCacheConfig:
    """Linux x64 configuration rooted in a temporary directory."""
    return ToolCacheConfig(
        cache_root=tmp_path / "cache",
        temp_root=tmp_path / "temp",
        platform="linux",
        default_arch="x64",
    )


@pytest.fixture
def win_config(tool_config: ToolCacheConfig) -> ToolCacheConfig:
    return tool_config.with_overrides(platform="win")


@pytest.fixture
def make_cache_entry(tool_config: ToolCacheConfig):
    """
    Factory creating installs directly in the tool cache.

    Usage:
        make_cache_entry("10.16.0")                  # complete install
        make_cache_entry("10.16.0", complete=False)  # content, no marker
        make_cache_entry("10.16.0", content=False)   # marker, no content
    """

    def _make(
        version: str, arch: str = "x64", complete: bool = True, content: bool = True
    ) -> Path:
        version_dir = tool_config.cache_root / "node" / version
        path = version_dir / arch
        if content:
            (path / "bin").mkdir(parents=True)
            (path / "bin" / "node").write_text(f"node {version}\n")
        else:
            version_dir.mkdir(parents=True, exist_ok=True)
        if complete:
            (version_dir / f"{arch}{MARKER_SUFFIX}").write_text("")
        return path

    return _make


@pytest.fixture
def runner_env(tmp_path: Path, monkeypatch) -> Path:
    """
    Simulate a Linux x64 CI runner.

    Points RUNNER_TOOL_CACHE/RUNNER_TEMP into tmp_path, pins host detection
    and runs the test from an empty working directory.
    """
    cache_root = tmp_path / "runner" / "tool-cache"
    monkeypatch.setenv("RUNNER_TOOL_CACHE", str(cache_root))
    monkeypatch.setenv("RUNNER_TEMP", str(tmp_path / "runner" / "temp"))
    for name in ("NODEKIT_DIST_URL", "NODEKIT_MIRRORS", "NODEKIT_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(
        "nodekit.core.config.detect_platform",
        lambda: PlatformInfo(platform="linux", arch="x64"),
    )

    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    return cache_root


@pytest.fixture(autouse=True)
def reset_caches():
    """Reset module-level caches between tests."""
    clear_platform_cache()
    yield
    clear_platform_cache()
