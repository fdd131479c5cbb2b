"""
Tests for the tool cache store.
"""

import pytest

from nodekit.core.cache_store import MARKER_SUFFIX, CacheStore, StagingHandle
from nodekit.core.exceptions import (
    CacheCorruptionError,
    FilesystemError,
    InvalidSpecifierError,
    NodeKitError,
)
from nodekit.core.filesystem import move_tree


@pytest.fixture
def store(tool_config):
    return CacheStore(tool_config)


def _stage(store, version, arch="x64", payload="node"):
    handle = store.reserve("node", version, arch)
    (handle.path / "bin").mkdir()
    (handle.path / "bin" / "node").write_text(payload)
    return handle


class TestFind:
    """Test CacheStore.find."""

    def test_empty_cache(self, store):
        """Test lookups in an empty cache miss."""
        assert store.find("node", "10.16.0", "x64") is None
        assert store.find("node", "10", "x64") is None

    def test_explicit_hit(self, store, make_cache_entry, tool_config):
        """Test an explicit version finds its completed install."""
        path = make_cache_entry("250.0.0")

        entry = store.find("node", "250.0.0", "x64")

        assert entry is not None
        assert entry.version == "250.0.0"
        assert entry.architecture == "x64"
        assert entry.path == path
        assert entry.marker_path == (
            tool_config.cache_root / "node" / "250.0.0" / f"x64{MARKER_SUFFIX}"
        )

    def test_partial_picks_highest(self, store, make_cache_entry):
        """Test a partial resolves among cached versions."""
        make_cache_entry("250.0.0")
        make_cache_entry("250.1.0")
        make_cache_entry("251.0.0")

        assert store.find("node", "250", "x64").version == "250.1.0"

    @pytest.mark.parametrize("specifier", ["252", "252.0", "v252.0.0", "^252"])
    def test_loose_specifiers_hit_cached_version(
        self, store, make_cache_entry, specifier
    ):
        """Test partials and ranges match a cached full version."""
        make_cache_entry("252.0.0")

        assert store.find("node", specifier, "x64").version == "252.0.0"

    def test_incomplete_install_ignored(self, store, make_cache_entry):
        """Test content without a completion marker is never returned."""
        make_cache_entry("251.0.0", complete=False)

        assert store.find("node", "251.0.0", "x64") is None
        assert store.find("node", "251", "x64") is None

    def test_architecture_isolated(self, store, make_cache_entry):
        """Test an install for one arch does not satisfy another."""
        make_cache_entry("10.16.0", arch="x86")

        assert store.find("node", "10.16.0", "x64") is None
        assert store.find("node", "10.16.0", "x86").architecture == "x86"

    def test_default_arch(self, store, make_cache_entry):
        """Test arch defaults to the configured architecture."""
        make_cache_entry("10.16.0")

        assert store.find("node", "10.16.0").architecture == "x64"

    def test_marker_without_content(self, store, make_cache_entry):
        """Test a marker pointing at missing content is corruption."""
        make_cache_entry("10.16.0", content=False)

        with pytest.raises(CacheCorruptionError, match="content missing"):
            store.find("node", "10.16.0", "x64")

    def test_marker_next_to_file(self, store, tool_config):
        """Test content that is a file instead of a directory is corruption."""
        version_dir = tool_config.cache_root / "node" / "10.16.0"
        version_dir.mkdir(parents=True)
        (version_dir / "x64").write_text("not a directory")
        (version_dir / f"x64{MARKER_SUFFIX}").write_text("")

        with pytest.raises(CacheCorruptionError, match="not a directory"):
            store.find("node", "10", "x64")

    def test_invalid_specifier(self, store):
        """Test malformed specifiers are rejected."""
        with pytest.raises(InvalidSpecifierError):
            store.find("node", "ten", "x64")


class TestListVersions:
    """Test CacheStore.list_versions."""

    def test_lists_completed_only(self, store, make_cache_entry):
        """Test only marked versions are listed, in semantic order."""
        make_cache_entry("10.16.0")
        make_cache_entry("8.9.4")
        make_cache_entry("12.0.0", complete=False)
        make_cache_entry("11.0.0", arch="x86")

        assert store.list_versions("node", "x64") == ["8.9.4", "10.16.0"]

    def test_missing_tool_dir(self, store):
        """Test listing a tool that was never cached."""
        assert store.list_versions("node", "x64") == []


class TestStaging:
    """Test reserve, commit and discard."""

    def test_reserve_outside_cache(self, store, tool_config):
        """Test staging directories live under temp_root."""
        handle = store.reserve("node", "10.16.0", "x64")

        assert handle.path.is_dir()
        assert handle.path.parent == tool_config.temp_root
        assert not tool_config.cache_root.exists()

    def test_reserve_is_fresh(self, store):
        """Test two reservations of the same key never share a directory."""
        first = store.reserve("node", "10.16.0", "x64")
        second = store.reserve("node", "10.16.0", "x64")

        assert first.path != second.path

    def test_commit(self, store):
        """Test commit promotes content and writes the marker."""
        handle = _stage(store, "10.16.0")

        entry = store.commit(handle)

        assert (entry.path / "bin" / "node").read_text() == "node"
        assert entry.marker_path.is_file()
        assert not handle.path.exists()
        assert store.find("node", "10.16.0", "x64") == entry

    def test_commit_content_root(self, store):
        """Test commit can promote a subdirectory of the staging area."""
        handle = store.reserve("node", "10.16.0", "x64")
        root = handle.path / "node-v10.16.0-linux-x64"
        (root / "bin").mkdir(parents=True)
        (root / "bin" / "node").write_text("node")

        entry = store.commit(handle, root)

        assert (entry.path / "bin" / "node").is_file()
        assert not (entry.path / "node-v10.16.0-linux-x64").exists()
        assert not handle.path.exists()

    def test_commit_replaces_wholesale(self, store, make_cache_entry):
        """Test re-committing a key replaces old content instead of merging."""
        old = make_cache_entry("10.16.0")
        (old / "stale.txt").write_text("left over")

        entry = store.commit(_stage(store, "10.16.0", payload="fresh"))

        assert (entry.path / "bin" / "node").read_text() == "fresh"
        assert not (entry.path / "stale.txt").exists()

    def test_commit_replaces_interrupted_install(self, store, make_cache_entry):
        """Test content left by an interrupted install is replaced."""
        make_cache_entry("251.0.0", complete=False)

        entry = store.commit(_stage(store, "251.0.0"))

        assert store.find("node", "251.0.0", "x64") == entry

    def test_failed_move_leaves_no_marker(self, store, monkeypatch):
        """Test the marker is only written after content is in place."""
        handle = _stage(store, "10.16.0")

        def fail_move(source, destination):
            raise FilesystemError("disk full")

        monkeypatch.setattr("nodekit.core.cache_store.move_tree", fail_move)

        with pytest.raises(FilesystemError):
            store.commit(handle)

        assert not store.marker_path("node", "10.16.0", "x64").exists()
        assert store.find("node", "10.16.0", "x64") is None

    def test_commit_races_other_writer(self, store, monkeypatch):
        """Test a key committed by another writer mid-commit is replaced."""
        handle = _stage(store, "10.16.0", payload="ours")
        calls = []

        def racing_move(source, destination):
            if not calls:
                # Another process finishes its commit of the same key first
                (destination / "bin").mkdir(parents=True)
                (destination / "bin" / "node").write_text("theirs")
                store.marker_path("node", "10.16.0", "x64").write_text("")
            calls.append(destination)
            return move_tree(source, destination)

        monkeypatch.setattr("nodekit.core.cache_store.move_tree", racing_move)

        entry = store.commit(handle)

        assert len(calls) == 2
        assert (entry.path / "bin" / "node").read_text() == "ours"
        assert entry.marker_path.is_file()
        assert not handle.path.exists()

    def test_errors_are_nodekit_errors(self, store, tool_config):
        """Test filesystem failures stay inside the NodeKitError hierarchy."""
        handle = store.reserve("node", "10.16.0", "x64")
        outside = StagingHandle("node", "10.16.0", "x64", tool_config.cache_root)
        tool_config.cache_root.mkdir(parents=True)

        with pytest.raises(NodeKitError, match="Refusing to delete"):
            store.discard(outside)

        store.discard(handle)

    def test_discard_idempotent(self, store):
        """Test discard removes staging and tolerates repeats."""
        handle = _stage(store, "10.16.0")

        store.discard(handle)
        store.discard(handle)

        assert not handle.path.exists()
