"""
File system utilities for nodekit.

This module provides the filesystem primitives used by the cache store and
the installer:
- Archive extraction (tar.gz, 7z) with directory traversal protection
- Safe file operations (atomic writes, guarded deletion, tree moves)
"""

import os
import shutil
import sys
import tarfile
import tempfile
from pathlib import Path
from typing import Optional, Union

import py7zr
from py7zr.exceptions import ArchiveError as SevenZipArchiveError

from nodekit.core.exceptions import ExtractionError, FilesystemError

IS_WINDOWS = os.name == "nt"


class InsecureArchiveError(ExtractionError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if path is relative to parent.

    Args:
        path: Path to check
        parent: Potential parent path

    Returns:
        True if path is under parent
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


# ============================================================================
# Archive Extraction
# ============================================================================


def _validate_archive_path(path: str, destination: Path) -> None:
    """
    Validate that an archive member path is safe to extract.

    Raises:
        InsecureArchiveError: If path attempts directory traversal
    """
    member_path = (destination / path).resolve()

    if not is_relative_to(member_path, destination.resolve()):
        raise InsecureArchiveError(
            f"Archive member '{path}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )


def extract_tar_gz(archive_path: Union[str, Path], destination: Union[str, Path]):
    """
    Extract a .tar.gz archive into destination.

    Args:
        archive_path: Path to the archive file
        destination: Directory to extract to (created if missing)

    Raises:
        InsecureArchiveError: If the archive contains malicious paths
        ExtractionError: If the archive cannot be read
    """
    archive_path = Path(archive_path)
    destination = Path(destination)
    destination.mkdir(parents=True, exist_ok=True)

    try:
        with tarfile.open(archive_path, "r:gz") as tar:
            for member in tar.getmembers():
                _validate_archive_path(member.name, destination)

            # Python 3.12+ has extraction filters; older versions rely on
            # the validation above
            if sys.version_info >= (3, 12):
                tar.extractall(destination, filter="data")
            else:
                tar.extractall(destination)
    except InsecureArchiveError:
        raise
    except (tarfile.TarError, OSError, EOFError) as e:
        raise ExtractionError(f"Failed to extract {archive_path}: {e}") from e


def extract_7z(archive_path: Union[str, Path], destination: Union[str, Path]):
    """
    Extract a .7z archive into destination.

    Args:
        archive_path: Path to the archive file
        destination: Directory to extract to (created if missing)

    Raises:
        InsecureArchiveError: If the archive contains malicious paths
        ExtractionError: If the archive cannot be read
    """
    archive_path = Path(archive_path)
    destination = Path(destination)
    destination.mkdir(parents=True, exist_ok=True)

    try:
        with py7zr.SevenZipFile(archive_path, "r") as archive:
            for member in archive.getnames():
                _validate_archive_path(member, destination)
            archive.extractall(destination)
    except InsecureArchiveError:
        raise
    except (SevenZipArchiveError, OSError, EOFError) as e:
        raise ExtractionError(f"Failed to extract {archive_path}: {e}") from e


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    The file is never observable in a partially-written state.

    Args:
        file_path: Path to write to
        content: Content to write (string or bytes)
        encoding: Text encoding (used only for string content)
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Same directory keeps the rename on one filesystem
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)

    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        FilesystemError: If path is not under require_prefix, or deletion fails

    Example:
        >>> safe_rmtree('/tmp/nodekit/staging-x', require_prefix='/tmp/nodekit')
    """
    path = Path(path).resolve()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if not is_relative_to(path, require_prefix):
            raise FilesystemError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists():
        return

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    try:
        if IS_WINDOWS:

            def handle_remove_readonly(func, path, exc):
                """Error handler for Windows read-only files."""
                if not os.access(path, os.W_OK):
                    os.chmod(path, 0o777)
                    func(path)
                else:
                    raise

            shutil.rmtree(path, onerror=handle_remove_readonly)
        else:
            shutil.rmtree(path)

    except Exception as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


def move_tree(source: Union[str, Path], destination: Union[str, Path]) -> Path:
    """
    Move a directory tree to a destination that must not exist yet.

    Uses a rename when source and destination share a filesystem and falls
    back to copy-then-delete otherwise.

    Args:
        source: Existing directory
        destination: Target path (parent directories are created)

    Returns:
        Destination path

    Raises:
        FilesystemError: If the source is missing, the destination exists or
            the move fails
    """
    source = Path(source)
    destination = Path(destination)

    if not source.is_dir():
        raise FilesystemError(f"Source is not a directory: {source}")
    if destination.exists():
        raise FilesystemError(f"Destination already exists: {destination}")

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source), str(destination))
    except OSError as e:
        raise FilesystemError(
            f"Failed to move '{source}' to '{destination}': {e}"
        ) from e
    return destination


__all__ = [
    "FilesystemError",
    "InsecureArchiveError",
    "is_relative_to",
    "extract_tar_gz",
    "extract_7z",
    "atomic_write",
    "safe_rmtree",
    "move_tree",
]
