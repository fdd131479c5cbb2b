"""
Install command implementation.

Ensures a Node.js version is present in the tool cache and prints the
directory holding the node executable.
"""

import logging
import sys

from nodekit.cli.utils import config_from_args
from nodekit.core.download import DownloadProgress
from nodekit.node.acquire import NodeAcquirer, node_bin_dir

logger = logging.getLogger(__name__)


def show_progress(progress: DownloadProgress):
    """Render download progress on one stderr line."""
    bar_length = 40
    filled = int(bar_length * min(progress.percentage, 100) / 100)
    bar = "=" * filled + "-" * (bar_length - filled)
    print(
        f"\r  Downloading: [{bar}] {progress}",
        end="",
        file=sys.stderr,
        flush=True,
    )


def run(args) -> int:
    """
    Run the install command.

    Progress goes to stderr so stdout only carries the binary directory.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    config = config_from_args(args)
    quiet = getattr(args, "quiet", False)
    acquirer = NodeAcquirer(
        config, progress_callback=None if quiet else show_progress
    )

    try:
        install_path = acquirer.acquire(args.specifier, args.arch)
    finally:
        if not quiet:
            # Clear the progress line
            print("\r" + " " * 100 + "\r", end="", file=sys.stderr)
    logger.info(f"Node is available at {install_path}")

    print(node_bin_dir(install_path, config.platform))
    return 0
