"""
List command implementation.

Prints completed Node.js installations in the tool cache, newest first.
"""

import logging

from nodekit.cli.utils import config_from_args
from nodekit.core.cache_store import CacheStore
from nodekit.core.platform import normalize_architecture

logger = logging.getLogger(__name__)


def run(args) -> int:
    config = config_from_args(args)
    arch = normalize_architecture(args.arch or config.default_arch)
    store = CacheStore(config)

    versions = store.list_versions(config.tool_name, arch)
    if not versions:
        logger.info(f"No cached {config.tool_name} versions for {arch}")
        return 0

    for version in reversed(versions):
        print(f"{version}\t{store.entry_path(config.tool_name, version, arch)}")
    return 0
