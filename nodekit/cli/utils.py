"""
Shared utilities for CLI commands.
"""

import logging

from nodekit.core.config import ToolCacheConfig, load_config

logger = logging.getLogger(__name__)


def config_from_args(args) -> ToolCacheConfig:
    """
    Build the effective configuration for a command.

    Layers, lowest to highest: environment, YAML file (``--config`` or
    ``./nodekit.yaml``), command-line overrides.

    Args:
        args: Parsed arguments (``config`` and optional ``cache_root``)

    Returns:
        Effective ToolCacheConfig
    """
    config = load_config(getattr(args, "config", None))
    config = config.with_overrides(cache_root=getattr(args, "cache_root", None))
    logger.debug(f"Tool cache: {config.cache_root}, temp: {config.temp_root}")
    return config
