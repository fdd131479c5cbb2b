"""
Configuration for nodekit.

All components receive an explicit ``ToolCacheConfig``; nothing in the core
reads the process environment on its own. The environment and an optional
YAML file are consulted only by ``ToolCacheConfig.from_environment`` and
``load_config``.

Environment variables:
    RUNNER_TOOL_CACHE : shared tool cache root
    RUNNER_TEMP       : temporary/staging root
    NODEKIT_DIST_URL  : primary distribution site
    NODEKIT_MIRRORS   : comma separated fallback distribution sites
    NODEKIT_TIMEOUT   : network timeout in seconds

YAML file (``nodekit.yaml``):
    cache_root: /opt/hostedtoolcache
    temp_root: /tmp/nodekit
    arch: x64
    dist_url: https://nodejs.org
    mirror_urls:
      - https://mirror.example.com/nodejs
    timeout: 60
"""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from nodekit.core.exceptions import ConfigError
from nodekit.core.platform import (
    SUPPORTED_PLATFORMS,
    detect_platform,
    normalize_architecture,
)

logger = logging.getLogger(__name__)

DEFAULT_DIST_URL = "https://nodejs.org"
DEFAULT_TOOL_NAME = "node"
DEFAULT_TIMEOUT = 30
DEFAULT_CONFIG_FILENAME = "nodekit.yaml"


def get_global_cache_dir() -> Path:
    """
    Get the default nodekit home directory (``~/.nodekit``).

    Returns:
        Path: The nodekit home directory
    """
    if os.name == "nt":
        user_profile = os.environ.get("USERPROFILE")
        if not user_profile:
            raise ConfigError(
                "USERPROFILE environment variable is not set. "
                "Cannot determine global cache directory."
            )
        return Path(user_profile) / ".nodekit"
    return Path.home() / ".nodekit"


@dataclass(frozen=True)
class ToolCacheConfig:
    """
    Settings shared by every acquisition component.

    Attributes:
        cache_root: Root of the shared tool cache
        temp_root: Root for downloads and staging directories
        platform: Distribution platform token ('linux', 'darwin', 'win')
        default_arch: Architecture used when a caller does not pass one
        tool_name: Cache namespace of the tool
        dist_url: Primary distribution site
        mirror_urls: Fallback distribution sites, tried in order
        timeout: Network timeout in seconds
    """

    cache_root: Path
    temp_root: Path
    platform: str
    default_arch: str
    tool_name: str = DEFAULT_TOOL_NAME
    dist_url: str = DEFAULT_DIST_URL
    mirror_urls: List[str] = field(default_factory=list)
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self):
        if self.platform not in SUPPORTED_PLATFORMS:
            raise ConfigError(
                f"Unsupported platform '{self.platform}'. "
                f"Supported: {', '.join(SUPPORTED_PLATFORMS)}"
            )
        if not self.tool_name:
            raise ConfigError("tool_name cannot be empty")
        if not self.dist_url:
            raise ConfigError("dist_url cannot be empty")
        if not isinstance(self.dist_url, str):
            raise ConfigError(f"dist_url must be a URL string, got {self.dist_url!r}")
        for mirror in self.mirror_urls:
            if mirror and not isinstance(mirror, str):
                raise ConfigError(f"mirror_urls entries must be URLs, got {mirror!r}")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")
        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "cache_root", Path(self.cache_root))
        object.__setattr__(self, "temp_root", Path(self.temp_root))
        object.__setattr__(self, "dist_url", self.dist_url.rstrip("/"))
        object.__setattr__(
            self, "mirror_urls", [m.rstrip("/") for m in self.mirror_urls if m]
        )
        object.__setattr__(
            self, "default_arch", normalize_architecture(self.default_arch)
        )

    @property
    def is_windows(self) -> bool:
        return self.platform == "win"

    @property
    def index_url(self) -> str:
        """URL of the release index on the primary distribution site."""
        return f"{self.dist_url}/dist/index.json"

    @property
    def base_urls(self) -> List[str]:
        """Primary distribution site followed by the mirrors."""
        return [self.dist_url] + [m for m in self.mirror_urls if m != self.dist_url]

    @classmethod
    def from_environment(
        cls, environ: Optional[Mapping[str, str]] = None
    ) -> "ToolCacheConfig":
        """
        Build a configuration from environment variables.

        Args:
            environ: Mapping to read from (default: ``os.environ``)

        Returns:
            ToolCacheConfig with host defaults for anything unset

        Raises:
            ConfigError: If a value is invalid
        """
        env = os.environ if environ is None else environ
        host = detect_platform()
        home = get_global_cache_dir()

        timeout_raw = env.get("NODEKIT_TIMEOUT")
        try:
            timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT
        except ValueError as e:
            raise ConfigError(f"Invalid NODEKIT_TIMEOUT: {timeout_raw}") from e

        mirrors_raw = env.get("NODEKIT_MIRRORS", "")
        mirrors = [m.strip() for m in mirrors_raw.split(",") if m.strip()]

        return cls(
            cache_root=Path(env.get("RUNNER_TOOL_CACHE") or home / "tools"),
            temp_root=Path(env.get("RUNNER_TEMP") or home / "temp"),
            platform=host.platform,
            default_arch=host.arch,
            dist_url=env.get("NODEKIT_DIST_URL") or DEFAULT_DIST_URL,
            mirror_urls=mirrors,
            timeout=timeout,
        )

    def with_overrides(self, **overrides: Any) -> "ToolCacheConfig":
        """Return a copy with the given non-None fields replaced."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values) if values else self


def load_yaml_config(config_file: Path, required: bool = False) -> Dict[str, Any]:
    """
    Load and parse a YAML configuration file.

    Args:
        config_file: Path to YAML configuration file
        required: If True, raise error if file doesn't exist

    Returns:
        Configuration dictionary (empty dict if file doesn't exist and not required)

    Raises:
        ConfigError: If the file is required but missing, or is not valid YAML
    """
    if not config_file.exists():
        if required:
            raise ConfigError(f"Configuration file not found: {config_file}")
        logger.debug(f"Config file not found (optional): {config_file}")
        return {}

    logger.debug(f"Loading configuration from {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML: {e}")
        raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e

    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at top level of {config_file}")
    return data


_YAML_FIELDS = {
    "cache_root": "cache_root",
    "temp_root": "temp_root",
    "platform": "platform",
    "arch": "default_arch",
    "tool_name": "tool_name",
    "dist_url": "dist_url",
    "mirror_urls": "mirror_urls",
    "timeout": "timeout",
}


def load_config(
    config_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ToolCacheConfig:
    """
    Load configuration from the environment, layered with a YAML file.

    Values in the YAML file override values from the environment. When
    ``config_file`` is None, ``./nodekit.yaml`` is used if it exists.

    Args:
        config_file: Optional explicit configuration file (must exist)
        environ: Environment mapping (default: ``os.environ``)

    Returns:
        Effective ToolCacheConfig

    Raises:
        ConfigError: If the file or any value is invalid

    Example:
        >>> config = load_config(Path("nodekit.yaml"))
        >>> config.cache_root
        PosixPath('/opt/hostedtoolcache')
    """
    config = ToolCacheConfig.from_environment(environ)

    if config_file is not None:
        data = load_yaml_config(Path(config_file), required=True)
    else:
        data = load_yaml_config(Path.cwd() / DEFAULT_CONFIG_FILENAME)

    unknown = sorted(set(data) - set(_YAML_FIELDS))
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

    overrides = {_YAML_FIELDS[key]: value for key, value in data.items()}
    if "mirror_urls" in overrides and not isinstance(overrides["mirror_urls"], list):
        raise ConfigError("mirror_urls must be a list of URLs")

    try:
        return config.with_overrides(**overrides)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
