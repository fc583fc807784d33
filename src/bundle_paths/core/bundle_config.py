"""
Bundle config loading and caching.

Each bundle may ship a YAML file (config.yaml by default) of variables that
templates reference via {config_source}:name. Parsed configs are cached per
bundle root so repeated resolutions never re-read the file; call
clear_config_cache() (or ConfigCache.clear()) after a config file changes.

A missing config file is not an error: it yields an empty mapping and is
re-checked on the next call, so a config file created later is picked up.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

import yaml

from .exceptions import ConfigLoadError
from .path_context import PathContext, create_path_context
from .settings import PathResolverSettings, get_settings

logger = logging.getLogger(__name__)


def _cache_key(bundle_root: str | os.PathLike[str]) -> str:
    return os.path.normpath(os.path.abspath(os.fspath(bundle_root)))


def read_config_file(
    config_path: str | os.PathLike[str], missing_ok: bool = False
) -> Optional[dict[str, Any]]:
    """
    Read and validate a YAML config file of bundle variables.

    Args:
        config_path: Path to the YAML file
        missing_ok: Return None instead of raising when the file does not exist

    Returns:
        The parsed variable mapping (empty for an empty document), or None if
        the file is missing and missing_ok is set

    Raises:
        ConfigLoadError: If the file cannot be read or parsed, or its top
            level is not a mapping
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError as e:
        if missing_ok:
            logger.debug(f"BUNDLE_CONFIG: No config file at {config_path}")
            return None
        raise ConfigLoadError(str(e), path=str(config_path)) from e
    except yaml.YAMLError as e:
        logger.error(f"BUNDLE_CONFIG: Invalid YAML in {config_path}: {e}")
        raise ConfigLoadError(str(e), path=str(config_path)) from e
    except OSError as e:
        logger.error(f"BUNDLE_CONFIG: Cannot read {config_path}: {e}")
        raise ConfigLoadError(str(e), path=str(config_path)) from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigLoadError(
            f"expected a mapping at the top level, got {type(raw).__name__}",
            path=str(config_path),
        )
    return raw


class ConfigCache:
    """
    Parsed bundle configs keyed by canonical bundle root.

    Cached values are read-only mappings published with a single assignment,
    so concurrent readers never see a partially built entry. Two concurrent
    first loads of the same root may both parse the file; the last one wins.
    """

    def __init__(self, config_filename: Optional[str] = None):
        """
        Args:
            config_filename: Config file name inside each bundle root
                (uses settings.config_filename if not provided)
        """
        self._config_filename = config_filename
        self._entries: dict[str, Mapping[str, Any]] = {}

    @property
    def config_filename(self) -> str:
        return self._config_filename or get_settings().config_filename

    def get(self, bundle_root: str | os.PathLike[str]) -> Optional[Mapping[str, Any]]:
        """Return the cached config for a bundle root, or None if not loaded."""
        return self._entries.get(_cache_key(bundle_root))

    def get_or_load(self, bundle_root: str | os.PathLike[str]) -> Mapping[str, Any]:
        """
        Return the config for a bundle root, loading it on first access.

        Args:
            bundle_root: Absolute path to the bundle directory

        Returns:
            Read-only config mapping (the same object on every cached call),
            or an empty mapping if the bundle has no config file

        Raises:
            ConfigLoadError: If the config file exists but cannot be read or parsed
        """
        key = _cache_key(bundle_root)
        cached = self._entries.get(key)
        if cached is not None:
            return cached

        config_path = Path(key) / self.config_filename
        raw = read_config_file(config_path, missing_ok=True)
        if raw is None:
            return MappingProxyType({})

        config = MappingProxyType(raw)
        self._entries[key] = config
        logger.info(
            f"BUNDLE_CONFIG: Loaded {len(config)} variables from {config_path}"
        )
        return config

    def clear(self) -> None:
        """Drop every cached config."""
        count = len(self._entries)
        self._entries = {}
        logger.debug(f"BUNDLE_CONFIG: Cleared {count} cached configs")

    def __contains__(self, bundle_root: object) -> bool:
        if not isinstance(bundle_root, (str, os.PathLike)):
            return False
        return _cache_key(bundle_root) in self._entries

    def __len__(self) -> int:
        return len(self._entries)


# Process-wide cache used when callers don't supply their own
_default_cache = ConfigCache()


def get_config_cache() -> ConfigCache:
    """Get the process-wide config cache."""
    return _default_cache


def load_bundle_config(
    bundle_root: str | os.PathLike[str],
    cache: Optional[ConfigCache] = None,
) -> Mapping[str, Any]:
    """
    Load and parse a bundle's config file.

    Args:
        bundle_root: Absolute path to the bundle directory
        cache: Cache to use (the process-wide cache if not provided)

    Returns:
        Parsed config, or an empty mapping if the bundle has no config file

    Raises:
        ConfigLoadError: If the config file exists but fails to parse
    """
    return (cache or _default_cache).get_or_load(bundle_root)


def clear_config_cache() -> None:
    """Clear the process-wide bundle config cache."""
    _default_cache.clear()


def load_path_context(
    bundle_name: str,
    settings: Optional[PathResolverSettings] = None,
    cache: Optional[ConfigCache] = None,
) -> PathContext:
    """
    Build a PathContext for a bundle with its config variables loaded.

    Args:
        bundle_name: Bundle directory name under the bundles root
        settings: Directory layout (uses global settings if not provided)
        cache: Config cache (the process-wide cache if not provided)

    Returns:
        PathContext whose bundle_config is the bundle's parsed config
    """
    context = create_path_context(bundle_name, settings=settings)
    config = load_bundle_config(context.bundle_root, cache=cache)
    return context.with_config(config)
