"""
Resolver settings for bundle path resolution.

The settings describe where bundles and the shared core live relative to the
project root, and which file inside a bundle holds its variables. They are
loaded once from the environment and cached for the process lifetime:

    PROJECT_ROOT                     absolute project root (default: cwd)
    BUNDLE_PATHS_BUNDLES_DIR         bundles directory (default: bmad/custom/bundles)
    BUNDLE_PATHS_CORE_DIR            core directory (default: bmad/core)
    BUNDLE_PATHS_CONFIG_FILENAME     bundle config file (default: config.yaml)
    BUNDLE_PATHS_CONVERSATIONS_DIR   writable output area (default: data/conversations)

Usage:
    from bundle_paths.core.settings import get_settings, set_settings

    settings = get_settings()
    set_settings(PathResolverSettings(project_root=Path("/srv/app")))
"""
from __future__ import annotations

import logging
import os
from pathlib import Path, PurePath
from typing import Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class PathResolverSettings(BaseModel):
    """
    Directory layout used to build path contexts.

    All directory settings are relative to project_root.
    """

    project_root: Path = Field(
        default_factory=Path.cwd,
        description="Absolute path to the application root",
    )
    bundles_dir: str = Field(
        default="bmad/custom/bundles",
        description="Directory holding one subdirectory per bundle",
    )
    core_dir: str = Field(
        default="bmad/core", description="Shared framework directory"
    )
    config_filename: str = Field(
        default="config.yaml", description="Config file name inside a bundle"
    )
    conversations_dir: str = Field(
        default="data/conversations",
        description="The only directory agents may write output into",
    )

    @field_validator("project_root")
    @classmethod
    def _absolute_project_root(cls, value: Path) -> Path:
        return Path(os.path.abspath(value))

    @field_validator("bundles_dir", "core_dir", "conversations_dir")
    @classmethod
    def _relative_directory(cls, value: str) -> str:
        if not value or PurePath(value).is_absolute():
            raise ValueError(f"Directory setting must be a relative path: {value!r}")
        return value

    @field_validator("config_filename")
    @classmethod
    def _plain_filename(cls, value: str) -> str:
        if not value or PurePath(value).name != value:
            raise ValueError(f"Config filename must be a plain file name: {value!r}")
        return value


# Global settings instance
_settings: Optional[PathResolverSettings] = None


def get_settings() -> PathResolverSettings:
    """Get the current settings, loading them from the environment on first use."""
    global _settings

    if _settings is None:
        _settings = _load_settings()

    return _settings


def set_settings(settings: PathResolverSettings) -> None:
    """
    Set the global settings.

    Used primarily for testing or by applications that configure
    the resolver explicitly.
    """
    global _settings
    _settings = settings
    logger.info(f"BUNDLE_PATHS: Settings set, project_root={settings.project_root}")


def reset_settings() -> None:
    """Drop cached settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None


def _load_settings() -> PathResolverSettings:
    """Load settings from environment variables."""
    overrides: dict[str, str] = {}

    if os.environ.get("PROJECT_ROOT"):
        overrides["project_root"] = os.environ["PROJECT_ROOT"]
    if os.environ.get("BUNDLE_PATHS_BUNDLES_DIR"):
        overrides["bundles_dir"] = os.environ["BUNDLE_PATHS_BUNDLES_DIR"]
    if os.environ.get("BUNDLE_PATHS_CORE_DIR"):
        overrides["core_dir"] = os.environ["BUNDLE_PATHS_CORE_DIR"]
    if os.environ.get("BUNDLE_PATHS_CONFIG_FILENAME"):
        overrides["config_filename"] = os.environ["BUNDLE_PATHS_CONFIG_FILENAME"]
    if os.environ.get("BUNDLE_PATHS_CONVERSATIONS_DIR"):
        overrides["conversations_dir"] = os.environ["BUNDLE_PATHS_CONVERSATIONS_DIR"]

    settings = PathResolverSettings(**overrides)
    logger.debug(f"BUNDLE_PATHS: Loaded settings from environment: {settings}")
    return settings
