"""
Path contexts for bundle path resolution.

A PathContext holds the three sandbox roots a bundle may touch, plus the
bundle's config variables. It is built once per bundle (typically when an
agent bundle is activated) and shared by every resolution for that bundle.

    <project_root>/                    {project-root}
    <project_root>/bmad/core/          {core-root}
    <project_root>/bmad/custom/bundles/<bundle_name>/   {bundle-root}
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .settings import PathResolverSettings, get_settings

logger = logging.getLogger(__name__)


def normalize_root(path: str | os.PathLike[str]) -> str:
    """Normalize a root directory, rejecting empty and relative paths."""
    raw = os.fspath(path)
    if not raw or not os.path.isabs(raw):
        raise ValueError(f"Root directory must be an absolute path: {raw!r}")
    return os.path.normpath(raw)


@dataclass(frozen=True)
class PathContext:
    """
    Sandbox roots and config variables for one bundle.

    Attributes:
        bundle_root: The bundle's private directory
        core_root: Shared framework directory
        project_root: Application root directory
        bundle_config: Read-only mapping of config variables, or None
    """
    bundle_root: str
    core_root: str
    project_root: str
    bundle_config: Optional[Mapping[str, Any]] = None

    def __post_init__(self):
        """Normalize roots and freeze the config mapping."""
        object.__setattr__(self, "bundle_root", normalize_root(self.bundle_root))
        object.__setattr__(self, "core_root", normalize_root(self.core_root))
        object.__setattr__(self, "project_root", normalize_root(self.project_root))
        if self.bundle_config is not None:
            object.__setattr__(
                self, "bundle_config", MappingProxyType(dict(self.bundle_config))
            )

    @property
    def roots(self) -> tuple[str, str, str]:
        """The allowed roots, most specific first."""
        return (self.bundle_root, self.core_root, self.project_root)

    @property
    def config_variables(self) -> list[str]:
        """Top-level config variable names, in definition order."""
        if self.bundle_config is None:
            return []
        return [str(name) for name in self.bundle_config]

    def with_config(self, bundle_config: Optional[Mapping[str, Any]]) -> PathContext:
        """Return a copy of this context carrying different config variables."""
        return replace(self, bundle_config=bundle_config)


def create_path_context(
    bundle_name: str,
    bundle_config: Optional[Mapping[str, Any]] = None,
    settings: Optional[PathResolverSettings] = None,
) -> PathContext:
    """
    Create a PathContext for a bundle.

    Args:
        bundle_name: Bundle directory name under the bundles root (e.g., "requirements-workflow")
        bundle_config: Optional pre-loaded config variables
        settings: Directory layout (uses global settings if not provided)

    Returns:
        PathContext with normalized roots

    Raises:
        ValueError: If bundle_name is empty or is not a single directory name
    """
    if not bundle_name or not bundle_name.strip():
        raise ValueError("Bundle name must be a non-empty string")
    if (
        bundle_name in (".", "..")
        or "/" in bundle_name
        or "\\" in bundle_name
        or "\x00" in bundle_name
        or os.path.isabs(bundle_name)
    ):
        logger.warning(f"PATH_CONTEXT: Rejected bundle name {bundle_name!r}")
        raise ValueError(
            f"Bundle name must be a single directory name: {bundle_name!r}"
        )

    if settings is None:
        settings = get_settings()

    project_root = os.path.normpath(str(settings.project_root))
    bundles_root = os.path.normpath(os.path.join(project_root, settings.bundles_dir))
    bundle_root = os.path.normpath(os.path.join(bundles_root, bundle_name))
    core_root = os.path.join(project_root, settings.core_dir)

    # bundle_root must be a strict descendant of the bundles directory
    if not bundle_root.startswith(bundles_root.rstrip(os.sep) + os.sep):
        raise ValueError(
            f"Bundle name must be a single directory name: {bundle_name!r}"
        )

    return PathContext(
        bundle_root=bundle_root,
        core_root=core_root,
        project_root=project_root,
        bundle_config=bundle_config,
    )
