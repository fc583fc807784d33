"""
Bundle path templates for configuration-driven agents.

Expands templates such as "{bundle-root}/workflows/intake/workflow.yaml" or
"{config_source}:output_folder/{date}.md" into absolute paths that are
guaranteed to stay inside the bundle, core, or project root.

Usage:
    from bundle_paths import load_path_context, resolve_path

    context = load_path_context("requirements-workflow")
    workflow = resolve_path("{bundle-root}/workflows/intake/workflow.yaml", context)
"""
from .core.bundle_config import (
    ConfigCache,
    clear_config_cache,
    get_config_cache,
    load_bundle_config,
    load_path_context,
    read_config_file,
)
from .core.exceptions import (
    CircularReferenceError,
    ConfigLoadError,
    ConfigVariableNotFoundError,
    MaxIterationsExceededError,
    PathResolverError,
    SecurityViolationError,
    UnresolvedVariableError,
)
from .core.path_context import PathContext, create_path_context
from .core.path_security import validate_path_security, validate_write_path
from .core.settings import (
    PathResolverSettings,
    get_settings,
    reset_settings,
    set_settings,
)
from .core.variable_resolver import MAX_ITERATIONS, expand_variables, resolve_path

__all__ = [
    "MAX_ITERATIONS",
    "CircularReferenceError",
    "ConfigCache",
    "ConfigLoadError",
    "ConfigVariableNotFoundError",
    "MaxIterationsExceededError",
    "PathContext",
    "PathResolverError",
    "PathResolverSettings",
    "SecurityViolationError",
    "UnresolvedVariableError",
    "clear_config_cache",
    "create_path_context",
    "expand_variables",
    "get_config_cache",
    "get_settings",
    "load_bundle_config",
    "load_path_context",
    "read_config_file",
    "reset_settings",
    "resolve_path",
    "set_settings",
    "validate_path_security",
    "validate_write_path",
]
