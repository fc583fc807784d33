"""
Variable resolution for bundle path templates.

Agent and workflow definitions reference files through templates instead of
literal paths, so a bundle keeps working wherever the project is installed:

    {bundle-root}/workflows/intake/workflow.yaml
    {core-root}/tasks/workflow.md
    {config_source}:output_folder/{date}-{user_name}.md

TOKENS:
=======

    {bundle-root}, {core-root}, {project-root}   context roots
    {config_source}:name                         bundle config variable
    {date}                                       today, YYYY-MM-DD (local time)
    {user_name}                                  config user_name, else OS login

Anything else shaped like {...} is an error once expansion settles.

RESOLUTION:
===========

Config values may themselves contain tokens (output_folder is typically
"{project-root}/output"), so expansion runs as a bounded fixed-point loop.
Each pass substitutes every token present at the start of the pass in a
single sweep; tokens introduced by a spliced config value are picked up on
the next pass. The loop stops when no known token is left, and gives up
after MAX_ITERATIONS passes.

Before a config variable is spliced in, its reference chain is walked with
an explicit stack of the names currently being expanded; meeting a name that
is already on the stack is a circular reference.

The expanded string is then checked for leftover tokens and '..' segments,
normalized to an absolute path, and confined to the context roots by
validate_path_security().
"""
from __future__ import annotations

import getpass
import logging
import os
import re
from datetime import datetime
from typing import Any, Iterator, Mapping, Optional

from .exceptions import (
    CircularReferenceError,
    ConfigVariableNotFoundError,
    MaxIterationsExceededError,
    PathResolverError,
    SecurityViolationError,
    UnresolvedVariableError,
)
from .path_context import PathContext
from .path_security import validate_path_security

logger = logging.getLogger(__name__)

# Maximum expansion passes before giving up on nested variables
MAX_ITERATIONS = 10

CONFIG_SOURCE_TOKEN = "{config_source}"
DEFAULT_USER_NAME = "user"

_TOKEN_PATTERN = re.compile(
    r"\{config_source\}:(?P<config>[A-Za-z0-9_]+)"
    r"|\{(?P<root>bundle-root|core-root|project-root)\}"
    r"|\{(?P<system>date|user_name)\}"
)
_CONFIG_REFERENCE_PATTERN = re.compile(r"\{config_source\}:([A-Za-z0-9_]+)")
_ANY_TOKEN_PATTERN = re.compile(r"\{[^{}]+\}")
_SEGMENT_SEPARATORS = re.compile(r"[\\/]")


def stringify_config_value(value: Any) -> str:
    """Render a scalar config value as path text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def current_date() -> str:
    """Today's date in local time, formatted YYYY-MM-DD."""
    return datetime.now().strftime("%Y-%m-%d")


def current_user_name(bundle_config: Optional[Mapping[str, Any]] = None) -> str:
    """
    Resolve {user_name}.

    Order: bundle config user_name, the OS-reported login name, "user".
    """
    if bundle_config is not None and "user_name" in bundle_config:
        return stringify_config_value(bundle_config["user_name"])
    try:
        return getpass.getuser() or DEFAULT_USER_NAME
    except (OSError, KeyError, ImportError):
        return DEFAULT_USER_NAME


def _config_references(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        for match in _CONFIG_REFERENCE_PATTERN.finditer(value):
            yield match.group(1)


def _check_reference_chain(
    name: str,
    bundle_config: Mapping[str, Any],
    verified: set[str],
    template: str,
) -> None:
    """
    Walk the config references reachable from name, failing on a cycle.

    Names proven acyclic are added to verified so each variable is walked
    once per resolve_path() call. Missing names are skipped here; they are
    reported when the substitution reaches them.
    """
    if name in verified:
        return

    expanding = [name]
    pending = [_config_references(bundle_config.get(name))]

    while pending:
        child = next(pending[-1], None)
        if child is None:
            verified.add(expanding.pop())
            pending.pop()
            continue
        if child in expanding:
            chain = expanding[expanding.index(child):] + [child]
            logger.warning(
                f"PATH_RESOLVER: Circular reference {' -> '.join(chain)} in {template!r}"
            )
            raise CircularReferenceError(chain, path=template)
        if child in verified or child not in bundle_config:
            continue
        expanding.append(child)
        pending.append(_config_references(bundle_config[child]))


class _Substitution:
    """Replacement callback for one resolve_path() call."""

    def __init__(self, template: str, context: PathContext):
        self.template = template
        self.context = context
        self.verified: set[str] = set()
        self._date: Optional[str] = None
        self._user_name: Optional[str] = None

    def __call__(self, match: re.Match) -> str:
        if match.group("config"):
            return self._config_value(match.group("config"))
        if match.group("root"):
            return self._root(match.group("root"))
        return self._system_value(match.group("system"))

    def _config_value(self, name: str) -> str:
        bundle_config = self.context.bundle_config
        if bundle_config is None or name not in bundle_config:
            available = self.context.config_variables
            logger.warning(
                f"PATH_RESOLVER: Config variable {name!r} not found in {self.template!r}"
            )
            raise ConfigVariableNotFoundError(name, available, path=self.template)

        _check_reference_chain(name, bundle_config, self.verified, self.template)
        return stringify_config_value(bundle_config[name])

    def _root(self, token: str) -> str:
        if token == "bundle-root":
            return self.context.bundle_root
        if token == "core-root":
            return self.context.core_root
        return self.context.project_root

    def _system_value(self, token: str) -> str:
        if token == "date":
            if self._date is None:
                self._date = current_date()
            return self._date
        if self._user_name is None:
            self._user_name = current_user_name(self.context.bundle_config)
        return self._user_name


def expand_variables(template: str, context: PathContext) -> str:
    """
    Expand every variable token in a template, without path validation.

    Args:
        template: Path template containing variable tokens
        context: PathContext supplying roots and config variables

    Returns:
        The template with all tokens substituted

    Raises:
        ConfigVariableNotFoundError: A referenced config variable is missing
        CircularReferenceError: A config variable references itself
        MaxIterationsExceededError: No fixed point within MAX_ITERATIONS passes
        UnresolvedVariableError: An unknown {...} token remains
    """
    substitute = _Substitution(template, context)
    result = template

    for iteration in range(MAX_ITERATIONS):
        if not _TOKEN_PATTERN.search(result):
            break
        result = _TOKEN_PATTERN.sub(substitute, result)
        logger.debug(f"PATH_RESOLVER: Pass {iteration + 1}: {template!r} -> {result!r}")
    else:
        if _TOKEN_PATTERN.search(result):
            logger.warning(
                f"PATH_RESOLVER: No fixed point after {MAX_ITERATIONS} passes for {template!r}"
            )
            raise MaxIterationsExceededError(MAX_ITERATIONS, path=result)

    if _ANY_TOKEN_PATTERN.search(result):
        logger.warning(f"PATH_RESOLVER: Unresolved variables in {result!r}")
        raise UnresolvedVariableError(result)

    return result


def resolve_path(template: str, context: PathContext) -> str:
    """
    Resolve a path template to a validated absolute path.

    Args:
        template: Path template (e.g., "{bundle-root}/workflows/intake/workflow.yaml")
        context: PathContext with roots and optional config variables

    Returns:
        Normalized absolute path confined to the context roots

    Raises:
        PathResolverError: If the template is empty, cannot be expanded,
            or the result fails security validation
    """
    if not template or not template.strip():
        raise PathResolverError("Empty path template", path="", reason="EMPTY_PATH")

    expanded = expand_variables(template, context)

    # Checked before normalization, which would silently collapse the '..'
    if ".." in _SEGMENT_SEPARATORS.split(expanded):
        logger.warning(f"PATH_RESOLVER: Traversal attempt in {template!r}")
        raise SecurityViolationError(
            "Path traversal attempt detected", path=template, reason="PATH_TRAVERSAL"
        )

    resolved = os.path.normpath(os.path.join(os.sep, expanded))
    validate_path_security(resolved, context)

    logger.debug(f"PATH_RESOLVER: Resolved {template!r} -> {resolved!r}")
    return resolved
